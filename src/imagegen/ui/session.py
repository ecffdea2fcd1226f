"""Client session driving generations against the Imagegen API.

:class:`SessionManager` is what a frontend talks to.  It posts the current
form to ``/api/generate``, retries gateway timeouts, and feeds the outcome
into a :class:`~imagegen.ui.state.SessionStore`.

Retry behaviour
---------------
Only HTTP 504 is retried here, because it means the infrastructure gave up
waiting while the backend may still be healthy.  The same body is re-sent up
to ``max_attempts`` times in total with a constant delay; every other error
is reported immediately.  Backend-level retries already happened on the
server.

Example
-------
::

    async with SessionManager("http://localhost:7860") as session:
        session.update_settings(prompt="a lighthouse at dusk", aspect_ratio="1:1")
        record = await session.generate()
        print(record.handle.url, record.handle.content_type)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from imagegen.core.backends import GENERIC_FAILURE_MESSAGE
from imagegen.core.config import ImageGenConfig
from imagegen.core.retry import SleepFunc, backoff_delay

from .models import GeneratedImageRecord, GenerationSettings, SessionState
from .state import SessionStore

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
GATEWAY_TIMEOUT_STATUS = 504
GATEWAY_TIMEOUT_MESSAGE = (
    "Image generation timed out. The server may be busy, please try again."
)


class GenerationFailedError(Exception):
    """A generation ended in failure; ``message`` is shown to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class GatewayTimeoutError(GenerationFailedError):
    """Every attempt ended in HTTP 504."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(GATEWAY_TIMEOUT_MESSAGE, GATEWAY_TIMEOUT_STATUS)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return GENERIC_FAILURE_MESSAGE
    if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
        return data["error"]
    return GENERIC_FAILURE_MESSAGE


class SessionManager:
    """Runs generations for one session and keeps its history.

    Args:
        base_url: Base URL of the Imagegen API.  Ignored when ``client`` is
            given.
        client: Pre-configured HTTP client (not closed by the session).
        store: State store; a fresh one is created if omitted.
        max_attempts: Total attempts when the API answers 504.
        retry_delay: Seconds between 504 retries.
        sleep: Awaitable wait primitive.
        timeout: Request timeout for a client created by the session.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        store: SessionStore | None = None,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: SleepFunc = asyncio.sleep,
        timeout: float = 300.0,
    ) -> None:
        if client is None and base_url is None:
            raise ValueError("Either base_url or client is required")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.store = store or SessionStore()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: ImageGenConfig, **kwargs: Any) -> SessionManager:
        """Create a session using the ``api_base_url`` and client retry settings."""
        return cls(
            config.api_base_url,
            max_attempts=config.client_retry_attempts,
            retry_delay=config.client_retry_delay,
            **kwargs,
        )

    @property
    def state(self) -> SessionState:
        return self.store.state

    def update_settings(self, **changes: Any) -> GenerationSettings:
        """Edit the form (see :meth:`SessionStore.update_settings`)."""
        return self.store.update_settings(**changes)

    def select(self, index: int) -> GeneratedImageRecord:
        """Display a history entry (see :meth:`SessionStore.select`)."""
        return self.store.select(index)

    async def _post_with_timeout_retry(self, body: dict[str, Any]) -> httpx.Response:
        """POST ``body``, re-sending it while the API answers 504."""
        attempt = 1
        while True:
            response = await self._client.post(GENERATE_PATH, json=body)
            if response.status_code != GATEWAY_TIMEOUT_STATUS or attempt >= self.max_attempts:
                return response

            delay = backoff_delay(attempt, self.retry_delay)
            logger.warning(
                f"Gateway timeout on attempt {attempt}/{self.max_attempts}, retrying in {delay}s"
            )
            await self._sleep(delay)
            attempt += 1

    async def generate(self) -> GeneratedImageRecord:
        """Generate an image from the current form contents.

        Returns:
            The new history record, also set as the displayed record.

        Raises:
            SessionStateError: If a generation is in flight or the prompt
                is empty (nothing is sent).
            GatewayTimeoutError: Every attempt ended in 504.
            GenerationFailedError: Any other error response or transport
                failure.  The same message is stored in ``state.error``.
        """
        settings = self.store.begin()
        try:
            return await self._complete(settings)
        except BaseException:
            # Cancellation or an unexpected error must not leave the store locked.
            if self.store.state.is_generating:
                self.store.fail(GENERIC_FAILURE_MESSAGE)
            raise

    async def _complete(self, settings: GenerationSettings) -> GeneratedImageRecord:
        """Send ``settings`` and record the outcome on the store."""
        try:
            response = await self._post_with_timeout_retry(settings.to_request_body())
        except httpx.HTTPError as e:
            logger.error(f"Request to {GENERATE_PATH} failed: {e}")
            self.store.fail(GENERIC_FAILURE_MESSAGE)
            raise GenerationFailedError(GENERIC_FAILURE_MESSAGE) from e

        if response.status_code == GATEWAY_TIMEOUT_STATUS:
            self.store.fail(GATEWAY_TIMEOUT_MESSAGE)
            raise GatewayTimeoutError(self.max_attempts)

        if not response.is_success:
            message = _error_message(response)
            self.store.fail(message)
            raise GenerationFailedError(message, response.status_code)

        content_type = response.headers.get("content-type", settings.accept)
        content_type = content_type.split(";")[0].strip()
        return self.store.succeed(response.content, content_type)

    async def close(self) -> None:
        """End the session: release all handles and close an owned client."""
        self.store.teardown()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
