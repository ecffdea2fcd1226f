"""Generation orchestration for the Imagegen API.

This module provides :class:`GenerationService`, the single point of control
between the HTTP layer and the configured inference backend.

Key Responsibilities
--------------------
- **Retrying** — each request is submitted through
  :func:`~imagegen.core.retry.submit_with_retry` with the configured attempt
  budget and constant delay.  The wait is an ``await``, so a retrying request
  never blocks other requests served by the same event loop.
- **Normalization** — the successful payload is normalized exactly once.
  A :class:`~imagegen.core.normalizer.NormalizationError` is terminal.
- **Lifecycle** — the service owns its backend and closes it on
  :meth:`aclose` (called from the FastAPI lifespan on shutdown).

Usage
-----
::

    from imagegen.core.config import config
    from imagegen.core.generation import GenerationService

    service = GenerationService.from_config(config)
    result = await service.generate(request)
    await service.aclose()
"""

from __future__ import annotations

import asyncio
import logging
import time

from .backends import InferenceBackend, backend_registry
from .config import ImageGenConfig
from .models import GenerationRequest, GenerationResult
from .retry import SleepFunc, submit_with_retry

logger = logging.getLogger(__name__)


class GenerationService:
    """Runs validated requests against one inference backend.

    Attributes:
        backend (InferenceBackend):
            The backend selected at startup.
        _config (ImageGenConfig):
            Source of the retry policy.
        _sleep:
            Wait primitive used between attempts.
    """

    def __init__(
        self,
        backend: InferenceBackend,
        config: ImageGenConfig,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self._config = config
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: ImageGenConfig) -> GenerationService:
        """Build a service around the backend named by ``config.backend``."""
        return cls(backend_registry.instantiate(config.backend, config), config)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate one image.

        Args:
            request: Validated request.

        Returns:
            Normalized result.

        Raises:
            TransientBackendError: Last backend error after all attempts.
            NormalizationError: Backend reply could not be decoded.
        """
        start = time.perf_counter()
        payload = await submit_with_retry(
            self.backend.submit,
            request,
            max_attempts=self._config.retry_attempts,
            base_delay=self._config.retry_delay,
            sleep=self._sleep,
        )
        result = self.backend.normalize(payload, request)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Generated {len(result.content)} bytes ({result.content_type}) "
            f"via {self.backend.name} in {elapsed_ms}ms"
        )
        return result

    async def aclose(self) -> None:
        """Release the backend's HTTP resources."""
        await self.backend.aclose()
