"""Base class and registry for hosted inference backends.

An inference backend is the external service that actually runs the
diffusion model.  Imagegen never branches on the backend type while handling
a request: one backend is instantiated at startup from
``config.backend`` and used through the :class:`InferenceBackend` interface.

Backend Types
-------------
- **binary**: synchronous endpoint that takes the parameter set as JSON plus
  an ``Accept`` header and answers with raw image bytes.
- **base64**: queue-style endpoint (RunPod ``runsync`` and similar) that
  takes ``{"input": {...}}`` and answers with a JSON envelope holding a
  base64 ``output`` field and timing metadata.

Each backend performs exactly one HTTP call per :meth:`InferenceBackend.submit`
and leaves retrying to :mod:`imagegen.core.retry`.  Interpreting the reply is
delegated to :mod:`imagegen.core.normalizer` through
:meth:`InferenceBackend.normalize`.

Usage Example
-------------
    >>> from imagegen.core.backends import backend_registry
    >>> from imagegen.core.config import config
    >>>
    >>> backend_registry.list_available()
    ['binary', 'base64']
    >>> backend = backend_registry.instantiate(config.backend, config)
    >>> payload = await backend.submit(request)
    >>> result = backend.normalize(payload, request)
    >>> await backend.aclose()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from .config import ImageGenConfig
from .models import BackendPayload, GenerationRequest, GenerationResult
from .normalizer import normalize_base64, normalize_binary

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate image"


class TransientBackendError(Exception):
    """A backend attempt failed in a way that may succeed on retry.

    Raised for transport failures (``status_code`` is ``None``) and for
    non-success HTTP statuses (``status_code`` holds the backend's status).
    ``message`` is the backend's own diagnostic when one was available.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def extract_error_message(response: httpx.Response) -> str:
    """Pull a human-readable error out of a failed backend response.

    Looks for a ``message`` or ``error`` key in a JSON body, then falls back
    to the raw text, then to a generic message.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]

    text = response.text.strip()
    if text:
        return text[:500]
    return GENERIC_FAILURE_MESSAGE


class InferenceBackend(ABC):
    """Abstract base class for all inference backends.

    Attributes
    ----------
    name : str
        Registry key (matches the ``IMAGEGEN_BACKEND`` setting)
    description : str
        Brief description of the backend's wire format
    config : ImageGenConfig
        Configuration holding the URL, credential and timeout

    Notes
    -----
    - ``submit`` must raise :class:`TransientBackendError` for any transport
      failure or non-2xx status, and return the raw reply otherwise.
    - ``normalize`` is pure and raises
      :class:`~imagegen.core.normalizer.NormalizationError` on bad payloads.
    - An injected ``httpx.AsyncClient`` is never closed by the backend.
    """

    name: str = "base"
    description: str = "Base class for inference backends"

    def __init__(
        self,
        config: ImageGenConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            config: Configuration object containing backend settings
            client: Shared HTTP client; one is created (and owned) if omitted
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)
        logger.info(f"Initialized {self.name} backend for {config.backend_url}")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self.config.backend_api_key.get_secret_value()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def _post(self, body: dict[str, Any], headers: dict[str, str]) -> BackendPayload:
        """Perform one POST to the backend URL.

        Raises:
            TransientBackendError: On transport failure or non-2xx status.
        """
        try:
            response = await self._client.post(self.config.backend_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise TransientBackendError(
                f"Backend request failed: {str(e) or type(e).__name__}"
            ) from e

        if not response.is_success:
            message = extract_error_message(response)
            logger.warning(f"{self.name} backend answered {response.status_code}: {message}")
            raise TransientBackendError(message, status_code=response.status_code)

        return BackendPayload(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    @abstractmethod
    async def submit(self, request: GenerationRequest) -> BackendPayload:
        """Send one generation request to the backend.

        Args:
            request: Validated generation request

        Returns
        -------
        BackendPayload
            Raw successful reply

        Raises
        ------
        TransientBackendError
            On transport failure or non-success status
        """
        pass

    @abstractmethod
    def normalize(self, payload: BackendPayload, request: GenerationRequest) -> GenerationResult:
        """Convert this backend's reply into a :class:`GenerationResult`."""
        pass

    async def aclose(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client:
            await self._client.aclose()

    def get_backend_info(self) -> dict[str, Any]:
        """Get information about this backend."""
        return {"name": self.name, "description": self.description}


class BinaryBackend(InferenceBackend):
    """Backend that returns the image as the raw response body."""

    name = "binary"
    description = "Synchronous endpoint returning raw image bytes (Accept header)"

    async def submit(self, request: GenerationRequest) -> BackendPayload:
        headers = self._headers()
        headers["Accept"] = request.accept
        return await self._post(request.to_backend_input(), headers)

    def normalize(self, payload: BackendPayload, request: GenerationRequest) -> GenerationResult:
        return normalize_binary(payload, request.accept)


class Base64Backend(InferenceBackend):
    """Queue-style backend returning a base64 JSON envelope."""

    name = "base64"
    description = "Queue endpoint returning {output: <base64>, delayTime, executionTime, id}"

    async def submit(self, request: GenerationRequest) -> BackendPayload:
        headers = self._headers()
        headers["Accept"] = "application/json"
        return await self._post({"input": request.to_backend_input()}, headers)

    def normalize(self, payload: BackendPayload, request: GenerationRequest) -> GenerationResult:
        return normalize_base64(payload, self.config.base64_content_type)


class BackendRegistry:
    """Registry for managing available inference backends.

    Usage
    -----
    Registering a new backend:

        >>> backend_registry.register(MyBackend)

    Instantiating a backend:

        >>> backend = backend_registry.instantiate("base64", config)
    """

    def __init__(self) -> None:
        self._backends: dict[str, type[InferenceBackend]] = {}

    def register(self, backend_class: type[InferenceBackend]) -> None:
        """Register a backend class under its ``name``."""
        backend_name = backend_class.name

        if backend_name in self._backends:
            logger.warning(f"Backend '{backend_name}' is already registered, overwriting")

        self._backends[backend_name] = backend_class
        logger.debug(f"Registered backend: {backend_name}")

    def instantiate(
        self,
        backend_name: str,
        config: ImageGenConfig,
        client: httpx.AsyncClient | None = None,
    ) -> InferenceBackend:
        """Create an instance of a registered backend.

        Args:
            backend_name: Name of the backend to instantiate
            config: Configuration object
            client: Optional shared HTTP client

        Returns
        -------
        InferenceBackend
            New instance of the specified backend

        Raises
        ------
        KeyError
            If backend_name is not registered
        """
        if backend_name not in self._backends:
            available = ", ".join(self.list_available())
            raise KeyError(f"Backend '{backend_name}' not found. Available backends: {available}")

        backend = self._backends[backend_name](config=config, client=client)
        logger.info(f"Instantiated backend: {backend_name}")
        return backend

    def list_available(self) -> list[str]:
        """List all registered backend names."""
        return list(self._backends.keys())

    def get_backend_info(self, backend_name: str) -> dict[str, Any] | None:
        """Get metadata about a registered backend, or None if unknown."""
        backend_class = self._backends.get(backend_name)
        if backend_class is None:
            return None
        return {"name": backend_class.name, "description": backend_class.description}


# Global backend registry instance
backend_registry = BackendRegistry()
backend_registry.register(BinaryBackend)
backend_registry.register(Base64Backend)
