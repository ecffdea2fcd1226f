"""Shared pytest fixtures for Imagegen tests."""

from __future__ import annotations

import base64
import io
import json
from collections.abc import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from imagegen.core.backends import InferenceBackend, backend_registry
from imagegen.core.config import ImageGenConfig
from imagegen.core.generation import GenerationService

BACKEND_URL = "http://backend.test/runsync"


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _encode_image(fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "red").save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def test_config() -> ImageGenConfig:
    """Create a test configuration that ignores the environment's .env file.

    Returns:
        ImageGenConfig pointing at a fake backend URL
    """
    return ImageGenConfig(
        _env_file=None,
        backend="base64",
        backend_url=BACKEND_URL,
        backend_api_key="test-key",
        retry_attempts=3,
        retry_delay=2.0,
        base64_content_type="image/png",
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    return _encode_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small valid JPEG image."""
    return _encode_image("JPEG")


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement that records every requested delay."""
    return RecordingSleep()


@pytest.fixture
def make_backend(test_config: ImageGenConfig) -> Callable[..., InferenceBackend]:
    """Factory building a registered backend wired to an httpx mock transport.

    Usage::

        backend = make_backend("binary", handler)

    where ``handler`` takes an ``httpx.Request`` and returns an
    ``httpx.Response``.
    """

    def _make(name: str, handler: Callable[[httpx.Request], httpx.Response]) -> InferenceBackend:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        config = test_config.model_copy(update={"backend": name})
        return backend_registry.instantiate(name, config, client=client)

    return _make


@pytest.fixture
def envelope_for() -> Callable[..., httpx.Response]:
    """Factory for base64-envelope backend responses."""

    def _envelope(content: bytes, **extra) -> httpx.Response:
        body = {
            "output": base64.b64encode(content).decode("ascii"),
            "delayTime": 812,
            "executionTime": 2390,
            "id": "sync-1234",
        }
        body.update(extra)
        return httpx.Response(200, content=json.dumps(body).encode())

    return _envelope


@pytest.fixture
def scripted_backend(make_backend, png_bytes, envelope_for):
    """Base64 backend answering with a scripted sequence of responses.

    The returned backend has a ``requests`` list and a ``script`` list.  Each
    call pops the next scripted response; once the script is empty it
    answers with a valid PNG envelope.
    """
    requests: list[httpx.Request] = []
    script: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if script:
            return script.pop(0)
        return envelope_for(png_bytes)

    backend = make_backend("base64", handler)
    backend.requests = requests
    backend.script = script
    return backend


@pytest.fixture
def test_client(
    scripted_backend, test_config, recording_sleep
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient whose generation service talks to ``scripted_backend``.

    The lifespan runs normally; the service it creates is swapped for one
    using the scripted backend and the recording sleep for the duration of
    the test.
    """
    from imagegen.api.main import app

    service = GenerationService(scripted_backend, test_config, sleep=recording_sleep)
    with TestClient(app) as client:
        original = app.state.generation_service
        app.state.generation_service = service
        try:
            yield client
        finally:
            app.state.generation_service = original
