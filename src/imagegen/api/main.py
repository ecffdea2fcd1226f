"""Imagegen — FastAPI Application.

This module is the single entry point for the web API.  It defines the
FastAPI ``app`` instance, the REST routes, the mapping from core exceptions
to HTTP responses, and the ``main()`` CLI function that launches uvicorn.

Architecture
------------
The application follows a stateless REST pattern:

- **Validation** runs on the raw JSON body before any network I/O
  (:mod:`imagegen.core.validation`).
- **Image generation** is delegated to
  :class:`~imagegen.core.generation.GenerationService`, created once in the
  lifespan handler and stored on ``app.state``.
- **Errors** raised by the core are translated to HTTP responses by the
  exception handlers registered below; route handlers never build error
  responses themselves.

Endpoints
---------
========  ====================  =========================================
Method    Path                  Purpose
========  ====================  =========================================
POST      ``/api/generate``     Generate one image, returns raw bytes
POST      ``/generate``         Alias of ``/api/generate``
GET       ``/api/config``       Backend, media types, defaults and limits
GET       ``/api/health``       Liveness check
========  ====================  =========================================

Error Mapping
-------------
=========================  ==============================================
Exception                  Response
=========================  ==============================================
``ValidationError``        400 ``{"error": "Invalid request data", ...}``
``TransientBackendError``  backend status (500 if unknown), last message
``NormalizationError``     500 ``{"error": "Failed to generate image"}``
=========================  ==============================================

Usage
-----
CLI (installed entry point)::

    imagegen

Direct invocation::

    python -m imagegen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from imagegen import __version__
from imagegen.api.models import (
    ConfigResponse,
    ErrorResponse,
    FieldLimits,
    HealthResponse,
    ValidationErrorResponse,
    ViolationDetail,
)
from imagegen.core.backends import (
    GENERIC_FAILURE_MESSAGE,
    TransientBackendError,
    backend_registry,
)
from imagegen.core.config import config
from imagegen.core.generation import GenerationService
from imagegen.core.models import (
    ASPECT_RATIOS,
    DEFAULT_GUIDANCE_SCALE,
    DEFAULT_INFERENCE_STEPS,
    SUPPORTED_MEDIA_TYPES,
)
from imagegen.core.normalizer import NormalizationError
from imagegen.core.validation import ValidationError, Violation, validate_generation_request

logger = logging.getLogger(__name__)

# One year.
CACHE_CONTROL = "public, max-age=31536000"

# ---------------------------------------------------------------------------
# Application lifecycle: generation service setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Instantiates the configured backend inside a
        :class:`GenerationService` and stores it on ``app.state``.

    On shutdown:
        Closes the backend's HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    service = GenerationService.from_config(config)
    app.state.generation_service = service
    logger.info(f"GenerationService ready (backend={service.backend.name}).")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    await service.aclose()
    logger.info("GenerationService closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Imagegen",
    description="Text-to-image generation through a hosted inference backend.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so the frontend can be served from a different
# port during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    """Map a validation failure to 400 with per-field details."""
    logger.warning(f"Invalid request data on {request.url.path}: {exc}")
    body = ValidationErrorResponse(
        details=[ViolationDetail(**v.to_dict()) for v in exc.violations],
    )
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(TransientBackendError)
async def handle_backend_error(request: Request, exc: TransientBackendError) -> JSONResponse:
    """Surface the last backend error with the backend's own status.

    Without a status (transport failure) the client gets a generic 500.
    """
    logger.error(f"Backend failure on {request.url.path} (status={exc.status_code}): {exc.message}")
    if exc.status_code is not None and exc.status_code >= 400:
        status_code, message = exc.status_code, exc.message
    else:
        status_code, message = 500, GENERIC_FAILURE_MESSAGE
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(NormalizationError)
async def handle_normalization_error(request: Request, exc: NormalizationError) -> JSONResponse:
    """Map an undecodable backend payload to a generic 500."""
    logger.error(f"Could not normalize backend response on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=GENERIC_FAILURE_MESSAGE).model_dump(),
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.post(
    "/api/generate",
    response_class=Response,
    responses={
        200: {"content": {media_type: {} for media_type in SUPPORTED_MEDIA_TYPES}},
        400: {"model": ValidationErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
@app.post("/generate", response_class=Response, include_in_schema=False)
async def generate_image(request: Request) -> Response:
    """Generate a single image and return its bytes.

    This endpoint:

    1. Parses and validates the JSON body (defaults applied here).
    2. Submits the request to the backend with bounded retries.
    3. Normalizes the backend reply to bytes plus a content type.
    4. Returns the bytes with a long-lived cache directive.

    Args:
        request: Incoming request; the body is read and validated manually.

    Returns:
        Raw image bytes with ``Content-Type`` set to the resolved type and
        backend timing metadata in ``X-Backend-*`` headers when available.

    Raises:
        ValidationError: Malformed body or out-of-range parameters (400).
        TransientBackendError: Backend kept failing (backend status or 500).
        NormalizationError: Backend reply was not an image (500).
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError(
            [Violation((), "invalid_json", "Request body must be valid JSON")]
        ) from e

    gen_request = validate_generation_request(body)
    logger.info(
        f"Validated request: prompt={gen_request.prompt!r} "
        f"aspect_ratio={gen_request.aspect_ratio} "
        f"guidance_scale={gen_request.guidance_scale} "
        f"num_inference_steps={gen_request.num_inference_steps} "
        f"accept={gen_request.accept}"
    )

    service: GenerationService = request.app.state.generation_service
    result = await service.generate(gen_request)

    headers = {"Cache-Control": CACHE_CONTROL}
    headers.update(result.timing_headers())
    return Response(content=result.content, media_type=result.content_type, headers=headers)


@app.get("/api/config", response_model=ConfigResponse)
async def get_config(request: Request) -> ConfigResponse:
    """Return backend, media types, defaults and limits for the frontend."""
    service: GenerationService = request.app.state.generation_service
    return ConfigResponse(
        version=__version__,
        backend=service.backend.name,
        available_backends=backend_registry.list_available(),
        media_types=list(SUPPORTED_MEDIA_TYPES),
        aspect_ratios=list(ASPECT_RATIOS),
        guidance_scale=FieldLimits(default=DEFAULT_GUIDANCE_SCALE, minimum=0, maximum=100),
        num_inference_steps=FieldLimits(default=DEFAULT_INFERENCE_STEPS, minimum=0, maximum=100),
    )


@app.get("/api/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Liveness check."""
    service: GenerationService = request.app.state.generation_service
    return HealthResponse(backend=service.backend.name)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~imagegen.core.config.config`
    (``IMAGEGEN_SERVER_HOST``, ``IMAGEGEN_SERVER_PORT``,
    ``IMAGEGEN_LOG_LEVEL``).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``imagegen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "imagegen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
