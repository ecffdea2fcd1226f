"""Pydantic response models for the Imagegen API.

Request bodies are validated by :mod:`imagegen.core.validation` so that the
400 response keeps its ``{"error", "details"}`` shape; these models describe
the JSON the API sends back and feed the OpenAPI documentation.

Models
------
ErrorResponse
    Body of every non-validation failure.
ViolationDetail / ValidationErrorResponse
    Body of a 400 response.
ConfigResponse
    Payload of ``GET /api/config``.
HealthResponse
    Payload of ``GET /api/health``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of a failed generation.

    Attributes:
        error: Human-readable message.  For backend failures this is the
            backend's own diagnostic from the last attempt.
    """

    error: str = Field(..., description="Human-readable error message.")


class ViolationDetail(BaseModel):
    """One field-level validation failure."""

    path: list[str] = Field(..., description="Path of the offending field, empty for the body.")
    code: str = Field(..., description="Machine-readable violation code.")
    message: str = Field(..., description="Human-readable explanation.")


class ValidationErrorResponse(BaseModel):
    """Body of a 400 response."""

    error: str = Field(default="Invalid request data")
    details: list[ViolationDetail] = Field(default_factory=list)


class FieldLimits(BaseModel):
    """Default and inclusive range of a numeric request field."""

    default: float
    minimum: float
    maximum: float


class ConfigResponse(BaseModel):
    """Everything a form needs to render generation controls.

    Attributes:
        version: API version string.
        backend: Name of the active inference backend.
        available_backends: Names of all registered backends.
        media_types: Accepted values for ``accept``, default first.
        aspect_ratios: Suggested aspect ratio tokens.
        guidance_scale: Default and range for ``guidance_scale``.
        num_inference_steps: Default and range for ``num_inference_steps``.
    """

    version: str
    backend: str
    available_backends: list[str]
    media_types: list[str]
    aspect_ratios: list[str]
    guidance_scale: FieldLimits
    num_inference_steps: FieldLimits


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str = "ok"
    backend: str
