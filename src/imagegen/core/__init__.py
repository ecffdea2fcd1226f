"""Core functionality for image generation.

This module provides the server-side components of Imagegen:

- **ImageGenConfig / config**: Configuration management using Pydantic Settings
- **Validation**: Rule-table validation of raw request bodies
- **Backends**: Pluggable hosted inference backends and their registry
- **Retry**: Fixed-delay retry of backend submissions
- **Normalizer**: Conversion of binary and base64 replies into one result type
- **GenerationService**: Orchestration of the above for the API layer

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration, IMAGEGEN_ prefix

2. **Request Layer** (models.py, validation.py):
   - Typed request/result dataclasses
   - Validation before any network I/O

3. **Backend Layer** (backends.py, retry.py, normalizer.py):
   - One backend instance chosen at startup
   - Transient failures retried, normalization failures terminal

4. **Service Layer** (generation.py):
   - ``GenerationService.generate(request) -> GenerationResult``
"""

from .backends import (
    Base64Backend,
    BinaryBackend,
    InferenceBackend,
    TransientBackendError,
    backend_registry,
)
from .config import ImageGenConfig, config
from .generation import GenerationService
from .models import BackendPayload, GenerationRequest, GenerationResult
from .normalizer import NormalizationError
from .validation import ValidationError, check_generation_request, validate_generation_request

__all__ = [
    "BackendPayload",
    "Base64Backend",
    "BinaryBackend",
    "GenerationRequest",
    "GenerationResult",
    "GenerationService",
    "ImageGenConfig",
    "InferenceBackend",
    "NormalizationError",
    "TransientBackendError",
    "ValidationError",
    "backend_registry",
    "check_generation_request",
    "config",
    "validate_generation_request",
]
