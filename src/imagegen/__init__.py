"""Imagegen - text-to-image generation through a hosted inference backend."""

__version__ = "0.1.0"

from imagegen.core.config import ImageGenConfig, config
from imagegen.core.backends import InferenceBackend, backend_registry

__all__ = [
    "InferenceBackend",
    "backend_registry",
    "ImageGenConfig",
    "config",
]
