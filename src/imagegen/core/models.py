"""Data models shared by the validator, the backends and the API layer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Media types a backend can be asked to produce.  The first entry is the
# default when a request does not specify ``accept``.
SUPPORTED_MEDIA_TYPES: tuple[str, ...] = ("image/jpeg", "image/png")

DEFAULT_GUIDANCE_SCALE = 27
DEFAULT_INFERENCE_STEPS = 27
DEFAULT_ACCEPT = SUPPORTED_MEDIA_TYPES[0]

# Aspect ratios offered to the form.  Any non-empty token is accepted by the
# validator; these are only suggestions.
ASPECT_RATIOS: tuple[str, ...] = ("16:9", "5:4", "1:1")


@dataclass(frozen=True)
class GenerationRequest:
    """A validated, fully defaulted generation request.

    Instances are produced by
    :func:`imagegen.core.validation.validate_generation_request`; building one
    directly skips validation.
    """

    prompt: str
    aspect_ratio: str
    guidance_scale: float = DEFAULT_GUIDANCE_SCALE
    num_inference_steps: float = DEFAULT_INFERENCE_STEPS
    accept: str = DEFAULT_ACCEPT
    seed: int | None = None  # Client-side only, never forwarded to a backend
    # Values for fields added to the rule table beyond the built-in ones.
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def to_backend_input(self) -> dict[str, Any]:
        """Return the parameter set understood by every backend.

        Returns:
            Dictionary with prompt, inference steps, guidance scale and
            aspect ratio, plus any extra validated fields.  ``accept``
            travels separately (as a header or not at all, depending on the
            backend).
        """
        params = {
            "prompt": self.prompt,
            "num_inference_steps": self.num_inference_steps,
            "guidance_scale": self.guidance_scale,
            "aspect_ratio": self.aspect_ratio,
        }
        params.update(self.extra)
        return params


@dataclass(frozen=True)
class BackendPayload:
    """Raw successful reply from an inference backend, not yet interpreted."""

    status_code: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GenerationResult:
    """Normalized generation output: image bytes plus optional timing data.

    Attributes:
        content: Raw image bytes.
        content_type: Resolved media type of ``content``.
        delay_time: Time the job spent queued on the backend (ms), if known.
        execution_time: Time the backend spent generating (ms), if known.
        job_id: Backend-assigned job identifier, if any.
    """

    content: bytes
    content_type: str
    delay_time: float | None = None
    execution_time: float | None = None
    job_id: str | None = None

    def timing_headers(self) -> dict[str, str]:
        """Return the known backend metadata as HTTP response headers."""
        headers: dict[str, str] = {}
        if self.delay_time is not None:
            headers["X-Backend-Delay-Time"] = str(self.delay_time)
        if self.execution_time is not None:
            headers["X-Backend-Execution-Time"] = str(self.execution_time)
        if self.job_id is not None:
            headers["X-Backend-Job-Id"] = self.job_id
        return headers
