"""Data models for the client-side generation session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from imagegen.core.models import ASPECT_RATIOS, DEFAULT_ACCEPT

from .resources import ResourceHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationSettings:
    """The editable generation form.

    Defaults match the form's initial state, which favours fast turbo-style
    models (no guidance, few steps).  They are independent of the server's
    validation defaults, which only apply when a field is omitted.
    """

    prompt: str = ""
    aspect_ratio: str = ASPECT_RATIOS[0]
    guidance_scale: float = 0
    num_inference_steps: float = 4
    seed: int = 0
    accept: str = DEFAULT_ACCEPT

    def to_request_body(self) -> dict[str, Any]:
        """Build the JSON body for ``POST /api/generate``.

        The seed stays on the client: it is kept for display and replay
        only.
        """
        return {
            "prompt": self.prompt,
            "num_inference_steps": self.num_inference_steps,
            "guidance_scale": self.guidance_scale,
            "aspect_ratio": self.aspect_ratio,
            "accept": self.accept,
        }


@dataclass(frozen=True)
class GeneratedImageRecord:
    """One successful generation, as kept in the session history.

    Attributes:
        handle: Displayable resource holding the image bytes.
        prompt: Prompt the image was generated from.
        created_at: UTC time the image arrived.
        settings: Complete settings that produced the image, restored into
            the form when the record is selected.
    """

    handle: ResourceHandle
    prompt: str
    created_at: datetime
    settings: GenerationSettings


class Status(str, Enum):
    """Lifecycle of a session's generation request."""

    IDLE = "idle"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SessionState:
    """Everything the client holds for one browser-like session.

    Attributes
    ----------
    status : Status
        Where the session is in its request lifecycle
    settings : GenerationSettings
        Current contents of the editable form
    current : GeneratedImageRecord | None
        Record currently displayed
    history : list[GeneratedImageRecord]
        Generated images, newest first
    error : str | None
        Message of the last failed generation
    """

    status: Status = Status.IDLE
    settings: GenerationSettings = field(default_factory=GenerationSettings)
    current: GeneratedImageRecord | None = None
    history: list[GeneratedImageRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def is_generating(self) -> bool:
        return self.status is Status.GENERATING

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"SessionState(status={self.status.value}, "
            f"history={len(self.history)}, "
            f"error={self.error!r})"
        )
