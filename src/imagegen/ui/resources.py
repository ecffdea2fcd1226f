"""Session-scoped resource handles for generated image bytes.

A :class:`ResourceHandle` is what the display layer shows: a stable URL plus
the bytes behind it.  Every handle is created by :meth:`HandleRegistry.acquire`
and must be released exactly once through :meth:`HandleRegistry.release`;
releasing drops the bytes.  :meth:`HandleRegistry.check_balanced` confirms
at the end of a session that nothing is still live.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class HandleLifecycleError(Exception):
    """A handle was released twice, released unknown, or leaked."""

    pass


@dataclass(eq=False)
class ResourceHandle:
    """Reference to image bytes that can be displayed until released."""

    content: bytes
    content_type: str
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    released: bool = False

    @property
    def url(self) -> str:
        return f"blob:imagegen/{self.handle_id}"

    def __repr__(self) -> str:
        state = "released" if self.released else f"{len(self.content)} bytes"
        return f"ResourceHandle({self.url}, {self.content_type}, {state})"


class HandleRegistry:
    """Creates, releases and audits resource handles for one session."""

    def __init__(self) -> None:
        self._handles: dict[str, ResourceHandle] = {}
        self.acquired_count = 0
        self.released_count = 0

    def acquire(self, content: bytes, content_type: str) -> ResourceHandle:
        """Wrap ``content`` in a new live handle."""
        handle = ResourceHandle(content=content, content_type=content_type)
        self._handles[handle.handle_id] = handle
        self.acquired_count += 1
        logger.debug(f"Acquired {handle.url} ({len(content)} bytes)")
        return handle

    def release(self, handle: ResourceHandle) -> None:
        """Release a live handle and drop its bytes.

        Raises:
            HandleLifecycleError: If the handle is unknown to this registry
                or was already released.
        """
        if self._handles.get(handle.handle_id) is not handle:
            raise HandleLifecycleError(f"{handle.url} was not acquired by this session")
        if handle.released:
            raise HandleLifecycleError(f"{handle.url} was already released")

        handle.released = True
        handle.content = b""
        self.released_count += 1
        logger.debug(f"Released {handle.url}")

    def live_handles(self) -> list[ResourceHandle]:
        """Handles acquired and not yet released, oldest first."""
        return [h for h in self._handles.values() if not h.released]

    def release_all(self) -> int:
        """Release every live handle; returns how many were released."""
        live = self.live_handles()
        for handle in live:
            self.release(handle)
        return len(live)

    def check_balanced(self) -> None:
        """Assert that every acquired handle was released exactly once.

        Raises:
            HandleLifecycleError: If any handle is still live.
        """
        live = self.live_handles()
        if live or self.acquired_count != self.released_count:
            raise HandleLifecycleError(
                f"{len(live)} handle(s) still live "
                f"(acquired={self.acquired_count}, released={self.released_count})"
            )
