"""State management for the client-side generation session.

:class:`SessionStore` is the single owner of :class:`SessionState` and the
only code that changes it.  Each public method is one transition of the
request lifecycle::

    IDLE ──begin()──> GENERATING ──succeed()──> SUCCEEDED ──begin()──> ...
                           │
                           └──fail()──> FAILED ──begin()──> ...

SUCCEEDED and FAILED behave like IDLE: a new generation can start, the form
can be edited and history entries can be selected.  Only GENERATING blocks
those actions.

Handle discipline: ``begin()`` releases the handle of the record currently
displayed, since it is about to be replaced; ``teardown()`` releases every
handle still live.  No other transition releases anything, so each handle is
released exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from .models import GeneratedImageRecord, GenerationSettings, SessionState, Status
from .resources import HandleRegistry

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """A transition was requested from a state that does not allow it."""

    pass


class SessionStore:
    """Owns the session state and applies lifecycle transitions.

    Attributes:
        state: The current :class:`SessionState` (read it, do not mutate it).
        handles: Registry of the resource handles created for this session.
    """

    def __init__(
        self,
        settings: GenerationSettings | None = None,
        handles: HandleRegistry | None = None,
    ) -> None:
        self.state = SessionState(settings=settings or GenerationSettings())
        self.handles = handles or HandleRegistry()
        self._in_flight: GenerationSettings | None = None

    def _require_not_generating(self, action: str) -> None:
        if self.state.is_generating:
            raise SessionStateError(f"Cannot {action} while a generation is in flight")

    def update_settings(self, **changes: Any) -> GenerationSettings:
        """Edit the form.

        Raises:
            SessionStateError: While generating.
            TypeError: For unknown setting names.
        """
        self._require_not_generating("edit settings")
        self.state.settings = replace(self.state.settings, **changes)
        return self.state.settings

    def begin(self) -> GenerationSettings:
        """Start a generation with the current form contents.

        Releases the handle of the displayed record (its history entry stays,
        but its bytes are gone) and clears any previous error.

        Returns:
            Snapshot of the settings being submitted.

        Raises:
            SessionStateError: While generating or with an empty prompt.
        """
        self._require_not_generating("start a generation")
        if not self.state.settings.prompt:
            raise SessionStateError("Cannot start a generation without a prompt")

        current = self.state.current
        if current is not None and not current.handle.released:
            self.handles.release(current.handle)

        self._in_flight = self.state.settings
        self.state.current = None
        self.state.error = None
        self.state.status = Status.GENERATING
        logger.info(f"Generation started: {self._in_flight.prompt!r}")
        return self._in_flight

    def succeed(self, content: bytes, content_type: str) -> GeneratedImageRecord:
        """Record a successful generation.

        Acquires a handle for ``content``, prepends the new record to history
        and displays it.

        Raises:
            SessionStateError: If no generation is in flight.
        """
        if not self.state.is_generating or self._in_flight is None:
            raise SessionStateError("No generation in flight")

        handle = self.handles.acquire(content, content_type)
        record = GeneratedImageRecord(
            handle=handle,
            prompt=self._in_flight.prompt,
            created_at=datetime.now(timezone.utc),
            settings=self._in_flight,
        )
        self.state.history.insert(0, record)
        self.state.current = record
        self.state.status = Status.SUCCEEDED
        self._in_flight = None
        logger.info(f"Generation succeeded: {handle.url} (history={len(self.state.history)})")
        return record

    def fail(self, message: str) -> None:
        """Record a failed generation; history is left untouched.

        Raises:
            SessionStateError: If no generation is in flight.
        """
        if not self.state.is_generating:
            raise SessionStateError("No generation in flight")

        self.state.error = message
        self.state.status = Status.FAILED
        self._in_flight = None
        logger.warning(f"Generation failed: {message}")

    def select(self, index: int) -> GeneratedImageRecord:
        """Display a history entry and restore its settings into the form.

        History order is unchanged and no handle is released.

        Raises:
            SessionStateError: While generating or for an index outside the
                history.
        """
        self._require_not_generating("select a history entry")
        if not 0 <= index < len(self.state.history):
            raise SessionStateError(f"No history entry at index {index}")

        record = self.state.history[index]
        self.state.current = record
        self.state.settings = record.settings
        return record

    def teardown(self) -> int:
        """End the session, releasing every handle still live.

        Returns:
            Number of handles released.
        """
        released = self.handles.release_all()
        self.state.current = None
        self.state.history.clear()
        self.state.status = Status.IDLE
        self._in_flight = None
        logger.info(f"Session torn down, released {released} handle(s)")
        return released
