"""Run state shared between the batch scheduler and front-ends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .errors import ErrorCategory, ErrorRecord, RunInProgressError
from .structures import MediaMode, RunPhase


@dataclass(frozen=True)
class RunSnapshot:
    """Read-only view of a run handed to subscribers."""

    phase: RunPhase
    progress_percent: int
    status_message: str
    media_mode: MediaMode
    warnings: Tuple[ErrorRecord, ...] = ()
    error_category: Optional[ErrorCategory] = None

    @property
    def processing(self) -> bool:
        return self.phase.active


Subscriber = Callable[[RunSnapshot], None]


@dataclass
class RunState:
    """Mutable state of one run; only the scheduler writes to it."""

    phase: RunPhase = RunPhase.IDLE
    progress_percent: int = 0
    status_message: str = ""
    media_mode: MediaMode = MediaMode.FULL
    warnings: List[ErrorRecord] = field(default_factory=list)
    error_category: Optional[ErrorCategory] = None
    _subscribers: List[Subscriber] = field(default_factory=list, repr=False)

    @property
    def processing(self) -> bool:
        return self.phase.active

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def snapshot(self) -> RunSnapshot:
        return RunSnapshot(
            phase=self.phase,
            progress_percent=self.progress_percent,
            status_message=self.status_message,
            media_mode=self.media_mode,
            warnings=tuple(self.warnings),
            error_category=self.error_category,
        )

    def begin(self, media_mode: MediaMode) -> None:
        """Reset for a new run; refuses while another run is active."""

        if self.processing:
            raise RunInProgressError("A translation run is already in progress.")
        self.phase = RunPhase.READING
        self.progress_percent = 0
        self.media_mode = media_mode
        self.warnings = []
        self.error_category = None
        self.status_message = "Reading subtitle file..."
        self._notify()

    def transition(self, phase: RunPhase, message: str) -> None:
        self.phase = phase
        self.status_message = message
        self._notify()

    def set_status(self, message: str) -> None:
        self.status_message = message
        self._notify()

    def set_media_mode(self, media_mode: MediaMode) -> None:
        self.media_mode = media_mode
        self._notify()

    def advance(self, percent: int, message: Optional[str] = None) -> None:
        """Move progress forward; values lower than the current one are ignored."""

        self.progress_percent = max(self.progress_percent, min(100, percent))
        if message is not None:
            self.status_message = message
        self._notify()

    def warn(self, category: ErrorCategory, message: str, details: Optional[str] = None) -> None:
        self.warnings.append(ErrorRecord(category=category, message=message, details=details))
        self._notify()

    def complete(self, message: str) -> None:
        self.phase = RunPhase.DONE
        self.progress_percent = 100
        self.status_message = message
        self._notify()

    def fail(self, message: str, category: Optional[ErrorCategory] = None) -> None:
        self.phase = RunPhase.FAILED
        self.error_category = category
        self.status_message = message
        self._notify()

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)
