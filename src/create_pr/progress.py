"""Progress callback system for create-pr.

Lets the CLI (or any embedding application) observe provider selection,
retries, fallbacks and completion without coupling the core to a UI.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProgressEventType(Enum):
    """Types of progress events that can be emitted."""

    STARTED = "started"
    PROGRESS = "progress"
    RETRY = "retry"
    FALLBACK = "fallback"
    COMPLETED = "completed"
    ERROR = "error"
    INFO = "info"


@dataclass
class ProgressEvent:
    """A progress event.

    Attributes:
        event_type: The type of progress event
        message: Human-readable description
        provider: Provider tag value the event relates to, if any
        metadata: Additional context data (attempt, delay, error...)
    """

    event_type: ProgressEventType
    message: str
    provider: str | None = None
    metadata: dict[str, Any] | None = None


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressNotifier:
    """Helper class for emitting progress events."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback

    def notify(self, event: ProgressEvent) -> None:
        if self.callback:
            self.callback(event)

    def _emit(
        self,
        event_type: ProgressEventType,
        message: str,
        provider: str | None,
        metadata: dict[str, Any],
    ) -> None:
        self.notify(
            ProgressEvent(
                event_type=event_type,
                message=message,
                provider=provider,
                metadata=metadata or None,
            )
        )

    def started(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.STARTED, message, provider, kwargs)

    def progress(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.PROGRESS, message, provider, kwargs)

    def retry(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.RETRY, message, provider, kwargs)

    def fallback(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.FALLBACK, message, provider, kwargs)

    def completed(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.COMPLETED, message, provider, kwargs)

    def error(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.ERROR, message, provider, kwargs)

    def info(self, message: str, provider: str | None = None, **kwargs: Any) -> None:
        self._emit(ProgressEventType.INFO, message, provider, kwargs)
