"""Outbound notifications published after temp media state changes commit.

Publishing only enqueues: listeners run when the channel is drained by
:meth:`EventDispatcher.deliver_pending` (the application lifespan does this
periodically), so a slow or failing listener never affects the operation that
produced the event.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from .media.media_models import TempMedia, TransferResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TempMediaUploaded:
    record: TempMedia
    url: str


@dataclass(frozen=True, slots=True)
class TempMediaExpired:
    record: TempMedia


@dataclass(frozen=True, slots=True)
class MediaTransferred:
    owner_type: str
    owner_id: str
    result: TransferResult


TempMediaEvent = Union[TempMediaUploaded, TempMediaExpired, MediaTransferred]
Listener = Callable[[TempMediaEvent], None]


@dataclass
class EventDispatcher:
    """Bounded in-process channel with fire-and-forget semantics."""

    enabled: bool = True
    queue_name: str = "default"
    max_pending: int = 1_000
    _outbox: queue.Queue[TempMediaEvent] = field(init=False, repr=False)
    _listeners: list[Listener] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self._outbox = queue.Queue(maxsize=self.max_pending)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def publish(self, event: TempMediaEvent) -> bool:
        """Enqueue ``event``; returns ``False`` when it was dropped."""
        if not self.enabled:
            return False
        try:
            self._outbox.put_nowait(event)
        except queue.Full:
            logger.warning(
                "events.dropped",
                extra={"event": type(event).__name__, "queue": self.queue_name},
            )
            return False
        return True

    def pending(self) -> int:
        return self._outbox.qsize()

    def drain(self) -> list[TempMediaEvent]:
        """Remove and return every queued event without delivering it."""
        events: list[TempMediaEvent] = []
        while True:
            try:
                events.append(self._outbox.get_nowait())
            except queue.Empty:
                return events

    def deliver_pending(self) -> int:
        """Hand queued events to listeners; listener errors are logged."""
        delivered = 0
        for event in self.drain():
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception(
                        "events.listener_failed",
                        extra={"event": type(event).__name__, "queue": self.queue_name},
                    )
            delivered += 1
        return delivered
