"""Progress reporting as a consumable, finite stream of events."""

from __future__ import annotations

import queue
from typing import Iterator, Union

from .types import ProgressEvent, StepCompletedEvent, StepRecord

Event = Union[ProgressEvent, StepCompletedEvent]

MILESTONES = {
    "content_extraction": (25, "Content extracted"),
    "intermediate_generation": (50, "Intermediate representation generated"),
    "container_generation": (75, "DOCX container generated"),
    "post_processing": (100, "Conversion completed"),
}

_CLOSED = object()


class ProgressChannel:
    """Single-consumer event stream for one conversion.

    The producer publishes events and closes the channel when the conversion
    is over. Iterating yields events lazily until the channel is closed; a
    second iteration yields nothing because events are consumed.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: Event) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish on a closed progress channel")
        self._queue.put(event)

    def progress(self, percentage: int, message: str) -> None:
        self.publish(ProgressEvent(percentage=percentage, message=message))

    def step_completed(self, record: StepRecord) -> None:
        self.publish(StepCompletedEvent(record=record))

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[Event]:
        if self._drained:
            return
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._drained = True
                return
            yield item


__all__ = ["Event", "MILESTONES", "ProgressChannel"]
