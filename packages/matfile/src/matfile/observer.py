"""Tracing hooks the codec reports through instead of printing."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TextIO


class Observer(Protocol):
    def emit(self, event: str, **payload: object) -> None: ...


class NullObserver:
    """Observer that discards every event."""

    def emit(self, event: str, **payload: object) -> None:
        return None


NULL_OBSERVER = NullObserver()


@dataclass(slots=True)
class JsonLogger:
    """Observer emitting one JSON record per event.

    Records carry ``timestamp`` (UTC, ``Z`` suffix), ``component`` and
    ``event`` followed by the event payload.
    """

    component: str = "matfile"
    stream: TextIO | None = None

    def emit(self, event: str, **payload: object) -> None:
        record: dict[str, object] = {
            "timestamp": datetime.now(tz=UTC).isoformat().replace("+00:00", "Z"),
            "component": self.component,
            "event": event,
        }
        record.update(payload)
        target = self.stream if self.stream is not None else sys.stdout
        target.write(json.dumps(record, ensure_ascii=False, default=str))
        target.write("\n")


@dataclass(slots=True)
class RecordingObserver:
    """Observer keeping events in memory, for tests and embedding callers."""

    events: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def emit(self, event: str, **payload: object) -> None:
        self.events.append((event, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


__all__ = [
    "JsonLogger",
    "NULL_OBSERVER",
    "NullObserver",
    "Observer",
    "RecordingObserver",
]
