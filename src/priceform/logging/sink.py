"""Event sinks.

- ``MemorySink`` keeps events in a list, for hosts that display them
  in-process (and for tests).
- ``EventSink`` appends one JSON line per event to an NDJSON file.

Writes use ``json.dumps(sort_keys=True)`` for deterministic output.
Each append acquires an exclusive ``fcntl.flock`` on the target file;
on platforms without ``fcntl`` (Windows), locking is skipped.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any

from priceform.logging.events import EngineEvent

# Try to import fcntl for file locking (Unix only)
try:
    import fcntl

    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False


class MemorySink:
    """Thread-safe in-memory event list."""

    def __init__(self) -> None:
        self._events: list[EngineEvent] = []
        self._lock = threading.Lock()

    def write(self, event: EngineEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[EngineEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class EventSink:
    """Append-only NDJSON log writer with file locking."""

    def __init__(self, path: Path, *, fsync: bool = False) -> None:
        self.path = path
        self._fsync = fsync
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, event: EngineEvent) -> None:
        """Append *event* as one JSON line."""
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"
        self._append(line)

    def read(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Read events, most-recent-first, with optional filters."""
        if not self.path.exists():
            return []
        events: list[dict[str, Any]] = []
        with open(self.path, encoding="utf-8") as f:
            for raw in f:
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    events.append(json.loads(raw))
                except json.JSONDecodeError:
                    continue
        if level:
            events = [e for e in events if e.get("level") == level]
        if event_type:
            events = [e for e in events if e.get("event_type") == event_type]
        events.reverse()
        return events[:limit]

    def _append(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            if _HAS_FCNTL:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                f.write(line)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            finally:
                if _HAS_FCNTL:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
