"""Structured event logging for priceform.

Provides a unified event schema, pluggable sinks, and safe emit helpers
that never raise uncaught exceptions.
"""

from priceform.logging.events import (
    EngineEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    get_sink,
    set_sink,
    truncate_context,
)
from priceform.logging.sink import EventSink, MemorySink

__all__ = [
    "EngineEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "MemorySink",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "get_sink",
    "set_sink",
    "truncate_context",
]
