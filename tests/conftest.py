"""Shared fixtures for priceform tests."""

from __future__ import annotations

import pytest

from priceform.logging import MemorySink, set_sink


@pytest.fixture
def memory_sink():
    """Capture emitted events for the duration of one test."""
    sink = MemorySink()
    previous = set_sink(sink)
    yield sink
    set_sink(previous)
