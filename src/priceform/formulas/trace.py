"""Append-only trace of intermediate results for interactive testing.

The trace is a side channel: evaluation results never depend on it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StepKind(str, Enum):
    operator = "operator"
    function = "function"


class TraceStep(BaseModel):
    """One computed sub-result, e.g. ``ceil(3)`` = 3."""

    model_config = ConfigDict(frozen=True)

    kind: StepKind
    expression: str
    result: float


class Trace(BaseModel):
    """Substituted expression plus the steps in evaluation order."""

    model_config = ConfigDict(frozen=True)

    substituted: str
    steps: list[TraceStep] = []


class Tracer:
    """Collects ``TraceStep`` records during a single evaluation."""

    def __init__(self, substituted: str = "") -> None:
        self.substituted = substituted
        self._steps: list[TraceStep] = []

    def add(self, kind: StepKind, expression: str, result: float) -> None:
        self._steps.append(TraceStep(kind=kind, expression=expression, result=result))

    def steps(self) -> list[TraceStep]:
        return list(self._steps)

    def to_trace(self) -> Trace:
        return Trace(substituted=self.substituted, steps=self.steps())
