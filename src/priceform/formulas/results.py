"""Result records returned by the public formula API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

from priceform.formulas.errors import EngineError
from priceform.formulas.trace import Trace


class ValidationResult(BaseModel):
    """Outcome of a parse-only check."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error: EngineError | None = None
    variables: list[str] = []


class EvaluationResult(BaseModel):
    """Either a value or an error, never both.

    ``trace`` is only populated when the caller asked for it, and may
    accompany an error to show how far evaluation got.
    """

    model_config = ConfigDict(frozen=True)

    value: float | None = None
    unit: str | None = None
    trace: Trace | None = None
    error: EngineError | None = None

    @model_validator(mode="after")
    def _value_xor_error(self) -> EvaluationResult:
        if (self.value is None) == (self.error is None):
            raise ValueError("EvaluationResult needs exactly one of value or error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None
