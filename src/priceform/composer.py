"""Formula Composer: many named formulas, one total.

Each active formula is evaluated against the same context, rounded by
its own policy, and summed.  A failing active formula is reported and
left out of the total; the remaining formulas are still priced.
Inactive formulas are never parsed, so a broken draft cannot block an
order that does not use it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from priceform.config import EngineConfig
from priceform.formulas.errors import EngineError, FormulaError
from priceform.formulas.evaluator import evaluate_formula, resolve_variable
from priceform.formulas.nodes import FormulaExpression
from priceform.formulas.parser import MAX_DEPTH, compile_formula
from priceform.logging.events import EventType, emit_info, emit_warning
from priceform.rounding import RoundingPolicy, apply_rounding, prepare_dimensions

logger = logging.getLogger(__name__)


class NamedFormula(BaseModel):
    """A formula as configured on a product.

    The parsed expression is cached on first use and re-parsed only if
    ``expression`` or the nesting limit changes.
    """

    name: str
    expression: str
    active: bool = True
    order: int = 0
    rounding: RoundingPolicy | None = None
    rounding_unit: float | None = Field(default=None, gt=0)
    unit: str | None = None

    _compiled: FormulaExpression | None = PrivateAttr(default=None)
    _compiled_depth: int | None = PrivateAttr(default=None)

    def compiled(self, max_depth: int = MAX_DEPTH) -> FormulaExpression:
        """Return the parsed expression, parsing it if needed.

        Raises:
            FormulaParseError: If the expression has invalid syntax.
        """
        if (
            self._compiled is None
            or self._compiled.text != self.expression
            or self._compiled_depth != max_depth
        ):
            self._compiled = compile_formula(self.expression, max_depth=max_depth)
            self._compiled_depth = max_depth
        return self._compiled


class LineStatus(str, Enum):
    priced = "priced"
    disabled = "disabled"
    failed = "failed"


class FormulaLine(BaseModel):
    """One formula's contribution to the total."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: LineStatus
    value: float = 0.0
    raw_value: float | None = None
    unit: str | None = None
    error: EngineError | None = None


class FormulaFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    error: EngineError


class CompositionResult(BaseModel):
    """Total of all priced formulas plus the per-formula breakdown."""

    model_config = ConfigDict(frozen=True)

    total: float
    lines: list[FormulaLine]
    failures: list[FormulaFailure] = []

    @property
    def ok(self) -> bool:
        return not self.failures


def _price(formula: NamedFormula, context: Mapping[str, Any], config: EngineConfig) -> tuple[float, float]:
    """Evaluate and round one formula.  Returns ``(raw, adjusted)``."""
    expr = formula.compiled(max_depth=config.max_depth)
    unit = config.dimension_unit if formula.rounding_unit is None else formula.rounding_unit
    policy = formula.rounding or RoundingPolicy.none

    ctx = prepare_dimensions(policy, context, width_unit=unit, height_unit=unit)
    raw = evaluate_formula(expr, ctx)

    if policy is RoundingPolicy.area_round_to_unit:
        width = resolve_variable("width", context)
        height = resolve_variable("height", context)
    else:
        width = height = 0.0
    adjusted = apply_rounding(policy, raw, width, height, width_unit=unit, height_unit=unit)
    return raw, adjusted


def compose(
    formulas: Sequence[NamedFormula],
    context: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> CompositionResult:
    """Evaluate every active formula against *context* and sum the results.

    Formulas are processed by ``order``; ties keep their input order.

    Args:
        formulas: The product's formulas, active and inactive.
        context: Shared variable bindings.  Not mutated.
        config: Engine settings (nesting limit, default rounding unit).

    Returns:
        The total, one line per formula, and one failure per active
        formula that could not be priced.
    """
    config = config or EngineConfig()
    lines: list[FormulaLine] = []
    failures: list[FormulaFailure] = []
    total = 0.0

    for formula in sorted(formulas, key=lambda f: f.order):
        if not formula.active:
            lines.append(FormulaLine(name=formula.name, status=LineStatus.disabled, unit=formula.unit))
            continue
        try:
            raw, adjusted = _price(formula, context, config)
        except FormulaError as exc:
            error = exc.to_error().for_formula(formula.name)
            failures.append(FormulaFailure(name=formula.name, error=error))
            lines.append(
                FormulaLine(
                    name=formula.name,
                    status=LineStatus.failed,
                    unit=formula.unit,
                    error=error,
                )
            )
            emit_warning(
                EventType.composition_formula_failed,
                error.message,
                {"formula_name": formula.name, "formula": formula.expression, "kind": error.kind.value},
                error_code=error.kind.value,
            )
            continue
        total += adjusted
        lines.append(
            FormulaLine(
                name=formula.name,
                status=LineStatus.priced,
                value=adjusted,
                raw_value=raw,
                unit=formula.unit,
            )
        )

    logger.debug("composed %d formulas, %d failed", len(lines), len(failures))
    emit_info(
        EventType.composition_completed,
        f"Composed {len(lines)} formulas",
        {"total": total, "formula_count": len(lines), "failure_count": len(failures)},
    )
    return CompositionResult(total=total, lines=lines, failures=failures)
