"""Entry points used by the record-editing UI.

None of these functions raise for bad formula text or bad variable
values: every failure is returned as an ``EngineError`` record.
"""

from __future__ import annotations

from typing import Any, Mapping

from priceform.config import EngineConfig
from priceform.formulas.errors import FormulaError, FormulaParseError
from priceform.formulas.evaluator import evaluate_formula
from priceform.formulas.nodes import FormulaExpression
from priceform.formulas.parser import compile_formula
from priceform.formulas.render import render
from priceform.formulas.results import EvaluationResult, ValidationResult
from priceform.formulas.trace import Tracer
from priceform.logging.events import EventType, emit_info, emit_warning


def _max_depth(config: EngineConfig | None) -> int:
    return (config or EngineConfig()).max_depth


def validate(text: str, config: EngineConfig | None = None) -> ValidationResult:
    """Parse-only check of *text*.

    Returns:
        ``valid=True`` with the formula's variables, or ``valid=False``
        with a ``syntax_error`` carrying the character offset.
    """
    try:
        expr = compile_formula(text, max_depth=_max_depth(config))
    except FormulaParseError as exc:
        error = exc.to_error()
        emit_info(
            EventType.formula_invalid,
            error.message,
            {"formula": text, "position": error.position},
        )
        return ValidationResult(valid=False, error=error)
    return ValidationResult(valid=True, variables=list(expr.variables))


def evaluate_expression(
    expr: FormulaExpression,
    variables: Mapping[str, Any],
    *,
    unit: str | None = None,
    trace: bool = False,
) -> EvaluationResult:
    """Evaluate an already-compiled formula.

    Args:
        expr: Result of ``compile_formula()``; may be shared across calls.
        variables: Variable bindings for this evaluation.
        unit: Unit label copied onto the result.
        trace: Record the substituted expression and intermediate steps.
    """
    tracer = Tracer(render(expr.root, variables)) if trace else None
    try:
        value = evaluate_formula(expr, variables, tracer=tracer)
    except FormulaError as exc:
        error = exc.to_error()
        emit_warning(
            EventType.formula_failed,
            error.message,
            {"formula": expr.text, "kind": error.kind.value},
            error_code=error.kind.value,
        )
        return EvaluationResult(
            unit=unit,
            error=error,
            trace=tracer.to_trace() if tracer is not None else None,
        )
    return EvaluationResult(
        value=value,
        unit=unit,
        trace=tracer.to_trace() if tracer is not None else None,
    )


def evaluate(
    text: str,
    variables: Mapping[str, Any],
    *,
    unit: str | None = None,
    trace: bool = False,
    config: EngineConfig | None = None,
) -> EvaluationResult:
    """Tokenize, parse and evaluate *text* in one call."""
    try:
        expr = compile_formula(text, max_depth=_max_depth(config))
    except FormulaParseError as exc:
        return EvaluationResult(unit=unit, error=exc.to_error())
    return evaluate_expression(expr, variables, unit=unit, trace=trace)


def extract_variables(text: str, config: EngineConfig | None = None) -> list[str]:
    """Free variable names of *text* in first-appearance order.

    Best-effort: an unparseable formula yields an empty list.
    """
    try:
        expr = compile_formula(text, max_depth=_max_depth(config))
    except FormulaParseError:
        return []
    return list(expr.variables)


def preview(
    text: str,
    variables: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> str | None:
    """Formula text with bound variables replaced by their values.

    Returns ``None`` when the formula does not parse.
    """
    try:
        expr = compile_formula(text, max_depth=_max_depth(config))
    except FormulaParseError:
        return None
    return render(expr.root, variables)
