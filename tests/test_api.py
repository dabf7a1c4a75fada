"""Tests for the public formula API: validate, evaluate, extract, preview."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from priceform.config import EngineConfig
from priceform.formulas import (
    EngineError,
    ErrorKind,
    ErrorPhase,
    EvaluationResult,
    compile_formula,
    evaluate,
    evaluate_expression,
    extract_variables,
    preview,
    validate,
)
from priceform.logging import EventLevel, EventType


# ────────────────────────────────────────────────────────────────
# validate
# ────────────────────────────────────────────────────────────────


class TestValidate:
    def test_valid(self) -> None:
        result = validate("ceil(width / spacing) * rate")
        assert result.valid
        assert result.error is None
        assert result.variables == ["width", "spacing", "rate"]

    def test_unclosed_paren(self) -> None:
        result = validate("width * (height")
        assert not result.valid
        assert result.error.kind is ErrorKind.syntax_error
        assert result.error.phase is ErrorPhase.parse
        assert result.error.position >= 8

    def test_unknown_function_is_still_valid_syntax(self) -> None:
        assert validate("evil(width)").valid

    def test_respects_config_depth(self) -> None:
        assert validate("((((1))))").valid
        assert not validate("((((1))))", EngineConfig(max_depth=2)).valid

    def test_invalid_emits_event(self, memory_sink) -> None:
        validate("width *")
        events = [e for e in memory_sink.events if e.event_type is EventType.formula_invalid]
        assert len(events) == 1
        assert events[0].level is EventLevel.info
        assert events[0].context["position"] == 7


# ────────────────────────────────────────────────────────────────
# evaluate
# ────────────────────────────────────────────────────────────────


class TestEvaluate:
    def test_value(self) -> None:
        result = evaluate("ceil(width / spacing) * rate", {"width": 36, "spacing": 12, "rate": 0.5})
        assert result.ok
        assert result.value == 1.5
        assert result.error is None
        assert result.trace is None

    def test_unit_carried(self) -> None:
        result = evaluate("2 * 3", {}, unit="sqft")
        assert result.unit == "sqft"

    def test_division_by_zero(self) -> None:
        result = evaluate("1 / 0", {})
        assert not result.ok
        assert result.value is None
        assert result.error.kind is ErrorKind.division_by_zero
        assert result.error.phase is ErrorPhase.evaluate

    def test_unknown_variable(self) -> None:
        result = evaluate("width * height", {"width": 2})
        assert result.error.kind is ErrorKind.unknown_variable
        assert result.error.name == "height"

    def test_unknown_function(self) -> None:
        result = evaluate("evil(1)", {})
        assert result.error.kind is ErrorKind.unknown_function
        assert result.error.name == "evil"

    def test_arity(self) -> None:
        result = evaluate("max(1)", {})
        err = result.error
        assert err.kind is ErrorKind.arity_mismatch
        assert (err.name, err.expected_min, err.expected_max, err.actual) == ("max", 2, 2, 1)

    def test_syntax_error(self) -> None:
        result = evaluate("2 +", {})
        assert result.error.kind is ErrorKind.syntax_error
        assert result.error.position == 3

    def test_garbage_never_raises(self) -> None:
        for text in ["@@", "", ")(", "1..2", "ceil(", "__import__('os')"]:
            result = evaluate(text, {})
            assert result.error is not None

    def test_numeric_error(self) -> None:
        result = evaluate("sqrt(x)", {"x": -4})
        assert result.error.kind is ErrorKind.numeric_error

    def test_oversized_literal_is_syntax_error(self) -> None:
        result = evaluate("1" + "0" * 400 + " * rate", {"rate": 1})
        assert result.error.kind is ErrorKind.syntax_error
        assert result.error.position == 0

    def test_oversized_variable(self) -> None:
        result = evaluate("x + 1", {"x": 10**400})
        assert result.error.kind is ErrorKind.numeric_error
        assert result.error.name == "x"

    def test_infinite_variable(self) -> None:
        result = evaluate("x + 1", {"x": float("inf")})
        assert result.error.kind is ErrorKind.numeric_error

    def test_deterministic(self) -> None:
        ctx = {"width": 37.5, "height": 12.25, "rate": 0.41}
        assert evaluate("width * height * rate", ctx) == evaluate("width * height * rate", ctx)

    def test_evaluate_expression_reuses_compiled(self) -> None:
        expr = compile_formula("width * rate")
        first = evaluate_expression(expr, {"width": 10, "rate": 2})
        second = evaluate_expression(expr, {"width": 3, "rate": 2})
        assert (first.value, second.value) == (20.0, 6.0)

    def test_failure_emits_warning(self, memory_sink) -> None:
        evaluate("1 / 0", {})
        events = [e for e in memory_sink.events if e.event_type is EventType.formula_failed]
        assert len(events) == 1
        assert events[0].level is EventLevel.warning
        assert events[0].error_code == "division_by_zero"
        assert events[0].context["formula"] == "1 / 0"


class TestEvaluationResult:
    def test_needs_value_or_error(self) -> None:
        with pytest.raises(ValidationError):
            EvaluationResult()

    def test_rejects_both(self) -> None:
        error = EngineError(kind=ErrorKind.division_by_zero, message="x")
        with pytest.raises(ValidationError):
            EvaluationResult(value=1.0, error=error)


class TestEngineError:
    def test_for_formula_copies(self) -> None:
        error = EngineError(kind=ErrorKind.unknown_variable, message="m", name="width")
        tagged = error.for_formula("base")
        assert tagged.formula == "base"
        assert error.formula is None
        assert tagged.name == "width"

    def test_collision_phase(self) -> None:
        error = EngineError(kind=ErrorKind.context_collision, message="m")
        assert error.phase is ErrorPhase.configuration

    def test_serializes(self) -> None:
        error = EngineError(kind=ErrorKind.syntax_error, message="m", position=3)
        assert error.model_dump(mode="json")["kind"] == "syntax_error"


# ────────────────────────────────────────────────────────────────
# extract_variables / preview
# ────────────────────────────────────────────────────────────────


class TestExtractVariables:
    def test_simple_product(self) -> None:
        assert extract_variables("width * height * rate") == ["width", "height", "rate"]
        assert extract_variables("ceil(width)") == ["width"]

    def test_order_and_functions(self) -> None:
        assert extract_variables("ceil(width / spacing) * rate") == ["width", "spacing", "rate"]

    def test_duplicates(self) -> None:
        assert extract_variables("a + a * b") == ["a", "b"]

    def test_similar_names(self) -> None:
        assert extract_variables("min(width, max_width)") == ["width", "max_width"]

    def test_unparseable(self) -> None:
        assert extract_variables("width * (") == []

    def test_constant(self) -> None:
        assert extract_variables("12 * 3") == []


class TestPreview:
    def test_substitution(self) -> None:
        text = "ceil(width / spacing) * rate"
        assert preview(text, {"width": 36, "spacing": 12, "rate": 0.5}) == "ceil(36 / 12) * 0.5"

    def test_function_name_not_substituted(self) -> None:
        assert preview("round(round)", {"round": 2.4}) == "round(2.4)"

    def test_prefix_names_not_substituted(self) -> None:
        assert preview("w * width", {"w": 2, "width": 3}) == "2 * 3"

    def test_unbound_left_as_name(self) -> None:
        assert preview("width * rate", {"width": 10}) == "10 * rate"

    def test_unparseable(self) -> None:
        assert preview("width *", {"width": 1}) is None
