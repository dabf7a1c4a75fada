"""Tests for formula evaluation and the built-in function table."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest

from priceform.formulas import (
    FormulaArityError,
    FormulaDivisionError,
    FormulaFunctionError,
    FormulaNumericError,
    FormulaRefError,
    compile_formula,
    evaluate_formula,
)
from priceform.functions import get_function, is_registered, register_function, registered_functions


def _eval(formula: str, ctx: dict | None = None) -> Any:
    """Parse and evaluate a formula string."""
    return evaluate_formula(compile_formula(formula), ctx or {})


# ────────────────────────────────────────────────────────────────
# Arithmetic
# ────────────────────────────────────────────────────────────────


class TestEvaluator:
    def test_grommet_example(self) -> None:
        ctx = {"width": 36, "spacing": 12, "rate": 0.5}
        assert _eval("ceil(width / spacing) * rate", ctx) == 1.5

    def test_result_is_float(self) -> None:
        assert isinstance(_eval("2 + 2"), float)

    def test_int_context_values(self) -> None:
        assert _eval("width * height", {"width": 3, "height": 4}) == 12.0

    def test_context_not_mutated(self) -> None:
        ctx = {"width": 36.0, "rate": 0.5}
        snapshot = dict(ctx)
        _eval("width * rate", ctx)
        assert ctx == snapshot

    def test_expression_reused_across_contexts(self) -> None:
        expr = compile_formula("width * rate")
        assert evaluate_formula(expr, {"width": 10, "rate": 2}) == 20.0
        assert evaluate_formula(expr, {"width": 5, "rate": 3}) == 15.0

    def test_deterministic(self) -> None:
        ctx = {"width": 37.25, "height": 11.5, "rate": 0.37}
        text = "ceil(width * height / 144) * rate + floor(width / 12)"
        assert _eval(text, ctx) == _eval(text, ctx)

    def test_concurrent_evaluation(self) -> None:
        expr = compile_formula("width * height * rate")
        contexts = [{"width": w, "height": 2, "rate": 0.5} for w in range(200)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda c: evaluate_formula(expr, c), contexts))
        assert results == [float(w) for w in range(200)]


# ────────────────────────────────────────────────────────────────
# Functions
# ────────────────────────────────────────────────────────────────


class TestFunctions:
    @pytest.mark.parametrize(
        "formula, expected",
        [
            ("ceil(2.1)", 3.0),
            ("ceil(-2.1)", -2.0),
            ("floor(2.9)", 2.0),
            ("floor(-2.1)", -3.0),
            ("round(2.4)", 2.0),
            ("round(2.5)", 3.0),
            ("round(-2.5)", -2.0),
            ("abs(-3)", 3.0),
            ("min(3, 4)", 3.0),
            ("max(3, 4)", 4.0),
            ("pow(2, 10)", 1024.0),
            ("sqrt(16)", 4.0),
        ],
    )
    def test_builtin(self, formula: str, expected: float) -> None:
        assert _eval(formula) == expected

    def test_case_insensitive_names(self) -> None:
        assert _eval("CEIL(2.1)") == 3.0
        assert _eval("Max(1, 2)") == 2.0

    def test_nested_calls(self) -> None:
        assert _eval("max(ceil(a), floor(b))", {"a": 1.2, "b": 5.8}) == 5.0

    def test_registry_contents(self) -> None:
        names = set(registered_functions())
        assert {"ceil", "floor", "round", "abs", "min", "max", "pow", "sqrt"} <= names
        assert is_registered("CEIL")
        assert not is_registered("eval")

    def test_registry_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            registered_functions()["evil"] = get_function("ceil")

    def test_register_function(self) -> None:
        @register_function("TRIPLE_FOR_TEST", 1)
        def fn_triple(x: float) -> float:
            return x * 3

        assert _eval("triple_for_test(2)") == 6.0
        assert get_function("triple_for_test").impl is fn_triple


# ────────────────────────────────────────────────────────────────
# Errors
# ────────────────────────────────────────────────────────────────


class TestEvaluationErrors:
    def test_division_by_zero(self) -> None:
        with pytest.raises(FormulaDivisionError):
            _eval("1 / 0")

    def test_division_by_computed_zero(self) -> None:
        with pytest.raises(FormulaDivisionError) as exc_info:
            _eval("1 / (2 - 2)")
        assert exc_info.value.position is not None

    def test_unknown_variable(self) -> None:
        with pytest.raises(FormulaRefError) as exc_info:
            _eval("width * height", {"width": 36})
        assert exc_info.value.ref_name == "height"
        assert exc_info.value.available == ["width"]
        assert exc_info.value.position == 8

    def test_oversized_int_variable(self) -> None:
        with pytest.raises(FormulaNumericError) as exc_info:
            _eval("x + 1", {"x": 10**400})
        assert exc_info.value.position == 0

    def test_nan_variable(self) -> None:
        with pytest.raises(FormulaNumericError):
            _eval("x", {"x": float("nan")})

    def test_variables_case_sensitive(self) -> None:
        with pytest.raises(FormulaRefError):
            _eval("Width", {"width": 1})

    def test_unknown_function(self) -> None:
        with pytest.raises(FormulaFunctionError) as exc_info:
            _eval("evil(1)")
        assert exc_info.value.func_name == "evil"
        assert not isinstance(exc_info.value, FormulaArityError)

    def test_no_escape_to_python(self) -> None:
        with pytest.raises(FormulaFunctionError):
            _eval("__import__(os)", {"os": 1})

    def test_arguments_evaluated_before_lookup(self) -> None:
        with pytest.raises(FormulaRefError):
            _eval("evil(x)")

    def test_too_many_arguments(self) -> None:
        with pytest.raises(FormulaArityError) as exc_info:
            _eval("ceil(1, 2)")
        err = exc_info.value
        assert (err.func_name, err.expected_min, err.expected_max, err.actual) == ("ceil", 1, 1, 2)
        assert str(err) == "ceil requires 1 argument, got 2"

    def test_too_few_arguments(self) -> None:
        with pytest.raises(FormulaArityError) as exc_info:
            _eval("min(1)")
        assert exc_info.value.actual == 1
        assert "2 arguments" in str(exc_info.value)

    def test_zero_arguments(self) -> None:
        with pytest.raises(FormulaArityError) as exc_info:
            _eval("pow()")
        assert exc_info.value.actual == 0

    def test_sqrt_negative(self) -> None:
        with pytest.raises(FormulaNumericError) as exc_info:
            _eval("sqrt(-1)")
        assert exc_info.value.name == "sqrt"
        assert exc_info.value.position == 0

    def test_pow_zero_negative_exponent(self) -> None:
        with pytest.raises(FormulaDivisionError):
            _eval("pow(0, -1)")

    def test_pow_complex_result(self) -> None:
        with pytest.raises(FormulaNumericError):
            _eval("pow(-8, 0.5)")

    def test_pow_overflow(self) -> None:
        with pytest.raises(FormulaNumericError):
            _eval("pow(10, 400)")

    def test_overflow_in_multiplication(self) -> None:
        with pytest.raises(FormulaNumericError):
            _eval("a * a", {"a": 1e200})

    @pytest.mark.parametrize("bad", [True, "36", None, float("nan"), float("inf")])
    def test_non_numeric_context_value(self, bad: Any) -> None:
        with pytest.raises(FormulaNumericError) as exc_info:
            _eval("width * 2", {"width": bad})
        assert exc_info.value.name == "width"
