"""Built-in math functions available to pricing formulas."""

from __future__ import annotations

import math

from priceform.formulas.errors import FormulaDivisionError, FormulaNumericError
from priceform.functions.registry import register_function


@register_function("ceil", 1)
def fn_ceil(x: float) -> float:
    """Round up to the next whole number."""
    return float(math.ceil(x))


@register_function("floor", 1)
def fn_floor(x: float) -> float:
    """Round down to the previous whole number."""
    return float(math.floor(x))


@register_function("round", 1)
def fn_round(x: float) -> float:
    """Round to the nearest whole number, halves toward positive infinity.

    ``round(2.5) == 3`` and ``round(-2.5) == -2``, unlike Python's
    banker's rounding.
    """
    return float(math.floor(x + 0.5))


@register_function("abs", 1)
def fn_abs(x: float) -> float:
    return abs(x)


@register_function("sqrt", 1)
def fn_sqrt(x: float) -> float:
    if x < 0:
        raise FormulaNumericError(f"sqrt of negative value {x!r}", name="sqrt")
    return math.sqrt(x)


@register_function("min", 2)
def fn_min(a: float, b: float) -> float:
    return min(a, b)


@register_function("max", 2)
def fn_max(a: float, b: float) -> float:
    return max(a, b)


@register_function("pow", 2)
def fn_pow(base: float, exponent: float) -> float:
    """Raise *base* to *exponent*.

    A zero base with a negative exponent is a division by zero.  Results
    that would be complex or overflow are numeric errors.
    """
    if base == 0 and exponent < 0:
        raise FormulaDivisionError()
    try:
        return math.pow(base, exponent)
    except (ValueError, OverflowError) as exc:
        raise FormulaNumericError(
            f"pow({base!r}, {exponent!r}) has no finite real result", name="pow"
        ) from exc
