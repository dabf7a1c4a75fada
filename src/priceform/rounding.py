"""Unit-rounding policies applied around formula evaluation.

Each policy is a pure function ``(raw_value, width, height) -> adjusted``.
``width_unit``/``height_unit`` give the billing unit per dimension, e.g.
12 when dimensions are in inches and billing is per whole foot.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Mapping

from priceform.formulas.errors import FormulaNumericError


class RoundingPolicy(str, Enum):
    none = "none"
    ceil_to_unit = "ceil_to_unit"
    area_round_to_unit = "area_round_to_unit"


def ceil_dimension(value: float, unit: float = 1.0) -> float:
    """Round a single dimension up to the next whole *unit*.

    ``ceil_dimension(37, 12) == 48``.  The quotient is rounded to 9
    decimals first so that ``1.1 / 0.1`` does not become 12 units.

    Raises:
        FormulaNumericError: If *unit* is not positive or the rounded
            dimension is not finite.
    """
    if unit <= 0:
        raise FormulaNumericError(f"Rounding unit must be positive, got {unit!r}", name="unit")
    units = round(value / unit, 9)
    if not math.isfinite(units):
        raise FormulaNumericError(f"Dimension {value!r} is too large for unit {unit!r}", name="unit")
    return math.ceil(units) * unit


def no_rounding(
    raw_value: float,
    width: float,
    height: float,
    *,
    width_unit: float = 1.0,
    height_unit: float = 1.0,
) -> float:
    return raw_value


def ceil_to_unit(
    raw_value: float,
    width: float,
    height: float,
    *,
    width_unit: float = 1.0,
    height_unit: float = 1.0,
) -> float:
    """Identity on the price.

    The policy acts on the dimensions before the formula runs; see
    ``prepare_dimensions``.
    """
    return raw_value


def area_round_to_unit(
    raw_value: float,
    width: float,
    height: float,
    *,
    width_unit: float = 1.0,
    height_unit: float = 1.0,
) -> float:
    """Scale *raw_value* by rounded area over original area.

    Width and height are rounded up independently.  A zero original
    area leaves the value unchanged.
    """
    original_area = width * height
    if original_area == 0:
        return raw_value
    rounded_area = ceil_dimension(width, width_unit) * ceil_dimension(height, height_unit)
    return raw_value * rounded_area / original_area


_POLICIES: dict[RoundingPolicy, Callable[..., float]] = {
    RoundingPolicy.none: no_rounding,
    RoundingPolicy.ceil_to_unit: ceil_to_unit,
    RoundingPolicy.area_round_to_unit: area_round_to_unit,
}


def apply_rounding(
    policy: RoundingPolicy | None,
    raw_value: float,
    width: float,
    height: float,
    *,
    width_unit: float = 1.0,
    height_unit: float = 1.0,
) -> float:
    """Dispatch to the function for *policy* (``None`` means no rounding)."""
    fn = _POLICIES[RoundingPolicy(policy or RoundingPolicy.none)]
    return fn(raw_value, width, height, width_unit=width_unit, height_unit=height_unit)


def prepare_dimensions(
    policy: RoundingPolicy | None,
    context: Mapping[str, Any],
    *,
    width_unit: float = 1.0,
    height_unit: float = 1.0,
) -> dict[str, Any]:
    """Return a copy of *context* ready for a formula under *policy*.

    Under ``ceil_to_unit`` the ``width`` and ``height`` entries are rounded
    up to whole units; other policies return an unchanged copy.  Entries
    that are not plain numbers are left for the evaluator to reject.

    An ``area`` equal to ``width * height`` (as added by ``build_context``)
    is recomputed from the rounded dimensions, and ``sqft`` is scaled with
    it.  A caller-supplied area that differs from the product is kept.
    """
    ctx = dict(context)
    if policy is not RoundingPolicy.ceil_to_unit:
        return ctx
    width, height = _as_number(ctx.get("width")), _as_number(ctx.get("height"))
    if width is not None:
        ctx["width"] = ceil_dimension(width, width_unit)
    if height is not None:
        ctx["height"] = ceil_dimension(height, height_unit)
    if width is None or height is None:
        return ctx

    area = _as_number(ctx.get("area"))
    original_area = width * height
    if area is None or not math.isclose(area, original_area):
        return ctx
    rounded_area = ctx["width"] * ctx["height"]
    ctx["area"] = rounded_area
    sqft = _as_number(ctx.get("sqft"))
    if sqft is not None and original_area != 0:
        ctx["sqft"] = sqft * rounded_area / original_area
    return ctx


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None
