"""VariableContext construction.

A context is a plain ``dict[str, float]``.  Helpers here add the derived
variables operators expect (``area``, ``sqft``) and pre-fill test values
for the live formula tester.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from priceform.config import EngineConfig
from priceform.formulas.api import extract_variables


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def build_context(
    values: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> dict[str, Any]:
    """Copy *values* and add derived variables.

    With numeric ``width`` and ``height`` present, ``area`` is their
    product and ``sqft`` is ``area / config.sqft_divisor``.  Values the
    caller supplied are never replaced.

    Each entry of ``config.aliases`` binds a variable to another field's
    value.  An alias whose source field is absent stays unbound, so a
    formula using it fails with ``unknown_variable``.
    """
    config = config or EngineConfig()
    ctx = dict(values)
    for alias, source in config.aliases.items():
        if alias not in ctx and source in values:
            ctx[alias] = values[source]
    if not config.derive_area:
        return ctx
    width, height = ctx.get("width"), ctx.get("height")
    if _is_number(width) and _is_number(height):
        area = float(width) * float(height)
        ctx.setdefault("area", area)
        ctx.setdefault("sqft", area / config.sqft_divisor)
    return ctx


def default_values(names: Iterable[str], config: EngineConfig | None = None) -> dict[str, float]:
    """Suggested test value for each name in *names*."""
    config = config or EngineConfig()
    return {
        name: float(config.default_values.get(name, config.fallback_value))
        for name in names
    }


def sample_context(
    text: str,
    overrides: Mapping[str, Any] | None = None,
    config: EngineConfig | None = None,
) -> dict[str, Any]:
    """Context for trying out *text*: defaults for its variables plus *overrides*.

    Values in *overrides* win, including names the formula no longer uses,
    so edits in a test panel survive formula changes.
    """
    ctx: dict[str, Any] = default_values(extract_variables(text, config), config)
    if overrides:
        ctx.update(overrides)
    return ctx
