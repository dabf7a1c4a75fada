"""Batch evaluation of one formula over many contexts.

The formula is parsed once and evaluated per row.  Results come back as
a polars DataFrame with the input columns plus ``result``, ``error`` and
``message`` (``error`` holds the error kind).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import polars as pl

from priceform.config import EngineConfig
from priceform.context import build_context
from priceform.formulas.errors import FormulaError, FormulaParseError
from priceform.formulas.evaluator import evaluate_formula
from priceform.formulas.parser import compile_formula
from priceform.logging.events import EventType, emit_info


def evaluate_batch(
    text: str,
    rows: Iterable[Mapping[str, Any]],
    config: EngineConfig | None = None,
    derive: bool = False,
) -> pl.DataFrame:
    """Evaluate *text* against every row.

    Args:
        text: Formula text.
        rows: One variable context per row.
        config: Engine settings.
        derive: Add ``area``/``sqft`` to each row via ``build_context``.

    Returns:
        One output row per input row.  A parse error is reported on every
        row; evaluation errors only on the rows that hit them.
    """
    config = config or EngineConfig()
    records: list[dict[str, Any]] = []
    parse_error = None
    expr = None
    try:
        expr = compile_formula(text, max_depth=config.max_depth)
    except FormulaParseError as exc:
        parse_error = exc.to_error()

    failed = 0
    for row in rows:
        ctx = build_context(row, config) if derive else dict(row)
        record: dict[str, Any] = dict(ctx)
        error = parse_error
        value = None
        if expr is not None:
            try:
                value = evaluate_formula(expr, ctx)
            except FormulaError as exc:
                error = exc.to_error()
        if error is not None:
            failed += 1
        record["result"] = value
        record["error"] = error.kind.value if error is not None else None
        record["message"] = error.message if error is not None else None
        records.append(record)

    emit_info(
        EventType.batch_completed,
        f"Evaluated {len(records)} rows",
        {"formula": text, "row_count": len(records), "failure_count": failed},
    )
    schema_overrides = {"result": pl.Float64, "error": pl.Utf8, "message": pl.Utf8}
    if not records:
        return pl.DataFrame(schema=schema_overrides)
    return pl.from_dicts(records, schema_overrides=schema_overrides, infer_schema_length=None)


def price_grid(
    text: str,
    widths: Sequence[float],
    heights: Sequence[float],
    base: Mapping[str, Any] | None = None,
    config: EngineConfig | None = None,
) -> pl.DataFrame:
    """Price *text* for every width x height combination.

    ``base`` supplies the other variables (rate, quantity, ...).  Derived
    ``area``/``sqft`` are added per row.
    """
    base = dict(base or {})
    rows = [
        {**base, "width": float(w), "height": float(h)}
        for w in widths
        for h in heights
    ]
    return evaluate_batch(text, rows, config=config, derive=True)
