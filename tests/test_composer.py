"""Tests for composing many named formulas into one total."""

from __future__ import annotations

import pytest

from pydantic import ValidationError

from priceform.composer import LineStatus, NamedFormula, compose
from priceform.context import build_context
from priceform.formulas import ErrorKind, FormulaParseError
from priceform.logging import EventLevel, EventType
from priceform.presets import PRESETS, get_preset, preset_formula
from priceform.rounding import RoundingPolicy


@pytest.fixture
def context() -> dict[str, float]:
    return {"width": 20.0, "height": 10.0, "rate": 0.5}


# ────────────────────────────────────────────────────────────────
# Totals and failure isolation
# ────────────────────────────────────────────────────────────────


class TestCompose:
    def test_sum_of_active(self, context) -> None:
        result = compose(
            [
                NamedFormula(name="base", expression="width * rate"),
                NamedFormula(name="setup", expression="5"),
            ],
            context,
        )
        assert result.ok
        assert result.total == 15.0
        assert [line.value for line in result.lines] == [10.0, 5.0]

    def test_failing_formula_excluded(self, context) -> None:
        result = compose(
            [
                NamedFormula(name="base", expression="width * rate"),
                NamedFormula(name="second", expression="width * ("),
            ],
            context,
        )
        assert result.total == 10.0
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.name == "second"
        assert failure.error.kind is ErrorKind.syntax_error
        assert failure.error.formula == "second"
        assert result.lines[1].status is LineStatus.failed

    def test_inactive_formula_ignored(self, context) -> None:
        broken = NamedFormula(name="second", expression="width * (", active=False)
        result = compose([NamedFormula(name="base", expression="width * rate"), broken], context)
        assert result.ok
        assert result.total == 10.0
        assert result.lines[1].status is LineStatus.disabled
        assert result.lines[1].value == 0.0

    def test_inactive_formula_never_parsed(self, context) -> None:
        broken = NamedFormula(name="draft", expression="width * (", active=False)
        compose([broken], context)
        assert broken._compiled is None

    def test_runtime_failure_isolated(self, context) -> None:
        result = compose(
            [
                NamedFormula(name="bad", expression="1 / (width - 20)"),
                NamedFormula(name="good", expression="height * rate"),
            ],
            context,
        )
        assert result.total == 5.0
        assert result.failures[0].error.kind is ErrorKind.division_by_zero

    def test_all_failed(self, context) -> None:
        result = compose([NamedFormula(name="x", expression="missing * 2")], context)
        assert result.total == 0.0
        assert result.failures[0].error.kind is ErrorKind.unknown_variable

    def test_empty(self, context) -> None:
        result = compose([], context)
        assert result.total == 0.0
        assert result.lines == []

    def test_order(self, context) -> None:
        result = compose(
            [
                NamedFormula(name="c", expression="1", order=2),
                NamedFormula(name="a", expression="1", order=0),
                NamedFormula(name="b1", expression="1", order=1),
                NamedFormula(name="b2", expression="1", order=1),
            ],
            context,
        )
        assert [line.name for line in result.lines] == ["a", "b1", "b2", "c"]

    def test_unit_on_line(self, context) -> None:
        result = compose([NamedFormula(name="base", expression="width", unit="ft")], context)
        assert result.lines[0].unit == "ft"

    def test_context_not_mutated(self, context) -> None:
        snapshot = dict(context)
        compose(
            [NamedFormula(name="base", expression="width * height", rounding=RoundingPolicy.ceil_to_unit, rounding_unit=12)],
            context,
        )
        assert context == snapshot

    def test_events(self, context, memory_sink) -> None:
        compose(
            [
                NamedFormula(name="ok", expression="width"),
                NamedFormula(name="bad", expression="nope"),
            ],
            context,
        )
        failed = [e for e in memory_sink.events if e.event_type is EventType.composition_formula_failed]
        done = [e for e in memory_sink.events if e.event_type is EventType.composition_completed]
        assert len(failed) == 1
        assert failed[0].level is EventLevel.warning
        assert failed[0].context["formula_name"] == "bad"
        assert done[0].context["failure_count"] == 1
        assert done[0].context["total"] == 20.0


# ────────────────────────────────────────────────────────────────
# Rounding
# ────────────────────────────────────────────────────────────────


class TestComposeRounding:
    def test_ceil_to_unit(self) -> None:
        formula = NamedFormula(
            name="area",
            expression="width * height * rate",
            rounding=RoundingPolicy.ceil_to_unit,
        )
        result = compose([formula], {"width": 36.5, "height": 23.2, "rate": 1})
        assert result.total == 37 * 24

    def test_ceil_to_feet(self) -> None:
        formula = NamedFormula(
            name="area",
            expression="width * height * rate",
            rounding=RoundingPolicy.ceil_to_unit,
            rounding_unit=12,
        )
        result = compose([formula], {"width": 36.5, "height": 23.2, "rate": 1})
        assert result.total == 48 * 24

    def test_area_round(self) -> None:
        formula = NamedFormula(
            name="area",
            expression="width * height * rate",
            rounding=RoundingPolicy.area_round_to_unit,
        )
        result = compose([formula], {"width": 2.5, "height": 3.2, "rate": 1})
        line = result.lines[0]
        assert line.raw_value == pytest.approx(8.0)
        assert line.value == pytest.approx(12.0)
        assert result.total == pytest.approx(12.0)

    def test_area_round_needs_dimensions(self) -> None:
        formula = NamedFormula(name="fee", expression="rate * 10", rounding=RoundingPolicy.area_round_to_unit)
        result = compose([formula], {"rate": 1})
        assert result.failures[0].error.kind is ErrorKind.unknown_variable
        assert result.failures[0].error.name == "width"

    def test_configured_default_unit(self) -> None:
        from priceform.config import EngineConfig

        formula = NamedFormula(name="w", expression="width", rounding=RoundingPolicy.ceil_to_unit)
        result = compose([formula], {"width": 13}, EngineConfig(dimension_unit=12))
        assert result.total == 24

    @pytest.mark.parametrize("unit", [0, -12])
    def test_rounding_unit_must_be_positive(self, unit: float) -> None:
        with pytest.raises(ValidationError):
            NamedFormula(name="w", expression="width", rounding=RoundingPolicy.ceil_to_unit, rounding_unit=unit)

    def test_bad_unit_set_later_is_isolated(self) -> None:
        bad = NamedFormula(name="w", expression="width", rounding=RoundingPolicy.ceil_to_unit)
        bad.rounding_unit = -12
        good = NamedFormula(name="fee", expression="5")
        result = compose([bad, good], {"width": 13})
        assert result.total == 5.0
        assert result.failures[0].name == "w"
        assert result.failures[0].error.kind is ErrorKind.numeric_error

    def test_derived_area_uses_rounded_dimensions(self) -> None:
        ctx = build_context({"width": 37, "height": 13, "rate": 1})
        formulas = [
            NamedFormula(name=name, expression=text, rounding=RoundingPolicy.ceil_to_unit, rounding_unit=12)
            for name, text in [("area", "area * rate"), ("dims", "width * height * rate"), ("sqft", "sqft * rate")]
        ]
        result = compose(formulas, ctx)
        values = [line.value for line in result.lines]
        assert values[0] == values[1] == 48 * 24
        assert values[2] == pytest.approx(8.0)


# ────────────────────────────────────────────────────────────────
# Compiled cache
# ────────────────────────────────────────────────────────────────


class TestNamedFormula:
    def test_compiled_cached(self) -> None:
        formula = NamedFormula(name="x", expression="width * 2")
        assert formula.compiled() is formula.compiled()

    def test_recompiled_after_edit(self) -> None:
        formula = NamedFormula(name="x", expression="width * 2")
        first = formula.compiled()
        formula.expression = "height * 2"
        second = formula.compiled()
        assert second is not first
        assert second.variables == ("height",)

    def test_recompiled_for_new_depth(self) -> None:
        formula = NamedFormula(name="x", expression="((1))")
        formula.compiled()
        with pytest.raises(FormulaParseError):
            formula.compiled(max_depth=1)


# ────────────────────────────────────────────────────────────────
# Presets
# ────────────────────────────────────────────────────────────────


class TestPresets:
    def test_all_presets_parse(self) -> None:
        for preset in PRESETS:
            preset_formula(preset.key).compiled()

    def test_keys_unique(self) -> None:
        assert len({p.key for p in PRESETS}) == len(PRESETS)

    def test_unknown(self) -> None:
        with pytest.raises(KeyError):
            get_preset("nope")

    def test_grommets(self) -> None:
        formula = preset_formula("grommets")
        result = compose([formula], {"width": 48, "height": 24, "spacing": 24, "rate": 0.5})
        assert result.total == 3.0
        assert result.lines[0].unit == "each"

    def test_sheet_usage(self) -> None:
        formula = preset_formula("sheet_usage_48x96", order=3)
        assert formula.order == 3
        result = compose([formula], {"width": 50, "height": 96, "base_rate": 40})
        assert result.total == 80.0
