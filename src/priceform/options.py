"""Option pricing: how a selected product option adds to the price.

A rule says *how* an option is charged (flat fee, per unit, formula);
a selection says *whether* it is on and carries the option's own fields
(grommet spacing, pole pocket size, ...).  Selections are tagged
variants, one per option kind.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, model_validator

from priceform.config import EngineConfig
from priceform.formulas.errors import ContextCollisionError, EngineError, FormulaError, FormulaNumericError
from priceform.formulas.evaluator import evaluate_formula, resolve_variable
from priceform.formulas.nodes import FormulaExpression
from priceform.formulas.parser import MAX_DEPTH, compile_formula
from priceform.logging.events import EventType, emit_error, emit_info, emit_warning


# ────────────────────────────────────────────────────────────────
# Rules
# ────────────────────────────────────────────────────────────────


class PricingKind(str, Enum):
    flat_fee = "flat_fee"
    per_unit = "per_unit"
    formula = "formula"


class OptionPricingRule(BaseModel):
    """Pricing configuration for one selectable option.

    Attributes:
        option_id: Identifier matching the selection it prices.
        pricing_kind: Dispatch key.
        base_amount: Flat fee, or price per unit.
        formula: Expression for ``formula`` rules.
        unit_label: Display label for the unit (``"each"``, ``"ft"``).
        quantity_variable: Context variable holding the unit count.
        minimum_charge: Floor applied to a non-zero price; 0 disables it.
        active: Inactive rules price at 0.
    """

    option_id: str
    pricing_kind: PricingKind
    base_amount: float = Field(default=0.0, allow_inf_nan=False)
    formula: str | None = None
    unit_label: str | None = None
    quantity_variable: str = "quantity"
    minimum_charge: float = Field(default=0.0, allow_inf_nan=False)
    active: bool = True

    _compiled: FormulaExpression | None = PrivateAttr(default=None)
    _compiled_depth: int | None = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _formula_required(self) -> OptionPricingRule:
        if self.pricing_kind is PricingKind.formula and not (self.formula or "").strip():
            raise ValueError(f"Option {self.option_id!r}: formula pricing needs a formula")
        return self

    def compiled(self, max_depth: int = MAX_DEPTH) -> FormulaExpression:
        if (
            self._compiled is None
            or self._compiled.text != self.formula
            or self._compiled_depth != max_depth
        ):
            self._compiled = compile_formula(self.formula or "", max_depth=max_depth)
            self._compiled_depth = max_depth
        return self._compiled


# ────────────────────────────────────────────────────────────────
# Selections (discriminated union)
# ────────────────────────────────────────────────────────────────


class GrommetSelection(BaseModel):
    kind: Literal["grommets"] = "grommets"
    enabled: bool = True
    placement: str = "standard"
    spacing: float = 24.0

    def local_fields(self) -> dict[str, float]:
        return {"spacing": self.spacing}


class PolePocketSelection(BaseModel):
    kind: Literal["pole_pockets"] = "pole_pockets"
    enabled: bool = True
    pocket_size: float = 3.0

    def local_fields(self) -> dict[str, float]:
        return {"pocket_size": self.pocket_size}


class LaminateSelection(BaseModel):
    kind: Literal["laminate"] = "laminate"
    enabled: bool = True
    finish: str = "gloss"

    def local_fields(self) -> dict[str, float]:
        return {}


class CustomSelection(BaseModel):
    kind: Literal["custom"] = "custom"
    enabled: bool = True
    fields: dict[str, float] = {}

    def local_fields(self) -> dict[str, float]:
        return dict(self.fields)


OptionSelection = Annotated[
    Union[GrommetSelection, PolePocketSelection, LaminateSelection, CustomSelection],
    Field(discriminator="kind"),
]

_SELECTION_ADAPTER: TypeAdapter = TypeAdapter(OptionSelection)


def parse_selection(data: Mapping[str, Any]) -> OptionSelection:
    """Validate a raw selection payload into its variant by ``kind``."""
    return _SELECTION_ADAPTER.validate_python(dict(data))


# ────────────────────────────────────────────────────────────────
# Results
# ────────────────────────────────────────────────────────────────


class OptionStatus(str, Enum):
    priced = "priced"
    disabled = "disabled"
    failed = "failed"


class OptionLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    option_id: str
    status: OptionStatus
    value: float = 0.0
    unit_label: str | None = None
    error: EngineError | None = None


class OptionsResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: float
    lines: list[OptionLine]
    failures: list[EngineError] = []

    @property
    def ok(self) -> bool:
        return not self.failures


# ────────────────────────────────────────────────────────────────
# Dispatch
# ────────────────────────────────────────────────────────────────


def merge_context(
    context: Mapping[str, Any],
    local_fields: Mapping[str, Any],
    option_id: str | None = None,
) -> dict[str, Any]:
    """Shared context plus option-local fields.

    Raises:
        ContextCollisionError: If a local field name is already bound in
            *context*.  Caller-supplied values are never overwritten.
    """
    merged = dict(context)
    for name, value in local_fields.items():
        if name in merged:
            raise ContextCollisionError(name, option_id=option_id)
        merged[name] = value
    return merged


def _flat_fee(rule: OptionPricingRule, ctx: Mapping[str, Any], config: EngineConfig) -> float:
    return rule.base_amount


def _per_unit(rule: OptionPricingRule, ctx: Mapping[str, Any], config: EngineConfig) -> float:
    value = rule.base_amount * resolve_variable(rule.quantity_variable, ctx)
    if not math.isfinite(value):
        raise FormulaNumericError(
            f"Option {rule.option_id!r}: per-unit price is not finite", name=rule.quantity_variable
        )
    return value


def _by_formula(rule: OptionPricingRule, ctx: Mapping[str, Any], config: EngineConfig) -> float:
    return evaluate_formula(rule.compiled(max_depth=config.max_depth), ctx)


_DISPATCH = {
    PricingKind.flat_fee: _flat_fee,
    PricingKind.per_unit: _per_unit,
    PricingKind.formula: _by_formula,
}


def option_price(
    rule: OptionPricingRule,
    selection: OptionSelection | None,
    context: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> float:
    """Contribution of one option, raising on failure.

    Disabled or missing selections and inactive rules contribute 0.

    Raises:
        FormulaError: From the formula, a missing quantity, or a
            ``ContextCollisionError`` while merging local fields.
    """
    config = config or EngineConfig()
    if not rule.active or selection is None or not selection.enabled:
        return 0.0
    ctx = merge_context(context, selection.local_fields(), option_id=rule.option_id)
    value = _DISPATCH[rule.pricing_kind](rule, ctx, config)
    if rule.minimum_charge > 0 and value != 0:
        value = max(value, rule.minimum_charge)
    return value


def price_options(
    rules: Sequence[OptionPricingRule],
    selections: Mapping[str, OptionSelection],
    context: Mapping[str, Any],
    config: EngineConfig | None = None,
) -> OptionsResult:
    """Price every rule against its selection (keyed by ``option_id``).

    A failing option is reported with its id and left out of the total;
    the other options are still priced.
    """
    config = config or EngineConfig()
    lines: list[OptionLine] = []
    failures: list[EngineError] = []
    total = 0.0

    for rule in rules:
        selection = selections.get(rule.option_id)
        if not rule.active or selection is None or not selection.enabled:
            lines.append(
                OptionLine(option_id=rule.option_id, status=OptionStatus.disabled, unit_label=rule.unit_label)
            )
            continue
        try:
            value = option_price(rule, selection, context, config)
        except FormulaError as exc:
            error = exc.to_error().for_formula(rule.option_id)
            failures.append(error)
            lines.append(
                OptionLine(
                    option_id=rule.option_id,
                    status=OptionStatus.failed,
                    unit_label=rule.unit_label,
                    error=error,
                )
            )
            event_ctx = {"option_id": rule.option_id, "kind": error.kind.value}
            if isinstance(exc, ContextCollisionError):
                emit_error(EventType.option_failed, error.message, event_ctx, error_code=error.kind.value)
            else:
                emit_warning(EventType.option_failed, error.message, event_ctx, error_code=error.kind.value)
            continue
        total += value
        lines.append(
            OptionLine(option_id=rule.option_id, status=OptionStatus.priced, value=value, unit_label=rule.unit_label)
        )

    emit_info(
        EventType.options_priced,
        f"Priced {len(lines)} options",
        {"total": total, "failure_count": len(failures)},
    )
    return OptionsResult(total=total, lines=lines, failures=failures)
