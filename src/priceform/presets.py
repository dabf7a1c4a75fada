"""Built-in formula presets offered when configuring a product."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from priceform.composer import NamedFormula
from priceform.rounding import RoundingPolicy


class FormulaPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    formula: str
    description: str
    category: str = "pricing"
    unit: str | None = None
    rounding: RoundingPolicy | None = None


PRESETS: tuple[FormulaPreset, ...] = (
    FormulaPreset(
        key="sqft_rounded_area",
        name="Square Feet (Rounded Area)",
        formula="ceil(width * height) * base_rate",
        description="Rounds the total square footage up to the next full foot",
        unit="sqft",
    ),
    FormulaPreset(
        key="sqft_rounded_dimensions",
        name="Square Feet (Rounded Dimensions)",
        formula="ceil(width) * ceil(height) * base_rate",
        description="Rounds both width and height up before calculating total area",
        unit="sqft",
    ),
    FormulaPreset(
        key="sqft_exact",
        name="Square Feet (Exact)",
        formula="width * height * base_rate",
        description="Uses exact area (no rounding)",
        unit="sqft",
    ),
    FormulaPreset(
        key="linear_feet",
        name="Linear Feet",
        formula="width * base_rate",
        description="Height is fixed; sold per foot of width",
        unit="ft",
    ),
    FormulaPreset(
        key="flat_per_unit",
        name="Flat Rate Per Unit",
        formula="quantity * base_rate",
        description="Items whose price does not depend on size",
        unit="each",
    ),
    FormulaPreset(
        key="volume",
        name="Volume-Based",
        formula="width * height * quantity * base_rate",
        description="Multi-up items",
    ),
    FormulaPreset(
        key="sheet_usage_48x96",
        name="Sheet Usage (48x96)",
        formula="ceil(width / 48) * ceil(height / 96) * base_rate",
        description="Number of full 48x96 sheets required, rounded up",
        unit="sheet",
    ),
    FormulaPreset(
        key="grommets",
        name="Grommet Calculation",
        formula="ceil((width * 2 + height * 2) / spacing) * rate",
        description="Grommets around the perimeter at the given spacing",
        category="finishing",
        unit="each",
    ),
    FormulaPreset(
        key="pole_pocket_linear",
        name="Pole Pocket Linear",
        formula="width * rate + setup_fee",
        description="Linear footage pricing for pole pockets",
        category="finishing",
        unit="ft",
    ),
)

_BY_KEY = {preset.key: preset for preset in PRESETS}


def get_preset(key: str) -> FormulaPreset:
    """Look up a preset.

    Raises:
        KeyError: If no preset is registered under *key*.
    """
    if key not in _BY_KEY:
        raise KeyError(f"Unknown formula preset: {key!r}")
    return _BY_KEY[key]


def preset_formula(key: str, *, active: bool = True, order: int = 0) -> NamedFormula:
    """A ``NamedFormula`` initialised from preset *key*."""
    preset = get_preset(key)
    return NamedFormula(
        name=preset.name,
        expression=preset.formula,
        active=active,
        order=order,
        rounding=preset.rounding,
        unit=preset.unit,
    )
