"""Engine configuration.

Settings are passed explicitly to the functions that need them; nothing
here is module-level mutable state.  A YAML file (``priceform.yaml``)
can override any default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "priceform.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "max_depth": 64,
    "sqft_divisor": 144.0,  # square inches per square foot
    "derive_area": True,
    "dimension_unit": 1.0,
    # Values offered for fields the operator has not filled in yet.
    "default_values": {
        "width": 36.0,
        "height": 24.0,
        "spacing": 12.0,
        "rate": 0.5,
        "quantity": 1.0,
    },
    "fallback_value": 1.0,
    # Variable name -> context field it reads from, e.g. {"qty": "quantity"}.
    "aliases": {},
}


class EngineConfig(BaseModel):
    """Validated engine settings.

    Attributes:
        max_depth: Maximum parenthesis nesting accepted by the parser.
        sqft_divisor: Divisor turning ``area`` into ``sqft``.
        derive_area: Add ``area``/``sqft`` to contexts with width and height.
        dimension_unit: Default billing unit for rounding policies.
        default_values: Test values keyed by variable name.
        fallback_value: Test value for variables with no specific default.
        aliases: Variable names bound to the value of another context field.
    """

    model_config = ConfigDict(frozen=True)

    max_depth: int = Field(default=DEFAULT_CONFIG["max_depth"], ge=1)
    sqft_divisor: float = Field(default=DEFAULT_CONFIG["sqft_divisor"], gt=0)
    derive_area: bool = DEFAULT_CONFIG["derive_area"]
    dimension_unit: float = Field(default=DEFAULT_CONFIG["dimension_unit"], gt=0)
    default_values: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CONFIG["default_values"])
    )
    fallback_value: float = DEFAULT_CONFIG["fallback_value"]
    aliases: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CONFIG["aliases"]))


def load_engine_config(path: Path | None = None) -> EngineConfig:
    """Load engine configuration from YAML, with defaults.

    Args:
        path: A YAML file, or a directory containing ``priceform.yaml``.
            ``None`` or a missing file yields the defaults.

    Returns:
        The merged, validated configuration.

    Raises:
        pydantic.ValidationError: If a configured value is invalid.
    """
    config = dict(DEFAULT_CONFIG)
    config["default_values"] = dict(DEFAULT_CONFIG["default_values"])
    if path is not None:
        config_path = path / CONFIG_FILENAME if path.is_dir() else path
        if config_path.exists():
            user_config = yaml.safe_load(config_path.read_text()) or {}
            # A partial default_values block extends the built-in defaults.
            user_defaults = user_config.pop("default_values", None)
            if isinstance(user_defaults, dict):
                config["default_values"].update(user_defaults)
            config.update(user_config)
            logger.debug("loaded engine config from %s", config_path)
    return EngineConfig(**config)
