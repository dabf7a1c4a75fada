"""Central registry for whitelisted formula functions.

The table is filled at import time by ``priceform.functions.arithmetic``.
Formula text can only *call* registered names; nothing in the language
can add to the table.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ConfigDict

from priceform.formulas.errors import FormulaArityError, FormulaFunctionError


class FunctionSpec(BaseModel):
    """A registered function with its accepted argument count."""

    model_config = ConfigDict(frozen=True)

    name: str
    min_arity: int
    max_arity: int
    impl: Callable[..., Any]

    def check_arity(self, actual: int, position: int | None = None) -> None:
        """Raise ``FormulaArityError`` unless *actual* is within range."""
        if not self.min_arity <= actual <= self.max_arity:
            raise FormulaArityError(
                self.name, self.min_arity, self.max_arity, actual, position=position
            )


_FUNCTIONS: dict[str, FunctionSpec] = {}


def register_function(name: str, arity: int, max_arity: int | None = None) -> Callable:
    """Decorator that registers a formula function by name.

    Args:
        name: The lookup name (matched case-insensitively).
        arity: Minimum number of arguments.
        max_arity: Maximum number of arguments; defaults to *arity*.

    Returns:
        The original function, unmodified.
    """

    def decorator(fn: Callable) -> Callable:
        key = name.lower()
        _FUNCTIONS[key] = FunctionSpec(
            name=key,
            min_arity=arity,
            max_arity=arity if max_arity is None else max_arity,
            impl=fn,
        )
        return fn

    return decorator


def get_function(name: str, position: int | None = None) -> FunctionSpec:
    """Look up a registered function.

    Args:
        name: The function name as written in the formula.
        position: Offset of the call, for error reporting.

    Returns:
        The function spec.

    Raises:
        FormulaFunctionError: If no function is registered under *name*.
    """
    spec = _FUNCTIONS.get(name.lower())
    if spec is None:
        raise FormulaFunctionError(name, position=position)
    return spec


def is_registered(name: str) -> bool:
    return name.lower() in _FUNCTIONS


def registered_functions() -> Mapping[str, FunctionSpec]:
    """Read-only view of the registry."""
    return MappingProxyType(_FUNCTIONS)
