"""Whitelisted formula functions.

Importing this package loads the built-in math functions into the registry.
"""

from priceform.functions import arithmetic  # noqa: F401
from priceform.functions.registry import (
    FunctionSpec,
    get_function,
    is_registered,
    register_function,
    registered_functions,
)

__all__ = [
    "FunctionSpec",
    "get_function",
    "is_registered",
    "register_function",
    "registered_functions",
]
