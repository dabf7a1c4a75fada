"""Render expression trees back to formula text.

``render(node, context)`` substitutes bound variable values into the
printed expression.  It works on the parsed tree, so a variable that
shares its name with a function (``round``) or with part of another
variable (``w`` vs ``width``) is never replaced by mistake.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

from priceform.formulas.nodes import BinaryOp, FunctionCall, Node, Number, UnaryOp, Variable

_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}
_UNARY_PRECEDENCE = 3
_ATOM_PRECEDENCE = 4


def format_number(value: Any) -> str:
    """Format a number the way an operator would type it (``3`` not ``3.0``)."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def _precedence(node: Node) -> int:
    if isinstance(node, BinaryOp):
        return _PRECEDENCE[node.op]
    if isinstance(node, UnaryOp):
        return _UNARY_PRECEDENCE
    return _ATOM_PRECEDENCE


def render(node: Node, context: Mapping[str, Any] | None = None) -> str:
    """Print *node* as formula text with minimal parentheses.

    Args:
        node: Root of the tree to print.
        context: Optional variable bindings to substitute.  Unbound names
            are printed as-is.
    """
    if isinstance(node, Number):
        return format_number(node.value)
    if isinstance(node, Variable):
        if context is not None and node.name in context:
            return format_number(context[node.name])
        return node.name
    if isinstance(node, UnaryOp):
        inner = render(node.operand, context)
        if _precedence(node.operand) < _UNARY_PRECEDENCE:
            inner = f"({inner})"
        return f"-{inner}"
    if isinstance(node, BinaryOp):
        prec = _PRECEDENCE[node.op]
        left = render(node.left, context)
        right = render(node.right, context)
        if _precedence(node.left) < prec:
            left = f"({left})"
        if _precedence(node.right) <= prec:
            right = f"({right})"
        return f"{left} {node.op} {right}"
    if isinstance(node, FunctionCall):
        args = ", ".join(render(arg, context) for arg in node.args)
        return f"{node.name}({args})"
    raise TypeError(f"Unknown node type: {type(node).__name__}")
