"""Tree-walking evaluator for parsed formula expressions.

Evaluation is a post-order walk over the immutable tree.  Every value
produced is a finite float; anything else raises a ``FormulaError``
subclass which the public API turns into an ``EngineError`` record.
"""

from __future__ import annotations

import math
import operator
from typing import Any, Callable, Mapping

from priceform.formulas.errors import (
    FormulaDivisionError,
    FormulaError,
    FormulaNumericError,
    FormulaRefError,
)
from priceform.formulas.nodes import (
    BinaryOp,
    FormulaExpression,
    FunctionCall,
    Node,
    Number,
    UnaryOp,
    Variable,
)
from priceform.formulas.render import format_number
from priceform.formulas.trace import StepKind, Tracer
from priceform.functions.registry import get_function


def evaluate_formula(
    expr: FormulaExpression | Node,
    context: Mapping[str, Any],
    tracer: Tracer | None = None,
) -> float:
    """Evaluate a parsed formula against a variable context.

    Args:
        expr: A ``FormulaExpression`` from ``compile_formula()`` or a bare node.
        context: Mapping of variable names to numeric values.  Not mutated.
        tracer: Optional recorder for intermediate results.

    Returns:
        The computed value as a finite float.

    Raises:
        FormulaError: On a missing variable, unknown function, wrong
            argument count, division by zero or non-finite result.
    """
    root = expr.root if isinstance(expr, FormulaExpression) else expr
    return _eval(root, context, tracer)


def resolve_variable(name: str, ctx: Mapping[str, Any], position: int | None = None) -> float:
    """Look up *name* in *ctx* as a finite float.

    Raises:
        FormulaRefError: If *name* is not bound.
        FormulaNumericError: If the bound value is not a finite real number.
    """
    if name not in ctx:
        raise FormulaRefError(name, available=sorted(ctx.keys()), position=position)
    value = ctx[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormulaNumericError(
            f"Variable {name!r} is not a number: {value!r}", name=name, position=position
        )
    try:
        number = float(value)
    except OverflowError:
        raise FormulaNumericError(
            f"Variable {name!r} is too large", name=name, position=position
        ) from None
    if not math.isfinite(number):
        raise FormulaNumericError(
            f"Variable {name!r} is not finite: {value!r}", name=name, position=position
        )
    return number


def _finite(value: float, what: str, position: int) -> float:
    if not math.isfinite(value):
        raise FormulaNumericError(f"Result of {what} is not finite", position=position)
    return value


def _eval(node: Node, ctx: Mapping[str, Any], tracer: Tracer | None) -> float:
    """Recursively evaluate a tree node."""
    if isinstance(node, Number):
        return node.value

    if isinstance(node, Variable):
        return resolve_variable(node.name, ctx, position=node.position)

    if isinstance(node, UnaryOp):
        return -_eval(node.operand, ctx, tracer)

    if isinstance(node, BinaryOp):
        return _eval_binary(node, ctx, tracer)

    if isinstance(node, FunctionCall):
        return _eval_func(node, ctx, tracer)

    raise FormulaError(f"Unknown node type: {type(node).__name__}")


_BINARY_OPS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


def _eval_binary(node: BinaryOp, ctx: Mapping[str, Any], tracer: Tracer | None) -> float:
    left = _eval(node.left, ctx, tracer)
    right = _eval(node.right, ctx, tracer)
    if node.op == "/" and right == 0:
        raise FormulaDivisionError(position=node.position)
    result = _finite(_BINARY_OPS[node.op](left, right), f"{node.op!r}", node.position)
    if tracer is not None:
        tracer.add(
            StepKind.operator,
            f"{format_number(left)} {node.op} {format_number(right)}",
            result,
        )
    return result


def _eval_func(node: FunctionCall, ctx: Mapping[str, Any], tracer: Tracer | None) -> float:
    """Evaluate a function call node: arguments first, then arity, then dispatch."""
    args = [_eval(arg, ctx, tracer) for arg in node.args]
    spec = get_function(node.name, position=node.position)
    spec.check_arity(len(args), position=node.position)
    try:
        result = spec.impl(*args)
    except FormulaError as exc:
        if getattr(exc, "position", None) is None:
            exc.position = node.position
        raise
    result = _finite(float(result), f"{spec.name}()", node.position)
    if tracer is not None:
        rendered = ", ".join(format_number(a) for a in args)
        tracer.add(StepKind.function, f"{node.name}({rendered})", result)
    return result
