"""Lark-based parser for pricing formulas.

Supports:
- Variables: ``width``, ``base_rate``
- Decimal literals: ``12``, ``0.5``
- ``+ - * /`` with the usual precedence, unary minus, parentheses
- Function calls: ``ceil(width / spacing)``

Arity is not checked here; the evaluator does that through the function
registry so that syntax errors and call errors stay distinguishable.
"""

from __future__ import annotations

import logging
import math

from lark import Transformer, Tree, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from priceform.formulas.errors import FormulaParseError
from priceform.formulas.grammar import formula_parser
from priceform.formulas.lexer import FormulaToken, TokenKind, tokenize
from priceform.formulas.nodes import (
    BinaryOp,
    FormulaExpression,
    FunctionCall,
    Node,
    Number,
    UnaryOp,
    Variable,
)
from priceform.formulas.variables import collect_variables

logger = logging.getLogger(__name__)

# Maximum parenthesis nesting accepted in formula text.
MAX_DEPTH = 64

# Maximum height of the parse tree.  Evaluation recurses once per level.
MAX_TREE_HEIGHT = 128


def _pos(meta) -> int:
    return getattr(meta, "start_pos", 0) or 0


@v_args(meta=True)
class _NodeBuilder(Transformer):
    """Turn the Lark parse tree into immutable ``Node`` models."""

    def start(self, meta, children):
        return children[0]

    def number(self, meta, children):
        tok = children[0]
        return Number(value=float(tok), position=tok.start_pos)

    def variable(self, meta, children):
        tok = children[0]
        return Variable(name=str(tok), position=tok.start_pos)

    def neg(self, meta, children):
        return UnaryOp(operand=children[0], position=_pos(meta))

    def add(self, meta, children):
        return BinaryOp(op="+", left=children[0], right=children[1], position=_pos(meta))

    def sub(self, meta, children):
        return BinaryOp(op="-", left=children[0], right=children[1], position=_pos(meta))

    def mul(self, meta, children):
        return BinaryOp(op="*", left=children[0], right=children[1], position=_pos(meta))

    def div(self, meta, children):
        return BinaryOp(op="/", left=children[0], right=children[1], position=_pos(meta))

    def func_call(self, meta, children):
        name_tok, args = children
        return FunctionCall(name=str(name_tok), args=tuple(args), position=name_tok.start_pos)

    def args(self, meta, children):
        return list(children)


def _check_nesting(tokens: list[FormulaToken], max_depth: int) -> None:
    """Reject parenthesis nesting deeper than *max_depth*."""
    depth = 0
    for tok in tokens:
        if tok.text == "(":
            depth += 1
            if depth > max_depth:
                raise FormulaParseError(
                    f"Parentheses nested deeper than {max_depth} levels",
                    position=tok.position,
                )
        elif tok.text == ")":
            depth = max(depth - 1, 0)


def _check_literals(tokens: list[FormulaToken]) -> None:
    """Reject number literals too large to be represented as a finite float."""
    for tok in tokens:
        if tok.kind is TokenKind.NUMBER and not math.isfinite(float(tok.text)):
            raise FormulaParseError("Number is too large", position=tok.position)


def _check_height(tree: Tree) -> None:
    """Reject trees taller than ``MAX_TREE_HEIGHT`` without recursing."""
    heights: dict[int, int] = {}
    # iter_subtrees() yields children before their parents.
    for subtree in tree.iter_subtrees():
        child_heights = [heights[id(c)] for c in subtree.children if isinstance(c, Tree)]
        height = 1 + max(child_heights, default=0)
        heights[id(subtree)] = height
        if height > MAX_TREE_HEIGHT:
            raise FormulaParseError(
                f"Formula is too complex (more than {MAX_TREE_HEIGHT} nested operations)",
                position=_pos(subtree.meta),
            )


def _translate(exc: UnexpectedInput, text: str) -> FormulaParseError:
    if isinstance(exc, UnexpectedToken):
        tok = exc.token
        if tok.type == "$END":
            return FormulaParseError("Unexpected end of formula", position=len(text))
        return FormulaParseError(f"Unexpected {str(tok)!r}", position=tok.start_pos)
    if isinstance(exc, UnexpectedEOF):
        return FormulaParseError("Unexpected end of formula", position=len(text))
    if isinstance(exc, UnexpectedCharacters):
        return FormulaParseError("Unexpected character", position=exc.pos_in_stream)
    return FormulaParseError(str(exc), position=getattr(exc, "pos_in_stream", None))


def parse_formula(text: str, max_depth: int = MAX_DEPTH) -> Node:
    """Parse formula text into an expression tree.

    Args:
        text: The formula text, e.g. ``"width * height * rate"``.
        max_depth: Maximum parenthesis nesting.

    Returns:
        Root node of the immutable expression tree.

    Raises:
        FormulaParseError: If the formula has invalid syntax.
    """
    if not text or not text.strip():
        raise FormulaParseError("Formula is empty", position=0)

    tokens = tokenize(text)
    _check_nesting(tokens, max_depth)
    _check_literals(tokens)

    try:
        tree = formula_parser.parse(text)
    except UnexpectedInput as exc:
        raise _translate(exc, text) from exc

    _check_height(tree)
    return _NodeBuilder().transform(tree)


def compile_formula(text: str, max_depth: int = MAX_DEPTH) -> FormulaExpression:
    """Parse *text* into a reusable ``FormulaExpression``.

    Raises:
        FormulaParseError: If the formula has invalid syntax.  No partial
            expression is ever returned.
    """
    root = parse_formula(text, max_depth=max_depth)
    logger.debug("compiled formula %r", text)
    return FormulaExpression(text=text, root=root, variables=tuple(collect_variables(root)))
