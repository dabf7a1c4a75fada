"""Static extraction of free variable names.

Used by callers that render one input field per referenced variable.
"""

from __future__ import annotations

from typing import Sequence

from priceform.formulas.lexer import FormulaToken, TokenKind
from priceform.formulas.nodes import BinaryOp, FunctionCall, Node, UnaryOp, Variable


def collect_variables(root: Node) -> list[str]:
    """Return the free variable names of a parsed tree.

    Names are deduplicated and kept in order of first appearance in the
    source text.  Function names are never included.
    """
    seen: dict[str, None] = {}
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, Variable):
            seen.setdefault(node.name, None)
        elif isinstance(node, UnaryOp):
            stack.append(node.operand)
        elif isinstance(node, BinaryOp):
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, FunctionCall):
            stack.extend(reversed(node.args))
    return list(seen)


def variables_from_tokens(tokens: Sequence[FormulaToken]) -> list[str]:
    """Token-stream fallback for ``collect_variables``.

    An identifier counts as a variable unless the next token is ``(``.
    """
    seen: dict[str, None] = {}
    for i, tok in enumerate(tokens):
        if tok.kind is not TokenKind.IDENTIFIER:
            continue
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if nxt is not None and nxt.text == "(":
            continue
        seen.setdefault(tok.text, None)
    return list(seen)
