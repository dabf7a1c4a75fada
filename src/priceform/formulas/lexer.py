"""Tokenizer for pricing formulas.

A single linear pass over the text using the grammar's basic lexer.
Identifiers directly followed by ``(`` are not special here; the parser
decides whether a name is a function call.
"""

from __future__ import annotations

from enum import Enum

from lark.exceptions import UnexpectedCharacters
from pydantic import BaseModel, ConfigDict

from priceform.formulas.errors import FormulaParseError
from priceform.formulas.grammar import formula_parser


class TokenKind(str, Enum):
    NUMBER = "NUMBER"
    IDENTIFIER = "IDENTIFIER"
    OPERATOR = "OPERATOR"


class FormulaToken(BaseModel):
    """One lexical token with its character offset in the formula text."""

    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    text: str
    position: int


_KIND_BY_TERMINAL = {
    "NUMBER": TokenKind.NUMBER,
    "NAME": TokenKind.IDENTIFIER,
}


def tokenize(text: str) -> list[FormulaToken]:
    """Split formula text into tokens.

    Args:
        text: Operator-authored formula, e.g. ``"ceil(width / 12) * rate"``.

    Returns:
        Tokens in source order.  Whitespace is dropped.

    Raises:
        FormulaParseError: On a character outside the formula alphabet,
            with the offset of that character.
    """
    tokens: list[FormulaToken] = []
    try:
        for tok in formula_parser.lex(text):
            tokens.append(
                FormulaToken(
                    kind=_KIND_BY_TERMINAL.get(tok.type, TokenKind.OPERATOR),
                    text=str(tok),
                    position=tok.start_pos,
                )
            )
    except UnexpectedCharacters as exc:
        pos = exc.pos_in_stream
        char = text[pos] if pos is not None and pos < len(text) else ""
        raise FormulaParseError(f"Unexpected character {char!r}", position=pos) from exc
    return tokens
