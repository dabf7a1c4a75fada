"""Immutable expression tree for parsed formulas.

Nodes are frozen pydantic models, so a parsed formula can be cached and
shared between evaluations (and threads) without copying.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: int = 0


class Number(_Node):
    node: Literal["number"] = "number"
    value: float


class Variable(_Node):
    node: Literal["variable"] = "variable"
    name: str


class UnaryOp(_Node):
    node: Literal["unary"] = "unary"
    op: Literal["-"] = "-"
    operand: Node


class BinaryOp(_Node):
    node: Literal["binary"] = "binary"
    op: Literal["+", "-", "*", "/"]
    left: Node
    right: Node


class FunctionCall(_Node):
    node: Literal["call"] = "call"
    name: str
    args: tuple[Node, ...] = ()


Node = Annotated[
    Union[Number, Variable, UnaryOp, BinaryOp, FunctionCall],
    Field(discriminator="node"),
]

UnaryOp.model_rebuild()
BinaryOp.model_rebuild()
FunctionCall.model_rebuild()


class FormulaExpression(BaseModel):
    """A parsed formula, built once and reusable across many evaluations.

    Attributes:
        text: The original formula text.
        root: Root of the expression tree.
        variables: Free variable names in first-appearance order.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    root: Node
    variables: tuple[str, ...] = ()
