"""Lark grammar for pricing formulas.

Operator precedence (lowest to highest):
  1. Addition/subtraction: + -   (left-associative)
  2. Multiplication/division: * /   (left-associative)
  3. Unary minus: -
  4. Atoms: number, function call, variable, parenthesized expr

Function names are not reserved words: ``NAME "("`` becomes a call node,
a bare ``NAME`` becomes a variable.
"""

from __future__ import annotations

from lark import Lark

GRAMMAR = r"""
start: expr

?expr: sum

?sum: product
    | sum "+" product  -> add
    | sum "-" product  -> sub

?product: unary
    | product "*" unary  -> mul
    | product "/" unary  -> div

?unary: atom
    | "-" unary  -> neg

?atom: NUMBER                -> number
    | NAME "(" args ")"      -> func_call
    | NAME                   -> variable
    | "(" expr ")"

args: expr ("," expr)*
    |

// Plain decimals only: 12, 1.5, .5, 3.
NUMBER: /[0-9]+(\.[0-9]*)?|\.[0-9]+/

NAME: /[A-Za-z_][A-Za-z0-9_]*/

%import common.WS
%ignore WS
"""

# The basic lexer makes ``formula_parser.lex()`` usable on its own.
formula_parser = Lark(
    GRAMMAR,
    parser="lalr",
    lexer="basic",
    start="start",
    propagate_positions=True,
)
