"""Pricing formula tokenizing, parsing and evaluation.

Public API::

    from priceform.formulas import validate, evaluate, extract_variables
"""

from priceform.formulas.api import (
    evaluate,
    evaluate_expression,
    extract_variables,
    preview,
    validate,
)
from priceform.formulas.errors import (
    ContextCollisionError,
    EngineError,
    ErrorKind,
    ErrorPhase,
    FormulaArityError,
    FormulaDivisionError,
    FormulaError,
    FormulaFunctionError,
    FormulaNumericError,
    FormulaParseError,
    FormulaRefError,
)
from priceform.formulas.evaluator import evaluate_formula, resolve_variable
from priceform.formulas.lexer import FormulaToken, TokenKind, tokenize
from priceform.formulas.nodes import FormulaExpression
from priceform.formulas.parser import MAX_DEPTH, compile_formula, parse_formula
from priceform.formulas.render import format_number, render
from priceform.formulas.results import EvaluationResult, ValidationResult
from priceform.formulas.trace import StepKind, Trace, Tracer, TraceStep
from priceform.formulas.variables import collect_variables, variables_from_tokens

__all__ = [
    "ContextCollisionError",
    "EngineError",
    "ErrorKind",
    "ErrorPhase",
    "EvaluationResult",
    "FormulaArityError",
    "FormulaDivisionError",
    "FormulaError",
    "FormulaExpression",
    "FormulaFunctionError",
    "FormulaNumericError",
    "FormulaParseError",
    "FormulaRefError",
    "FormulaToken",
    "MAX_DEPTH",
    "StepKind",
    "TokenKind",
    "Trace",
    "TraceStep",
    "Tracer",
    "ValidationResult",
    "collect_variables",
    "compile_formula",
    "evaluate",
    "evaluate_expression",
    "evaluate_formula",
    "extract_variables",
    "format_number",
    "parse_formula",
    "preview",
    "render",
    "resolve_variable",
    "tokenize",
    "validate",
    "variables_from_tokens",
]
