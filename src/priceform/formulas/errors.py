"""Error types for formula parsing and evaluation.

Two layers live here:

- ``FormulaError`` and its subclasses are raised *inside* the engine
  (tokenizer, parser, evaluator, option dispatch).
- ``EngineError`` is the immutable record handed back to callers.  Every
  exception converts to one via ``to_error()``; public entry points never
  let the exceptions escape.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, Enum):
    syntax_error = "syntax_error"
    unknown_function = "unknown_function"
    unknown_variable = "unknown_variable"
    division_by_zero = "division_by_zero"
    arity_mismatch = "arity_mismatch"
    numeric_error = "numeric_error"
    context_collision = "context_collision"


class ErrorPhase(str, Enum):
    parse = "parse"
    evaluate = "evaluate"
    configuration = "configuration"


class EngineError(BaseModel):
    """A typed engine failure returned as data.

    Only the fields relevant to ``kind`` are populated:

    - ``syntax_error``: ``position``
    - ``unknown_function`` / ``unknown_variable``: ``name`` (and ``position``)
    - ``arity_mismatch``: ``name``, ``expected_min``, ``expected_max``, ``actual``
    - ``division_by_zero``: ``position``
    - ``context_collision``: ``name`` (the colliding variable)

    ``formula`` is set when the error is attributed to a named formula or
    option by the composer or the option dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    position: int | None = None
    name: str | None = None
    expected_min: int | None = None
    expected_max: int | None = None
    actual: int | None = None
    formula: str | None = None

    @property
    def phase(self) -> ErrorPhase:
        if self.kind is ErrorKind.syntax_error:
            return ErrorPhase.parse
        if self.kind is ErrorKind.context_collision:
            return ErrorPhase.configuration
        return ErrorPhase.evaluate

    def for_formula(self, formula: str) -> EngineError:
        """Return a copy attributed to *formula*."""
        return self.model_copy(update={"formula": formula})


class FormulaError(Exception):
    """Base class for all formula-related errors."""

    def to_error(self) -> EngineError:
        return EngineError(kind=ErrorKind.numeric_error, message=str(self))


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character offset where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.syntax_error,
            message=self.message,
            position=self.position,
        )


class FormulaRefError(FormulaError):
    """Reference to a variable missing from the evaluation context.

    Attributes:
        ref_name: The unresolved reference.
        available: Names that are currently available.
    """

    def __init__(
        self,
        ref_name: str,
        available: list[str] | None = None,
        position: int | None = None,
    ) -> None:
        self.ref_name = ref_name
        self.available = available or []
        self.position = position
        msg = f"Unknown variable: {ref_name!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.unknown_variable,
            message=str(self),
            name=self.ref_name,
            position=self.position,
        )


class FormulaFunctionError(FormulaError):
    """Call to a function that is not in the registry.

    Attributes:
        func_name: The function that caused the error.
    """

    def __init__(
        self,
        func_name: str,
        message: str | None = None,
        position: int | None = None,
    ) -> None:
        self.func_name = func_name
        self.position = position
        super().__init__(message or f"Unknown function: {func_name!r}")

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.unknown_function,
            message=str(self),
            name=self.func_name,
            position=self.position,
        )


class FormulaArityError(FormulaFunctionError):
    """A registered function called with the wrong number of arguments."""

    def __init__(
        self,
        func_name: str,
        expected_min: int,
        expected_max: int,
        actual: int,
        position: int | None = None,
    ) -> None:
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual = actual
        if expected_min == expected_max:
            expected = str(expected_min)
        else:
            expected = f"{expected_min}-{expected_max}"
        plural = "" if expected == "1" else "s"
        super().__init__(
            func_name,
            f"{func_name} requires {expected} argument{plural}, got {actual}",
            position=position,
        )

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.arity_mismatch,
            message=str(self),
            name=self.func_name,
            expected_min=self.expected_min,
            expected_max=self.expected_max,
            actual=self.actual,
            position=self.position,
        )


class FormulaDivisionError(FormulaError):
    """Division (or a negative power) with a zero operand."""

    def __init__(self, position: int | None = None) -> None:
        self.position = position
        super().__init__("Division by zero in formula")

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.division_by_zero,
            message=str(self),
            position=self.position,
        )


class FormulaNumericError(FormulaError):
    """A value that is not a finite real number was produced or supplied.

    Attributes:
        name: The function or variable involved, when known.
    """

    def __init__(self, message: str, name: str | None = None, position: int | None = None) -> None:
        self.name = name
        self.position = position
        super().__init__(message)

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.numeric_error,
            message=str(self),
            name=self.name,
            position=self.position,
        )


class ContextCollisionError(FormulaError):
    """An option-local field would overwrite a caller-supplied variable."""

    def __init__(self, name: str, option_id: str | None = None) -> None:
        self.name = name
        self.option_id = option_id
        msg = f"Option field {name!r} collides with a caller-supplied variable"
        if option_id:
            msg += f" (option {option_id!r})"
        super().__init__(msg)

    def to_error(self) -> EngineError:
        return EngineError(
            kind=ErrorKind.context_collision,
            message=str(self),
            name=self.name,
            formula=self.option_id,
        )
