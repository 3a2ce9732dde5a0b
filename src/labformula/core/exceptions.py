"""
Custom exceptions for LabFormula.

Provides a hierarchy of exceptions raised by the formula engine.
Each carries structured error information so the host layer can
surface it as a per-formula warning.
"""

from typing import Any


class LabFormulaError(Exception):
    """
    Base exception for all LabFormula errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for reporting."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Formula Errors
# =============================================================================


class FormulaError(LabFormulaError):
    """Formula parsing or execution error."""

    def __init__(
        self,
        formula: str,
        error: str,
        code: str = "FORMULA_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=f"Formula error: {error}",
            code=code,
            details={"formula": formula, "error": error, **(details or {})},
        )
        self.formula = formula
        self.error = error


class ParseError(FormulaError):
    """Formula text does not reduce to exactly one comparison."""

    def __init__(self, formula: str, error: str) -> None:
        super().__init__(formula, error, code="PARSE_ERROR")


class EvaluationError(FormulaError):
    """Arithmetic expression could not be evaluated to a number."""

    def __init__(
        self,
        expression: str,
        error: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(expression, error, code="EVALUATION_ERROR", details=details)
        self.expression = expression


class UndefinedVariableError(EvaluationError):
    """Expression references variables with no bound value."""

    def __init__(self, expression: str, variables: list[str]) -> None:
        super().__init__(
            expression,
            f"Undefined variables in expression: {', '.join(variables)}",
            details={"variables": variables},
        )
        self.code = "UNDEFINED_VARIABLE"
        self.variables = variables


# =============================================================================
# Data Errors
# =============================================================================


class InvalidColorError(LabFormulaError):
    """Color string is not a #RRGGBB hex value."""

    def __init__(self, color: str) -> None:
        super().__init__(
            message=f"Invalid color: {color!r}. Expected #RRGGBB.",
            code="INVALID_COLOR",
            details={"color": str(color)[:20]},
        )


class TableStructureError(LabFormulaError):
    """Table data does not match its column layout."""

    def __init__(self, message: str, row_index: int | None = None) -> None:
        super().__init__(
            message=message,
            code="TABLE_STRUCTURE_ERROR",
            details={"row_index": row_index},
        )
