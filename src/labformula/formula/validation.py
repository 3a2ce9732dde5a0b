"""Formula validation against the variables of a table.

Used by formula editors to reject formulas before they are saved.
"""

import re
from typing import Iterable, Optional

from labformula.core.exceptions import EvaluationError, ParseError
from labformula.formula.evaluator import FormulaEvaluator
from labformula.formula.parser import (
    FormulaParser,
    ParsedFormula,
    extract_variables,
    get_parser,
    variable_pattern,
)
from labformula.schemas.formula import FormulaValidation

_ARITHMETIC_RE = re.compile(r"[+\-*/]")


def _resolve(
    formula: str,
    available_variables: Iterable[str],
    parser: FormulaParser,
) -> tuple[ParsedFormula, list[str], list[str]]:
    parsed = parser.parse(formula)
    known = list(available_variables)
    left = extract_variables(parsed.left_expression, known)
    right = extract_variables(parsed.right_expression, known)
    return parsed, left, right


def validate_formula(
    formula: str,
    available_variables: Iterable[str],
    parser: Optional[FormulaParser] = None,
) -> FormulaValidation:
    """
    Check that a formula parses, only uses known variables and is valid arithmetic.

    Args:
        formula: Formula text
        available_variables: Variable names present in the target table
        parser: Parser to use (shared parser by default)

    Returns:
        FormulaValidation describing the outcome
    """
    parser = parser or get_parser()
    available = [name for name in available_variables if name]

    try:
        parsed, left, right = _resolve(formula, available, parser)
    except ParseError as e:
        return FormulaValidation(is_valid=False, error=e.error)

    used = list(dict.fromkeys(left + right))
    missing = [name for name in used if name not in available]
    if missing:
        return FormulaValidation(
            is_valid=False,
            error=f"Unknown variables: {', '.join(missing)}",
            missing_variables=missing,
            left_variables=left,
            right_variables=right,
        )

    # Syntax check only; dummy values could divide by zero
    evaluator = FormulaEvaluator(parser=parser)
    dummy = {name: 1.0 for name in used}
    for expression in (parsed.left_expression, parsed.right_expression):
        processed = evaluator.substitute(expression, dummy)
        try:
            parser.parse_arithmetic(processed)
        except ValueError:
            return FormulaValidation(
                is_valid=False,
                error=f"Invalid arithmetic expression: {expression}",
                left_variables=left,
                right_variables=right,
            )

    return FormulaValidation(is_valid=True, left_variables=left, right_variables=right)


def validate_unidirectional_formula(
    formula: str,
    available_variables: Iterable[str],
    parser: Optional[FormulaParser] = None,
) -> FormulaValidation:
    """
    Validate a formula for table-scoped highlighting.

    On top of ``validate_formula`` the left side must be exactly one variable
    with no arithmetic, and that variable must not appear on the right side.
    The left variable is returned as ``target_variable``: the row that the
    formula highlights.
    """
    available = [name for name in available_variables if name]
    result = validate_formula(formula, available, parser)
    if not result.is_valid:
        return result

    left, right = result.left_variables, result.right_variables
    parsed = (parser or get_parser()).parse(formula)

    if not left:
        return result.model_copy(
            update={"is_valid": False, "error": "The left side must reference a variable"}
        )
    if len(left) > 1:
        return result.model_copy(
            update={
                "is_valid": False,
                "error": (
                    "Only one variable is allowed on the left side, "
                    f"found {len(left)}: {', '.join(left)}"
                ),
            }
        )

    target = left[0]
    remainder = variable_pattern(target).sub("", parsed.left_expression)
    if _ARITHMETIC_RE.search(remainder):
        return result.model_copy(
            update={
                "is_valid": False,
                "error": f"Arithmetic is not allowed on the left side: {parsed.left_expression}",
            }
        )
    if target in right:
        return result.model_copy(
            update={
                "is_valid": False,
                "error": f"Variable '{target}' is used on both sides of the comparison",
            }
        )

    return result.model_copy(update={"target_variable": target})


def check_formula(formula: str, bindings: dict[str, float]) -> Optional[bool]:
    """
    Evaluate a formula against explicit values.

    Returns:
        The comparison outcome, or None when the formula cannot be evaluated
    """
    try:
        parsed = get_parser().parse(formula)
        return FormulaEvaluator().compare(parsed, bindings).matched
    except (ParseError, EvaluationError):
        return None
