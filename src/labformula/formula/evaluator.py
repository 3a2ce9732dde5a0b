"""Formula evaluator for LabFormula.

Evaluates the arithmetic sides of a parsed formula against a variable
binding and applies the comparison operator.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from labformula.core.config import settings
from labformula.core.exceptions import EvaluationError, UndefinedVariableError
from labformula.formula.parser import (
    OPERATOR_ALIASES,
    BinaryOpNode,
    FormulaParser,
    NumberNode,
    ParsedFormula,
    UnaryOpNode,
    extract_variables,
    get_parser,
    is_variable_name,
    variable_pattern,
)


@dataclass(frozen=True)
class ComparisonResult:
    """Both evaluated sides of a formula and the comparison outcome."""

    left: float
    operator: str
    right: float
    matched: bool


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def apply_comparison(
    left: float,
    operator: str,
    right: float,
    epsilon: Optional[float] = None,
) -> bool:
    """
    Compare two numbers.

    ``==`` and ``!=`` use an absolute tolerance of ``epsilon`` (defaults to
    ``settings.equality_epsilon``). A NaN or missing operand never matches.

    Raises:
        ValueError: If the operator is not supported
    """
    if epsilon is None:
        epsilon = settings.equality_epsilon
    op = OPERATOR_ALIASES.get(operator, operator)

    if op not in (">", "<", ">=", "<=", "==", "!="):
        raise ValueError(f"Unsupported operator: {operator}")

    if not _is_number(left) or not _is_number(right):
        return False
    if math.isnan(left) or math.isnan(right):
        return False

    if op == ">":
        return left > right
    if op == "<":
        return left < right
    if op == ">=":
        return left >= right
    if op == "<=":
        return left <= right
    if op == "==":
        return abs(left - right) < epsilon
    return abs(left - right) >= epsilon


class FormulaEvaluator:
    """
    Evaluates formula expressions against a variable binding.

    Variables are replaced by their values, longest name first, and the
    remaining text is parsed with the arithmetic-only grammar. Names left
    over after substitution are reported as undefined.
    """

    def __init__(
        self,
        bindings: Optional[Mapping[str, float]] = None,
        parser: Optional[FormulaParser] = None,
        epsilon: Optional[float] = None,
    ):
        """
        Initialize evaluator.

        Args:
            bindings: Default variable values, overridable per call
            parser: Parser used for arithmetic text (shared parser by default)
            epsilon: Equality tolerance (``settings.equality_epsilon`` by default)
        """
        self._bindings: dict[str, float] = dict(bindings or {})
        self._parser = parser or get_parser()
        self._epsilon = epsilon

    def substitute(self, expression: str, bindings: Mapping[str, float]) -> str:
        """
        Replace whole-word variable occurrences with their values.

        Longer names are processed first so ``Toplam Fosfor`` is replaced
        before a variable named ``Fosfor`` can overwrite part of it.

        Raises:
            EvaluationError: If a referenced variable has a non-finite value
        """
        processed = expression
        for name in sorted(bindings, key=len, reverse=True):
            if not is_variable_name(name):
                continue
            pattern = variable_pattern(name)
            if pattern.search(processed) is None:
                continue

            value = bindings[name]
            if not _is_number(value) or not math.isfinite(value):
                raise EvaluationError(
                    expression,
                    f"Variable '{name}' has invalid value: {value!r}",
                    details={"variable": name},
                )
            processed = pattern.sub(f"({float(value)!r})", processed)

        return processed

    def evaluate(
        self,
        expression: str,
        bindings: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Evaluate an arithmetic expression.

        Args:
            expression: Expression text, e.g. ``"(İletkenlik + Toplam Fosfor)"``
            bindings: Variable values (overrides constructor values)

        Returns:
            Finite numeric result

        Raises:
            UndefinedVariableError: If a referenced variable has no binding
            EvaluationError: If the expression is malformed or not a finite number
        """
        values = self._bindings if bindings is None else bindings

        if not expression or not expression.strip():
            raise EvaluationError(str(expression), "Expression is empty")

        processed = self.substitute(expression, values)

        remaining = extract_variables(processed)
        if remaining:
            raise UndefinedVariableError(expression, remaining)

        try:
            ast = self._parser.parse_arithmetic(processed)
        except ValueError as e:
            raise EvaluationError(
                expression,
                f"Failed to evaluate expression: {processed}",
                details={"processed": processed, "cause": str(e)},
            ) from e

        try:
            result = self._eval(ast, expression)
        except RecursionError as e:
            raise EvaluationError(expression, "Expression is too deeply nested") from e

        if not math.isfinite(result):
            raise EvaluationError(
                expression,
                f"Expression evaluation resulted in non-numeric value: {result}",
            )
        return result

    def compare(
        self,
        parsed: ParsedFormula,
        bindings: Optional[Mapping[str, float]] = None,
    ) -> ComparisonResult:
        """
        Evaluate both sides of a parsed formula and apply its operator.

        Raises:
            EvaluationError: If either side cannot be evaluated
        """
        left = self.evaluate(parsed.left_expression, bindings)
        right = self.evaluate(parsed.right_expression, bindings)
        matched = apply_comparison(left, parsed.operator, right, self._epsilon)
        return ComparisonResult(left=left, operator=parsed.operator, right=right, matched=matched)

    def _eval(self, node: Any, expression: str) -> float:
        """Recursively evaluate an arithmetic AST node."""
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, UnaryOpNode):
            operand = self._eval(node.operand, expression)
            if node.operator == "-":
                return -operand
            raise EvaluationError(expression, f"Unknown unary operator: {node.operator}")

        if isinstance(node, BinaryOpNode):
            left = self._eval(node.left, expression)
            right = self._eval(node.right, expression)
            op = node.operator

            if op == "+":
                return left + right
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if op == "/":
                if right == 0:
                    raise EvaluationError(expression, "Division by zero")
                return left / right

            raise EvaluationError(expression, f"Unknown operator: {op}")

        raise EvaluationError(expression, f"Unexpected expression node: {node!r}")


def evaluate(expression: str, bindings: Mapping[str, float]) -> float:
    """Convenience function to evaluate an expression with the shared parser."""
    return FormulaEvaluator().evaluate(expression, bindings)
