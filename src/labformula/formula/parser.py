"""Formula parser for LabFormula.

Splits a comparison formula such as
``(İletkenlik + Toplam Fosfor) > (Orto Fosfat + Alkalinite Tayini)``
into its two arithmetic sides and extracts the variable names each side
references. Substituted arithmetic text is parsed into an AST using Lark.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable, Optional

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError

from labformula.core.exceptions import ParseError
from labformula.formula.grammar import ARITHMETIC_GRAMMAR

COMPARISON_OPERATORS = (">=", "<=", "==", "!=", ">", "<")

# Alternative spellings accepted in formula text
OPERATOR_ALIASES = {"=": "==", "<>": "!="}

# Two-character operators come first so ">" never matches inside ">="
_COMPARISON_RE = re.compile(r"(>=|<=|<>|==|!=|=|>|<)")

_BRACKET_RE = re.compile(r"\[([^\]]+)\]")

_NUMBER_RE = re.compile(r"(?<![\w.])(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?(?!\w)")

# A letter (any script) followed by letters, digits, underscores or spaces
_TOKEN_RE = re.compile(r"[^\W\d_][\w ]*")

_RESERVED_WORDS = frozenset(
    {"true", "false", "null", "none", "nan", "inf", "infinity", "undefined"}
)


# AST Node types
@dataclass
class NumberNode:
    value: float


@dataclass
class BinaryOpNode:
    operator: str
    left: Any
    right: Any


@dataclass
class UnaryOpNode:
    operator: str
    operand: Any


@dataclass(frozen=True)
class ParsedFormula:
    """A formula split into ``left operator right`` with its variable names."""

    formula: str
    left_expression: str
    operator: str
    right_expression: str
    left_variables: tuple[str, ...] = field(default=())
    right_variables: tuple[str, ...] = field(default=())

    @property
    def variables(self) -> tuple[str, ...]:
        """Variable names referenced by either side, in order of appearance."""
        return tuple(dict.fromkeys(self.left_variables + self.right_variables))


class ArithmeticTransformer(Transformer):
    """Transform Lark parse tree into AST nodes."""

    @v_args(inline=True)
    def number(self, token):
        return NumberNode(float(token))

    @v_args(inline=True)
    def add(self, left, right):
        return BinaryOpNode("+", left, right)

    @v_args(inline=True)
    def sub(self, left, right):
        return BinaryOpNode("-", left, right)

    @v_args(inline=True)
    def mul(self, left, right):
        return BinaryOpNode("*", left, right)

    @v_args(inline=True)
    def div(self, left, right):
        return BinaryOpNode("/", left, right)

    @v_args(inline=True)
    def neg(self, operand):
        return UnaryOpNode("-", operand)

    @v_args(inline=True)
    def pos(self, operand):
        return operand  # Positive is a no-op


def is_variable_name(name: str) -> bool:
    """Return True when ``name`` has a letter; pure numbers are never variables."""
    return bool(name) and _TOKEN_RE.search(name) is not None


@lru_cache(maxsize=1024)
def variable_pattern(name: str) -> re.Pattern[str]:
    """
    Compile a pattern matching ``name`` as a whole word.

    Internal whitespace in the name matches any run of whitespace, so
    ``Toplam Fosfor`` also matches ``Toplam  Fosfor``. A dot counts as part
    of a word so names never match inside numeric literals.
    """
    body = r"\s+".join(re.escape(part) for part in name.split())
    return re.compile(rf"(?<![\w.]){body}(?![\w.])")


def normalize_formula(formula: str) -> str:
    """Strip ``[...]`` around bracketed variable names."""
    return _BRACKET_RE.sub(lambda m: m.group(1).strip(), formula).strip()


def _blank(match: re.Match[str]) -> str:
    return "#" * len(match.group(0))


def extract_variables(
    expression: str,
    known: Optional[Iterable[str]] = None,
) -> list[str]:
    """
    Extract variable names referenced by an arithmetic expression.

    When ``known`` names are given they are matched first, longest name
    first, so compound names such as ``Toplam Fosfor`` or ``pH 7`` resolve
    exactly. Whatever variable-like text is left over is reported as
    well, which lets callers detect references to unknown variables.

    Args:
        expression: Arithmetic expression text
        known: Optional variable names to match before the generic token rule

    Returns:
        Unique variable names in order of appearance
    """
    text = normalize_formula(expression)
    hits: list[tuple[int, str]] = []

    if known:
        names = sorted({n for n in known if is_variable_name(n)}, key=len, reverse=True)
        for name in names:
            pattern = variable_pattern(name)
            match = pattern.search(text)
            if match is None:
                continue
            hits.append((match.start(), name))
            text = pattern.sub(_blank, text)

    text = _NUMBER_RE.sub(_blank, text)
    for match in _TOKEN_RE.finditer(text):
        token = match.group(0).strip()
        if token and token.casefold() not in _RESERVED_WORDS:
            hits.append((match.start(), token))

    hits.sort(key=lambda hit: hit[0])
    return list(dict.fromkeys(name for _, name in hits))


class FormulaParser:
    """
    Parser for comparison formulas.

    ``parse`` is pure; memoization is done by ``FormulaCache``.
    """

    def __init__(self):
        self._parser = Lark(
            ARITHMETIC_GRAMMAR,
            parser="lalr",
            transformer=ArithmeticTransformer(),
        )

    def parse(self, formula: str) -> ParsedFormula:
        """
        Parse a formula string into a ParsedFormula.

        Args:
            formula: Formula text, e.g. ``"A + B > C * 2"``

        Returns:
            ParsedFormula with trimmed left/right expressions

        Raises:
            ParseError: If the text does not contain exactly one comparison operator
        """
        if not isinstance(formula, str) or not formula.strip():
            raise ParseError(str(formula), "Formula is empty")

        text = normalize_formula(formula)
        parts = _COMPARISON_RE.split(text)
        operator_count = (len(parts) - 1) // 2
        if operator_count != 1:
            raise ParseError(
                formula,
                "Formula must contain exactly one comparison operator, "
                f"found {operator_count}",
            )

        left, operator, right = (part.strip() for part in parts)
        if not left or not right:
            raise ParseError(formula, "Both sides of the comparison must be non-empty")

        return ParsedFormula(
            formula=formula,
            left_expression=left,
            operator=OPERATOR_ALIASES.get(operator, operator),
            right_expression=right,
            left_variables=tuple(extract_variables(left)),
            right_variables=tuple(extract_variables(right)),
        )

    def parse_arithmetic(self, expression: str) -> Any:
        """
        Parse a variable-free arithmetic expression into an AST.

        Raises:
            ValueError: If expression syntax is invalid
        """
        try:
            return self._parser.parse(expression)
        except LarkError as e:
            raise ValueError(f"Invalid arithmetic syntax: {e}") from e

    def validate(self, formula: str) -> tuple[bool, str | None]:
        """
        Validate formula structure without evaluating it.

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.parse(formula)
            return True, None
        except ParseError as e:
            return False, e.error


_parser: Optional[FormulaParser] = None


def get_parser() -> FormulaParser:
    """Return the shared parser, building the Lark tables on first use."""
    global _parser
    if _parser is None:
        _parser = FormulaParser()
    return _parser


def parse_formula(formula: str) -> ParsedFormula:
    """Convenience function to parse a formula with the shared parser."""
    return get_parser().parse(formula)
