"""Formula engine for LabFormula.

This module evaluates comparison formulas over lab data tables:
- Parsing: ``left <op> right`` with >, <, >=, <=, ==, != (plus = and <>)
- Variable extraction, including names with spaces and Turkish letters
- Arithmetic on both sides: +, -, *, / and parentheses (no general eval)
- Per-column variable bindings built from the "Variable" column
- Matching formulas to cells and merging multi-formula cells with blended colors
"""

from labformula.formula.aggregator import HighlightAggregator, blend_colors
from labformula.formula.bindings import build_bindings, clean_value, get_cell_value
from labformula.formula.evaluator import FormulaEvaluator, apply_comparison, evaluate
from labformula.formula.matcher import FormulaMatch, FormulaMatcher, PreparedFormula
from labformula.formula.parser import (
    FormulaParser,
    ParsedFormula,
    extract_variables,
    parse_formula,
)
from labformula.formula.validation import validate_formula, validate_unidirectional_formula

__all__ = [
    "FormulaEvaluator",
    "FormulaMatch",
    "FormulaMatcher",
    "FormulaParser",
    "HighlightAggregator",
    "ParsedFormula",
    "PreparedFormula",
    "apply_comparison",
    "blend_colors",
    "build_bindings",
    "clean_value",
    "evaluate",
    "extract_variables",
    "get_cell_value",
    "parse_formula",
    "validate_formula",
    "validate_unidirectional_formula",
]
