"""Service layer modules."""

from labformula.services.highlight import (
    HighlightService,
    evaluate_formulas,
    evaluate_formulas_for_table,
    filter_applicable_formulas,
)

__all__ = [
    "HighlightService",
    "evaluate_formulas",
    "evaluate_formulas_for_table",
    "filter_applicable_formulas",
]
