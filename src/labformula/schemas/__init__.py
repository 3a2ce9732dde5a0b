"""Pydantic schemas for formula records, tables and highlight results."""

from labformula.schemas.formula import (
    EvaluationReport,
    FormulaDetail,
    FormulaRecord,
    FormulaScope,
    FormulaType,
    FormulaValidation,
    FormulaWarning,
    HighlightedCell,
)
from labformula.schemas.table import DataRow, DataTable

__all__ = [
    "DataRow",
    "DataTable",
    "EvaluationReport",
    "FormulaDetail",
    "FormulaRecord",
    "FormulaScope",
    "FormulaType",
    "FormulaValidation",
    "FormulaWarning",
    "HighlightedCell",
]
