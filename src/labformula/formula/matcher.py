"""Formula matcher for LabFormula.

Evaluates every active formula against every sampled column of a table
and records which cells the result applies to.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from labformula.core.exceptions import EvaluationError
from labformula.core.logging import get_logger
from labformula.formula.bindings import build_bindings, clean_variable_name
from labformula.formula.evaluator import FormulaEvaluator
from labformula.formula.parser import ParsedFormula, extract_variables
from labformula.schemas.formula import FormulaRecord
from labformula.schemas.table import DataRow

logger = get_logger(__name__)

HighlightScope = Literal["column", "referenced"]


@dataclass(frozen=True)
class PreparedFormula:
    """A formula record paired with its parse result."""

    record: FormulaRecord
    parsed: ParsedFormula


@dataclass(frozen=True)
class FormulaMatch:
    """Outcome of one formula for one (row, column) cell."""

    formula_id: str
    formula_name: str
    formula_text: str
    color: str
    row: str
    column: str
    left_result: float
    right_result: float
    matched: bool


class FormulaMatcher:
    """
    Match parsed formulas against table cells.

    A formula only depends on the column's binding, so it is evaluated once
    per column and the outcome is recorded for each target row:

    - ``column`` scope: every row with a variable name and a value in the column
    - ``referenced`` scope: only the rows of variables the formula references

    Formulas referencing a variable with no value in the column are skipped
    for that column. Evaluation errors are logged and never stop the pass.
    """

    def __init__(
        self,
        evaluator: Optional[FormulaEvaluator] = None,
        variable_column: str = "Variable",
        row_id_column: str = "id",
        metadata_columns: Optional[Sequence[str]] = None,
        highlight_scope: HighlightScope = "column",
    ):
        self.evaluator = evaluator or FormulaEvaluator()
        self.variable_column = variable_column
        self.row_id_column = row_id_column
        self.metadata_columns = set(metadata_columns or ()) | {variable_column, row_id_column}
        self.highlight_scope = highlight_scope

    def data_columns(self, columns: Sequence[str]) -> list[str]:
        """Columns holding sampled values, in table order."""
        return [col for col in columns if col not in self.metadata_columns]

    def match(
        self,
        formulas: Sequence[PreparedFormula],
        rows: Sequence[DataRow],
        columns: Sequence[str],
    ) -> list[FormulaMatch]:
        """
        Evaluate formulas against every sampled column.

        Args:
            formulas: Parsed formulas; inactive ones are ignored
            rows: Table rows keyed by column name
            columns: Column names in table order

        Returns:
            One FormulaMatch per evaluated (formula, row, column), matched or not
        """
        active = [f for f in formulas if f.record.active]
        if not active or not rows:
            return []

        matches: list[FormulaMatch] = []
        for column in self.data_columns(columns):
            bindings = build_bindings(rows, column, self.variable_column)
            if not bindings:
                logger.debug(f"No numeric values in column '{column}', skipping")
                continue

            candidates = [
                (row, name)
                for row in rows
                if (name := clean_variable_name(row.get(self.variable_column)))
                and row.get(column) not in (None, "")
            ]

            for prepared in active:
                matches.extend(self._match_column(prepared, column, bindings, candidates))

        return matches

    def _match_column(
        self,
        prepared: PreparedFormula,
        column: str,
        bindings: dict[str, float],
        candidates: list[tuple[DataRow, str]],
    ) -> list[FormulaMatch]:
        """Evaluate one formula for one column and expand it to target rows."""
        record, parsed = prepared.record, prepared.parsed

        required = extract_variables(parsed.left_expression, bindings) + extract_variables(
            parsed.right_expression, bindings
        )
        missing = [name for name in dict.fromkeys(required) if name not in bindings]
        if missing:
            logger.debug(
                f"Formula '{record.name}' skipped for column '{column}'",
                extra={"formula_id": record.id, "missing_variables": missing},
            )
            return []

        try:
            result = self.evaluator.compare(parsed, bindings)
        except EvaluationError as e:
            logger.debug(
                f"Error evaluating formula '{record.name}' for column '{column}': {e.error}",
                extra={"formula_id": record.id, "column": column},
            )
            return []

        if self.highlight_scope == "referenced":
            referenced = set(required)
            targets = [row for row, name in candidates if name in referenced]
        else:
            targets = [row for row, _ in candidates]

        return [
            FormulaMatch(
                formula_id=record.id,
                formula_name=record.name,
                formula_text=record.formula,
                color=record.color,
                row=str(row.get(self.row_id_column)),
                column=column,
                left_result=result.left,
                right_result=result.right,
                matched=result.matched,
            )
            for row in targets
        ]
