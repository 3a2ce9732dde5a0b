"""Highlight service: runs one evaluation pass of formulas over a table."""

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from labformula.cache.formula_cache import FormulaCache, formula_cache
from labformula.core.config import Settings, settings as default_settings
from labformula.core.exceptions import ParseError
from labformula.core.logging import get_logger
from labformula.formula.aggregator import HighlightAggregator
from labformula.formula.evaluator import FormulaEvaluator
from labformula.formula.matcher import FormulaMatcher, PreparedFormula
from labformula.schemas.formula import (
    EvaluationReport,
    FormulaRecord,
    FormulaScope,
    FormulaWarning,
    HighlightedCell,
)
from labformula.schemas.table import DataRow, DataTable

logger = get_logger(__name__)

FormulaInput = Union[FormulaRecord, Mapping[str, Any]]
TableInput = Union[DataTable, Mapping[str, Any]]


def _field(formula: Any, name: str) -> Any:
    if isinstance(formula, Mapping):
        return formula.get(name, "")
    return getattr(formula, name, "")


def filter_applicable_formulas(
    formulas: Iterable[FormulaRecord],
    table_id: Optional[str] = None,
) -> list[FormulaRecord]:
    """
    Keep the active formulas that apply to ``table_id``.

    - ``workspace`` scope applies to every table
    - ``table`` scope applies only to its own table
    - no scope: formulas without a table are global, others need a matching table
    """
    applicable = []
    for formula in formulas:
        if not formula.active:
            continue
        if formula.scope == FormulaScope.WORKSPACE:
            applicable.append(formula)
        elif formula.scope == FormulaScope.TABLE:
            if table_id is not None and formula.table_id == table_id:
                applicable.append(formula)
        elif formula.table_id is None or formula.table_id == table_id:
            applicable.append(formula)
    return applicable


class HighlightService:
    """
    Service evaluating formulas against a lab data table.

    The pass is synchronous and never raises for a bad formula or cell:
    parse failures become warnings in the report, evaluation failures
    are logged and skipped.
    """

    def __init__(
        self,
        cache: Optional[FormulaCache] = None,
        evaluator: Optional[FormulaEvaluator] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.config = config or default_settings
        self.cache = cache if cache is not None else formula_cache
        self.evaluator = evaluator or FormulaEvaluator(epsilon=self.config.equality_epsilon)
        self.matcher = FormulaMatcher(
            evaluator=self.evaluator,
            variable_column=self.config.variable_column,
            row_id_column=self.config.row_id_column,
            metadata_columns=self.config.metadata_columns,
            highlight_scope=self.config.highlight_scope,
        )
        self.aggregator = HighlightAggregator()

    def prepare_formulas(
        self,
        formulas: Sequence[FormulaRecord],
    ) -> tuple[list[PreparedFormula], list[FormulaWarning]]:
        """
        Parse active formulas through the cache.

        Returns:
            Tuple of (prepared formulas, warnings for formulas that failed to parse)
        """
        prepared: list[PreparedFormula] = []
        warnings: list[FormulaWarning] = []

        for formula in formulas:
            if not formula.active:
                continue
            try:
                parsed = self.cache.get_or_parse(formula.formula)
            except ParseError as e:
                logger.warning(
                    f"Error parsing formula '{formula.name}': {e.error}",
                    extra={"formula_id": formula.id},
                )
                warnings.append(
                    FormulaWarning(
                        formula_id=formula.id,
                        formula_name=formula.name,
                        code=e.code,
                        message=e.error,
                    )
                )
                continue
            prepared.append(PreparedFormula(record=formula, parsed=parsed))

        return prepared, warnings

    def evaluate_rows(
        self,
        formulas: Iterable[FormulaInput],
        rows: Sequence[DataRow],
        columns: Sequence[str],
    ) -> EvaluationReport:
        """
        Evaluate formulas against keyed rows.

        Args:
            formulas: Formula records or dicts
            rows: Rows keyed by column name, each with an id and a variable name
            columns: Column names in table order

        Returns:
            EvaluationReport with highlighted cells and per-formula warnings
        """
        records, record_warnings = self._to_records(formulas)
        return self._run(records, rows, columns, record_warnings)

    def _run(
        self,
        records: list[FormulaRecord],
        rows: Sequence[DataRow],
        columns: Sequence[str],
        record_warnings: list[FormulaWarning],
    ) -> EvaluationReport:
        active = [f for f in records if f.active]
        prepared, parse_warnings = self.prepare_formulas(active)

        matches = self.matcher.match(prepared, rows, columns)
        cells = self.aggregator.aggregate(matches)

        logger.info(
            "Formula evaluation finished",
            extra={
                "formulas": len(active),
                "evaluated": len(prepared),
                "columns": len(self.matcher.data_columns(columns)),
                "rows": len(rows),
                "highlighted_cells": len(cells),
            },
        )
        return EvaluationReport(
            cells=cells,
            warnings=record_warnings + parse_warnings,
            evaluated_formulas=len(prepared),
            skipped_formulas=len(active) - len(prepared),
        )

    def evaluate(
        self,
        formulas: Iterable[FormulaInput],
        table: TableInput,
        table_id: Optional[str] = None,
    ) -> EvaluationReport:
        """
        Evaluate formulas against a ``{columns, data}`` table.

        When ``table_id`` is given, formulas are first filtered by scope.

        Raises:
            TableStructureError: If a data row is wider than the column list
        """
        data_table = table if isinstance(table, DataTable) else DataTable.model_validate(table)
        records, record_warnings = self._to_records(formulas)
        if table_id is not None:
            records = filter_applicable_formulas(records, table_id)

        if self.config.variable_column not in data_table.columns:
            logger.warning(
                f"No '{self.config.variable_column}' column found in table",
                extra={"table_id": table_id},
            )
            return EvaluationReport(warnings=record_warnings)

        rows = data_table.to_rows(self.config.row_id_column, self.config.row_id_prefix)
        return self._run(records, rows, data_table.columns, record_warnings)

    @staticmethod
    def _to_records(
        formulas: Iterable[FormulaInput],
    ) -> tuple[list[FormulaRecord], list[FormulaWarning]]:
        """Validate raw formula dicts, turning invalid ones into warnings."""
        records: list[FormulaRecord] = []
        warnings: list[FormulaWarning] = []
        for formula in formulas:
            if isinstance(formula, FormulaRecord):
                records.append(formula)
                continue
            try:
                records.append(FormulaRecord.model_validate(formula))
            except ValidationError as e:
                logger.warning(f"Invalid formula record: {e.error_count()} errors")
                warnings.append(
                    FormulaWarning(
                        formula_id=str(_field(formula, "id")),
                        formula_name=str(_field(formula, "name")),
                        code="INVALID_FORMULA_RECORD",
                        message=str(e),
                    )
                )
        return records, warnings


def evaluate_formulas_for_table(
    formulas: Iterable[FormulaInput],
    table: TableInput,
    table_id: Optional[str] = None,
) -> list[HighlightedCell]:
    """Convenience function returning only the highlighted cells of a pass."""
    return HighlightService().evaluate(formulas, table, table_id).cells


def evaluate_formulas(
    formulas: Iterable[FormulaInput],
    rows: Sequence[DataRow],
    columns: Sequence[str],
) -> list[HighlightedCell]:
    """Convenience function for callers that already hold keyed rows."""
    return HighlightService().evaluate_rows(formulas, rows, columns).cells
