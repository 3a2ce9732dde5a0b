"""Unit tests for formula and table schemas."""

import pytest
from pydantic import ValidationError

from labformula.core.exceptions import TableStructureError
from labformula.schemas.formula import FormulaRecord, FormulaScope, HighlightedCell
from labformula.schemas.table import DataTable


class TestFormulaRecord:
    """Tests for FormulaRecord."""

    def test_defaults(self):
        """Test default color and activity."""
        record = FormulaRecord(id="f1", name="EC", formula="A > 1")
        assert record.color == "#FF0000"
        assert record.active is True
        assert record.scope is None

    def test_color_normalized(self):
        """Test that colors are upper-cased with a leading hash."""
        record = FormulaRecord(id="f1", name="EC", formula="A > 1", color="00ff7f")
        assert record.color == "#00FF7F"

    @pytest.mark.parametrize("color", ["red", "#FFF", "#GG0000", ""])
    def test_invalid_color(self, color):
        """Test that malformed colors are rejected."""
        with pytest.raises(ValidationError):
            FormulaRecord(id="f1", name="EC", formula="A > 1", color=color)

    def test_scope(self):
        """Test scope parsing."""
        record = FormulaRecord(id="f1", name="EC", formula="A > 1", scope="table", table_id="t1")
        assert record.scope == FormulaScope.TABLE


class TestHighlightedCell:
    """Tests for HighlightedCell."""

    def test_formula_count(self):
        """Test the number of contributing formulas."""
        cell = HighlightedCell(
            row="r1", col="jan", color="#FF0000", message="EC", formula_ids=["f1", "f2"]
        )
        assert cell.formula_count == 2


class TestDataTable:
    """Tests for DataTable.to_rows."""

    def test_keyed_rows(self):
        """Test conversion with an id column."""
        table = DataTable(columns=["id", "Variable", "jan"], data=[[7, "A", 1.5]])
        assert table.to_rows() == [{"id": "7", "Variable": "A", "jan": 1.5}]

    def test_short_rows_padded(self):
        """Test that missing trailing cells become None."""
        table = DataTable(columns=["id", "Variable", "jan", "feb"], data=[["r1", "A"]])
        assert table.to_rows()[0] == {"id": "r1", "Variable": "A", "jan": None, "feb": None}

    def test_synthesized_ids(self):
        """Test ids for tables without an id column."""
        table = DataTable(columns=["Variable", "jan"], data=[["A", 1], ["B", 2]])
        assert [row["id"] for row in table.to_rows()] == ["row-1", "row-2"]

    def test_custom_id_settings(self):
        """Test a custom id column and prefix."""
        table = DataTable(columns=["Variable", "jan"], data=[["A", 1]])
        assert table.to_rows("key", "r")[0]["key"] == "r1"

    def test_wide_row(self):
        """Test that rows wider than the column list are rejected."""
        table = DataTable(columns=["Variable"], data=[["A", 1]])
        with pytest.raises(TableStructureError) as exc:
            table.to_rows()
        assert exc.value.details == {"row_index": 0}
