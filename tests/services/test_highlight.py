"""Tests for HighlightService."""

from types import SimpleNamespace

import pytest

from labformula.core.config import Settings
from labformula.core.exceptions import TableStructureError
from labformula.schemas.formula import FormulaRecord
from labformula.services.highlight import (
    HighlightService,
    evaluate_formulas,
    evaluate_formulas_for_table,
    filter_applicable_formulas,
)


@pytest.fixture
def service(cache, test_settings):
    """Service with an isolated cache."""
    return HighlightService(cache=cache, config=test_settings)


class TestEvaluate:
    """Tests for HighlightService.evaluate."""

    def test_lab_formula_highlights_column(self, service, lab_table, lab_formula, make_formula):
        """Test the lab formula end to end."""
        report = service.evaluate([make_formula(lab_formula, name="EC check")], lab_table)

        assert [(c.row, c.col) for c in report.cells] == [
            ("r1", "2022-09"),
            ("r2", "2022-09"),
            ("r3", "2022-09"),
            ("r4", "2022-09"),
        ]
        for cell in report.cells:
            assert cell.color == "#FF0000"
            assert cell.message == "EC check"
            assert cell.formula_ids == ["f1"]
            assert cell.formula_details[0].left_result == pytest.approx(374.029)
            assert cell.formula_details[0].right_result == pytest.approx(177.023)
        assert report.warnings == []
        assert report.evaluated_formulas == 1

    def test_two_formulas_blend(self, service, lab_table, make_formula):
        """Test two matching formulas on the same cells."""
        formulas = [
            make_formula("İletkenlik > 300", id="f1", name="High EC", color="#FF0000"),
            make_formula("Alkalinite Tayini > 100", id="f2", name="High Alk", color="#00FF00"),
        ]
        report = service.evaluate(formulas, lab_table)

        assert len(report.cells) == 4
        cell = report.cells[0]
        assert len(cell.formula_ids) == 2
        assert cell.color == "#808000"
        assert "High EC" in cell.message
        assert "High Alk" in cell.message

    def test_undefined_variable_no_highlights(self, service, lab_table, make_formula):
        """Test that a formula with an unknown variable never matches."""
        report = service.evaluate([make_formula("Nitrat > 0")], lab_table)
        assert report.cells == []
        assert report.warnings == []

    def test_parse_error_becomes_warning(self, service, lab_table, make_formula):
        """Test that a malformed formula does not stop the others."""
        formulas = [
            make_formula("İletkenlik + 1", id="bad", name="Broken"),
            make_formula("İletkenlik > 300", id="good"),
        ]
        report = service.evaluate(formulas, lab_table)

        assert len(report.cells) == 4
        assert report.evaluated_formulas == 1
        assert report.skipped_formulas == 1
        assert len(report.warnings) == 1
        warning = report.warnings[0]
        assert warning.formula_id == "bad"
        assert warning.formula_name == "Broken"
        assert warning.code == "PARSE_ERROR"

    def test_invalid_record_becomes_warning(self, service, lab_table):
        """Test that a formula dict with a bad color is reported, not raised."""
        formulas = [
            {"id": "f1", "name": "Bad color", "formula": "İletkenlik > 1", "color": "red"},
            {"id": "f2", "name": "Ok", "formula": "İletkenlik > 1", "color": "#0000ff"},
        ]
        report = service.evaluate(formulas, lab_table)
        assert [w.code for w in report.warnings] == ["INVALID_FORMULA_RECORD"]
        assert all(c.color == "#0000FF" for c in report.cells)

    def test_inactive_formulas_skipped(self, service, lab_table, make_formula):
        """Test that inactive formulas produce nothing."""
        report = service.evaluate([make_formula("İletkenlik > 1", active=False)], lab_table)
        assert report.cells == []
        assert report.evaluated_formulas == 0

    def test_uses_cache(self, service, cache, lab_table, make_formula):
        """Test that repeated passes reuse parsed formulas."""
        formula = make_formula("İletkenlik > 1")
        service.evaluate([formula], lab_table)
        service.evaluate([formula], lab_table)
        assert cache.misses == 1
        assert cache.hits == 1

    def test_no_variable_column(self, service, make_formula):
        """Test a table without the variable column."""
        table = {"columns": ["id", "2022-09"], "data": [["r1", 1]]}
        report = service.evaluate([make_formula("A > 0")], table)
        assert report.cells == []

    def test_synthesized_row_ids(self, service, make_formula):
        """Test row ids for tables without an id column."""
        table = {"columns": ["Variable", "jan"], "data": [["A", 5], ["B", 1]]}
        report = service.evaluate([make_formula("A > B")], table)
        assert [c.row for c in report.cells] == ["row-1", "row-2"]

    def test_string_values_cleaned(self, service, make_formula):
        """Test that numeric strings bind."""
        table = {"columns": ["Variable", "jan"], "data": [["A", "<0.5"], ["B", "0.1 mg/L"]]}
        report = service.evaluate([make_formula("A > B")], table)
        assert len(report.cells) == 2

    def test_wide_row_raises(self, service, make_formula):
        """Test that malformed tables are rejected."""
        table = {"columns": ["Variable", "jan"], "data": [["A", 1, 2]]}
        with pytest.raises(TableStructureError):
            service.evaluate([make_formula("A > 0")], table)

    def test_referenced_scope_setting(self, cache, lab_table, make_formula):
        """Test highlighting only the rows a formula references."""
        service = HighlightService(
            cache=cache, config=Settings(_env_file=None, highlight_scope="referenced")
        )
        report = service.evaluate([make_formula("İletkenlik > Alkalinite Tayini")], lab_table)
        assert [c.row for c in report.cells] == ["r1", "r4"]

    def test_table_scope_filtering(self, service, lab_table, make_formula):
        """Test that table_id filters formulas by scope."""
        formulas = [
            make_formula("İletkenlik > 1", id="mine", scope="table", table_id="t1"),
            make_formula("İletkenlik > 1", id="other", scope="table", table_id="t2"),
            make_formula("İletkenlik > 1", id="ws", scope="workspace", color="#0000FF"),
        ]
        report = service.evaluate(formulas, lab_table, table_id="t1")
        assert report.cells[0].formula_ids == ["mine", "ws"]

    def test_oversized_formula_does_not_stop_pass(self, service, make_formula):
        """Test that a formula too deep to evaluate is skipped like any other failure."""
        table = {"columns": ["Variable", "jan"], "data": [["A", 1], ["B", 2]]}
        chain = " + ".join(["A"] * 1500)
        formulas = [
            make_formula(f"{chain} > 0", id="deep", name="Deep"),
            make_formula("B > 1", id="ok", name="B check"),
        ]
        report = service.evaluate(formulas, table)

        assert [(c.row, c.formula_ids) for c in report.cells] == [
            ("row-1", ["ok"]),
            ("row-2", ["ok"]),
        ]
        assert report.evaluated_formulas == 2

    def test_numeric_variable_name_ignored(self, service, make_formula):
        """Test that a bare number in the variable column does not corrupt other values."""
        table = {"columns": ["Variable", "jan"], "data": [["A", 374], ["0", 5]]}
        report = service.evaluate([make_formula("A + 1 == 375")], table)
        assert len(report.cells) == 2
        assert report.cells[0].formula_details[0].left_result == 375.0

    def test_invalid_object_record_becomes_warning(self, service, lab_table):
        """Test that attribute-style formula objects are reported when invalid."""
        formula = SimpleNamespace(
            id="obj", name="Object formula", formula="İletkenlik > 1", color="red", active=True
        )
        report = service.evaluate([formula], lab_table)
        assert report.cells == []
        assert [(w.formula_id, w.formula_name, w.code) for w in report.warnings] == [
            ("obj", "Object formula", "INVALID_FORMULA_RECORD")
        ]

    def test_valid_object_record(self, service, lab_table):
        """Test that attribute-style formula objects are accepted."""
        formula = SimpleNamespace(
            id="obj", name="Object formula", formula="İletkenlik > 1", color="#00FF00"
        )
        report = service.evaluate([formula], lab_table)
        assert len(report.cells) == 4


class TestFilterApplicableFormulas:
    """Tests for filter_applicable_formulas."""

    def test_filtering(self, make_formula):
        """Test each scope rule."""
        formulas = [
            make_formula("A > 1", id="table-match", scope="table", table_id="t1"),
            make_formula("A > 1", id="table-other", scope="table", table_id="t2"),
            make_formula("A > 1", id="workspace", scope="workspace"),
            make_formula("A > 1", id="global"),
            make_formula("A > 1", id="legacy-match", table_id="t1"),
            make_formula("A > 1", id="legacy-other", table_id="t2"),
            make_formula("A > 1", id="inactive", active=False),
        ]
        result = filter_applicable_formulas(formulas, "t1")
        assert [f.id for f in result] == ["table-match", "workspace", "global", "legacy-match"]

    def test_no_table_id(self, make_formula):
        """Test that table scoped formulas need a table id."""
        formulas = [make_formula("A > 1", id="t", scope="table", table_id="t1")]
        assert filter_applicable_formulas(formulas) == []


class TestConvenienceFunctions:
    """Tests for the module level helpers."""

    def test_evaluate_formulas_for_table(self, lab_table, lab_formula):
        """Test evaluating with plain dicts."""
        formulas = [{"id": "f1", "name": "EC", "formula": lab_formula, "color": "#00FF00"}]
        cells = evaluate_formulas_for_table(formulas, lab_table)
        assert len(cells) == 4
        assert cells[0].color == "#00FF00"

    def test_evaluate_formulas_rows(self, lab_rows):
        """Test evaluating pre-keyed rows."""
        formula = FormulaRecord(id="f1", name="EC", formula="İletkenlik > 300")
        cells = evaluate_formulas([formula], lab_rows, ["id", "Variable", "Unit", "2022-09"])
        assert [c.row for c in cells] == ["r1", "r2", "r3", "r4"]
