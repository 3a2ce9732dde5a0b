"""
Pytest configuration and fixtures for LabFormula tests.
"""

from typing import Any

import pytest

from labformula.cache.formula_cache import FormulaCache
from labformula.core.config import Settings
from labformula.schemas.formula import FormulaRecord

DATE_COLUMN = "2022-09"

E2E_FORMULA = "(İletkenlik + Toplam Fosfor) > (Orto Fosfat + Alkalinite Tayini)"


@pytest.fixture
def lab_formula() -> str:
    """Formula over all four lab variables; true for the lab table."""
    return E2E_FORMULA


@pytest.fixture
def lab_table() -> dict[str, Any]:
    """Lab table with four variables sampled in one month."""
    return {
        "columns": ["id", "Variable", "Unit", DATE_COLUMN],
        "data": [
            ["r1", "İletkenlik", "µS/cm", 374],
            ["r2", "Toplam Fosfor", "mg/L", 0.029],
            ["r3", "Orto Fosfat", "mg/L", 0.023],
            ["r4", "Alkalinite Tayini", "mg/L", 177],
        ],
    }


@pytest.fixture
def lab_rows(lab_table: dict[str, Any]) -> list[dict[str, Any]]:
    """The lab table as keyed rows."""
    return [dict(zip(lab_table["columns"], values)) for values in lab_table["data"]]


@pytest.fixture
def make_formula():
    """Factory for FormulaRecord instances."""

    def _make(
        formula: str,
        id: str = "f1",
        name: str | None = None,
        color: str = "#FF0000",
        **kwargs: Any,
    ) -> FormulaRecord:
        return FormulaRecord(
            id=id,
            name=name or f"Formula {id}",
            formula=formula,
            color=color,
            **kwargs,
        )

    return _make


@pytest.fixture
def cache() -> FormulaCache:
    """Fresh formula cache, isolated from the process-wide one."""
    return FormulaCache()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)
