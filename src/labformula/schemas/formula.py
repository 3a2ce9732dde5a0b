"""Formula schemas for evaluation input and highlight output."""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")


def normalize_hex_color(value: str) -> str:
    """Return ``value`` as an upper-case ``#RRGGBB`` string or raise ValueError."""
    match = HEX_COLOR_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid color {value!r}, expected #RRGGBB")
    return f"#{match.group(1).upper()}"


class FormulaType(str, Enum):
    """Kind of check a formula performs."""

    CELL_VALIDATION = "CELL_VALIDATION"
    RELATIONAL = "RELATIONAL"


class FormulaScope(str, Enum):
    """Where a formula applies."""

    TABLE = "table"
    WORKSPACE = "workspace"


class FormulaRecord(BaseModel):
    """Formula as fetched from persistence for one evaluation pass."""

    id: str = Field(..., min_length=1, description="Formula ID")
    name: str = Field(..., min_length=1, max_length=255, description="Formula name")
    description: Optional[str] = Field(None, description="Formula description")
    formula: str = Field(..., description="Raw formula text, e.g. 'A + B > C'")
    color: str = Field(default="#FF0000", description="Highlight color (#RRGGBB)")
    type: FormulaType = Field(default=FormulaType.CELL_VALIDATION, description="Formula type")
    active: bool = Field(default=True, description="Whether the formula is evaluated")
    scope: Optional[FormulaScope] = Field(None, description="Table or workspace scope")
    table_id: Optional[str] = Field(None, description="Table the formula belongs to")

    model_config = {"frozen": True, "from_attributes": True}

    @field_validator("color", mode="before")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Normalize the color to upper-case #RRGGBB."""
        return normalize_hex_color(v)


class FormulaDetail(BaseModel):
    """One contributing formula of a highlighted cell."""

    id: str
    name: str
    formula: str
    color: str
    left_result: Optional[float] = None
    right_result: Optional[float] = None


class HighlightedCell(BaseModel):
    """A (row, column) cell flagged by one or more matching formulas."""

    row: str = Field(..., description="Row ID")
    col: str = Field(..., description="Column name")
    color: str = Field(..., description="Blended color of all contributing formulas")
    message: str = Field(..., description="Contributing formula names, comma joined")
    formula_ids: list[str] = Field(default_factory=list)
    formula_details: list[FormulaDetail] = Field(default_factory=list)
    colors: list[str] = Field(
        default_factory=list,
        description="Contributing formula colors in match order",
    )

    @property
    def formula_count(self) -> int:
        return len(self.formula_ids)


class FormulaWarning(BaseModel):
    """A per-formula problem reported back to the caller."""

    formula_id: str
    formula_name: str
    code: str
    message: str


class EvaluationReport(BaseModel):
    """Result of one evaluation pass."""

    cells: list[HighlightedCell] = Field(default_factory=list)
    warnings: list[FormulaWarning] = Field(default_factory=list)
    evaluated_formulas: int = 0
    skipped_formulas: int = 0


class FormulaValidation(BaseModel):
    """Outcome of validating a formula against a table's variables."""

    is_valid: bool
    error: Optional[str] = None
    missing_variables: list[str] = Field(default_factory=list)
    left_variables: list[str] = Field(default_factory=list)
    right_variables: list[str] = Field(default_factory=list)
    target_variable: Optional[str] = None
