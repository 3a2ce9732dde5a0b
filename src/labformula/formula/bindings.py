"""Variable binding for one sampled column.

Each non-variable column of a lab table is one sampling instant across
all variables. A binding maps every variable name to its numeric value
in that column.
"""

import math
import re
from typing import Any, Iterable, Optional

from labformula.formula.parser import is_variable_name
from labformula.schemas.table import DataRow

_NON_NUMERIC_RE = re.compile(r"[^\d.\-]")

VariableBinding = dict[str, float]


def clean_value(value: Any) -> Optional[float]:
    """
    Parse a cell value into a finite float.

    Strings are stripped of everything but digits, ``.`` and ``-`` so that
    values such as ``"<0.001"`` or ``"374 µS/cm"`` still bind.

    Returns:
        The numeric value, or None when the cell holds no usable number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    if isinstance(value, str):
        cleaned = _NON_NUMERIC_RE.sub("", value).strip()
        if cleaned in ("", "-", ".", "-."):
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None

    return None


def clean_variable_name(name: Any) -> str:
    """Strip whitespace and trailing commas from a variable name."""
    if name is None:
        return ""
    return str(name).strip().rstrip(",").strip()


def build_bindings(
    rows: Iterable[DataRow],
    column: str,
    variable_column: str = "Variable",
) -> VariableBinding:
    """
    Build the variable-name to value map for one column.

    Rows without a variable name (or whose name is a bare number) or without
    a numeric value in ``column`` contribute no entry. When a variable name
    repeats, the later row wins.
    """
    bindings: VariableBinding = {}
    for row in rows:
        name = clean_variable_name(row.get(variable_column))
        if not is_variable_name(name):
            continue
        value = clean_value(row.get(column))
        if value is not None:
            bindings[name] = value
    return bindings


def get_cell_value(
    rows: Iterable[DataRow],
    variable_name: str,
    column: str,
    variable_column: str = "Variable",
) -> Optional[float]:
    """Return the numeric value of ``variable_name`` in ``column``, if any."""
    target = clean_variable_name(variable_name)
    for row in rows:
        if clean_variable_name(row.get(variable_column)) == target:
            return clean_value(row.get(column))
    return None
