"""Table schemas for the lab data grid consumed by the engine."""

from typing import Any, Union

from pydantic import BaseModel, Field

from labformula.core.exceptions import TableStructureError

CellValue = Union[str, int, float, None]

# One variable's time series: {"id": ..., "Variable": ..., "<column>": value, ...}
DataRow = dict[str, Any]


class DataTable(BaseModel):
    """Rectangular grid with one designated variable column."""

    columns: list[str] = Field(..., description="Column names in display order")
    data: list[list[CellValue]] = Field(
        default_factory=list, description="Rows of cell values aligned with columns"
    )

    def to_rows(
        self,
        row_id_column: str = "id",
        row_id_prefix: str = "row-",
    ) -> list[DataRow]:
        """
        Convert the grid into keyed rows.

        Rows shorter than the column list are padded with None. When the
        table has no ``row_id_column`` each row gets a synthesized id of
        ``{row_id_prefix}{1-based index}``.

        Raises:
            TableStructureError: If a row has more cells than there are columns
        """
        width = len(self.columns)
        has_id = row_id_column in self.columns
        rows: list[DataRow] = []

        for index, values in enumerate(self.data):
            if len(values) > width:
                raise TableStructureError(
                    f"Row {index} has {len(values)} cells but the table has {width} columns",
                    row_index=index,
                )
            padded = list(values) + [None] * (width - len(values))
            row: DataRow = dict(zip(self.columns, padded))
            if not has_id or row.get(row_id_column) in (None, ""):
                row[row_id_column] = f"{row_id_prefix}{index + 1}"
            else:
                row[row_id_column] = str(row[row_id_column])
            rows.append(row)

        return rows
