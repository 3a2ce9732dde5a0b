"""Highlight aggregation for LabFormula.

Merges the formula matches landing on the same cell into a single
highlight record with a blended color.
"""

import math
from typing import Iterable, Sequence

from labformula.core.exceptions import InvalidColorError
from labformula.core.logging import get_logger
from labformula.formula.matcher import FormulaMatch
from labformula.schemas.formula import FormulaDetail, HighlightedCell, normalize_hex_color

logger = get_logger(__name__)


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """
    Convert ``#RRGGBB`` to an (r, g, b) tuple.

    Raises:
        InvalidColorError: If the color is not a 6-digit hex value
    """
    try:
        normalized = normalize_hex_color(color)
    except ValueError as e:
        raise InvalidColorError(color) from e
    return (
        int(normalized[1:3], 16),
        int(normalized[3:5], 16),
        int(normalized[5:7], 16),
    )


def rgb_to_hex(red: int, green: int, blue: int) -> str:
    """Convert channel values (clamped to 0-255) to ``#RRGGBB``."""
    channels = (max(0, min(255, int(c))) for c in (red, green, blue))
    return "#" + "".join(f"{c:02X}" for c in channels)


def blend_colors(colors: Sequence[str]) -> str:
    """
    Blend colors by averaging each RGB channel.

    Averages are rounded half up, so ``#FF0000`` and ``#0000FF`` give
    ``#800080``.

    Raises:
        InvalidColorError: If a color is malformed
        ValueError: If no colors are given
    """
    if not colors:
        raise ValueError("No colors to blend")

    rgb = [hex_to_rgb(color) for color in colors]
    averages = (math.floor(sum(channel) / len(rgb) + 0.5) for channel in zip(*rgb))
    return rgb_to_hex(*averages)


class HighlightAggregator:
    """
    Group matched formulas by (row, column) into HighlightedCell records.

    Cells keep the order in which they were first matched; contributing
    formulas keep their match order. How a cell with several formulas is
    drawn is left to the renderer, which gets the per-formula colors.
    """

    separator = ", "

    def aggregate(self, matches: Iterable[FormulaMatch]) -> list[HighlightedCell]:
        """
        Merge matched formulas per cell.

        Entries with ``matched=False`` are ignored. A formula contributes at
        most once to a cell.
        """
        groups: dict[tuple[str, str], dict[str, FormulaMatch]] = {}
        for match in matches:
            if not match.matched:
                continue
            per_cell = groups.setdefault((match.row, match.column), {})
            per_cell.setdefault(match.formula_id, match)

        cells = [
            self._build_cell(row, col, list(per_cell.values()))
            for (row, col), per_cell in groups.items()
        ]
        logger.debug(
            "Aggregated highlights",
            extra={
                "cells": len(cells),
                "multi_formula_cells": sum(1 for c in cells if c.formula_count > 1),
            },
        )
        return cells

    def _build_cell(self, row: str, col: str, matches: list[FormulaMatch]) -> HighlightedCell:
        colors = [m.color for m in matches]
        names = list(dict.fromkeys(m.formula_name for m in matches))
        return HighlightedCell(
            row=row,
            col=col,
            color=colors[0] if len(colors) == 1 else blend_colors(colors),
            message=self.separator.join(names),
            formula_ids=[m.formula_id for m in matches],
            formula_details=[
                FormulaDetail(
                    id=m.formula_id,
                    name=m.formula_name,
                    formula=m.formula_text,
                    color=m.color,
                    left_result=m.left_result,
                    right_result=m.right_result,
                )
                for m in matches
            ],
            colors=colors,
        )
