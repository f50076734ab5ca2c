from __future__ import annotations

import logging

from passportstudio.core.errors import InfeasibleLayoutError, ValidationError
from passportstudio.core.models import Placement, SheetPlan

logger = logging.getLogger(__name__)

DEFAULT_MARGIN_PX = 20
DEFAULT_SPACING_PX = 15


def plan_sheet(
    cell_width: int,
    cell_height: int,
    sheet_width: int,
    sheet_height: int,
    margin: int = DEFAULT_MARGIN_PX,
    spacing: int = DEFAULT_SPACING_PX,
) -> SheetPlan:
    """
    Lay out as many cells as fit on the sheet in a centered, row-major grid.

    Cells keep `margin` px from the sheet edges and `spacing` px between each
    other. Raises InfeasibleLayoutError if not even one cell fits.
    """
    cell_width, cell_height = int(cell_width), int(cell_height)
    sheet_width, sheet_height = int(sheet_width), int(sheet_height)
    margin, spacing = int(margin), int(spacing)

    if cell_width <= 0 or cell_height <= 0:
        raise ValidationError("Passport photo dimensions must be positive.")
    if sheet_width <= 0 or sheet_height <= 0:
        raise ValidationError("Sheet dimensions must be positive.")
    if margin < 0 or spacing < 0:
        raise ValidationError("Margin and spacing must not be negative.")

    cols = (sheet_width - 2 * margin + spacing) // (cell_width + spacing)
    rows = (sheet_height - 2 * margin + spacing) // (cell_height + spacing)
    if cols < 1 or rows < 1:
        raise InfeasibleLayoutError()

    used_width = cols * cell_width + (cols - 1) * spacing
    used_height = rows * cell_height + (rows - 1) * spacing
    start_x = (sheet_width - used_width) // 2
    start_y = (sheet_height - used_height) // 2

    placements = tuple(
        Placement(x=start_x + c * (cell_width + spacing), y=start_y + r * (cell_height + spacing))
        for r in range(rows)
        for c in range(cols)
    )
    logger.debug(
        "Planned %dx%d grid of %dx%d cells on %dx%d sheet",
        cols, rows, cell_width, cell_height, sheet_width, sheet_height,
    )
    return SheetPlan(
        placements=placements,
        cols=cols,
        rows=rows,
        cell_width=cell_width,
        cell_height=cell_height,
        sheet_width=sheet_width,
        sheet_height=sheet_height,
    )
