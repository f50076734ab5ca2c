from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from passportstudio.core.errors import ValidationError
from passportstudio.core.models import Color, SheetPlan
from passportstudio.core.transform import TRANSPARENT, flatten

logger = logging.getLogger(__name__)


def composite_sheet(cell: Image.Image, plan: SheetPlan, background: Optional[Color] = None) -> Image.Image:
    """
    Draw `cell` at every placement of `plan` on a sheet-sized canvas.

    Each paste overwrites the canvas (pixels and alpha); placements never overlap.
    With a background the canvas starts filled and the result is flattened to RGB,
    otherwise it starts transparent and stays RGBA.
    """
    if cell.size != plan.cell_size:
        raise ValidationError(
            f"Cell is {cell.width}x{cell.height} but the plan expects "
            f"{plan.cell_width}x{plan.cell_height}."
        )

    fill = background.rgba if background is not None else TRANSPARENT
    canvas = Image.new("RGBA", plan.sheet_size, fill)
    tile = cell.convert("RGBA")
    for p in plan.placements:
        canvas.paste(tile, (p.x, p.y))

    logger.debug("Composited %d cells onto %dx%d sheet", plan.count, plan.sheet_width, plan.sheet_height)
    if background is not None:
        return flatten(canvas, background)
    return canvas
