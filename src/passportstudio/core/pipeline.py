"""
Export operations.

Previews and exports share `render_photo` / `render_sheet`, so a preview always
shows the exact transform chain the export encodes.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple

from PIL import Image

from passportstudio.core.codec import DEFAULT_QUALITY, FORMAT_JPEG, EncodedImage, encode_image, normalize_format
from passportstudio.core.compositor import composite_sheet
from passportstudio.core.errors import ValidationError
from passportstudio.core.layout import DEFAULT_MARGIN_PX, DEFAULT_SPACING_PX, plan_sheet
from passportstudio.core.models import FIT_CONTAIN, FIT_COVER, Color, CropBox, SheetPlan, TransformSpec
from passportstudio.core.transform import apply_transforms

logger = logging.getLogger(__name__)

Size = Tuple[int, int]


def _require_size(size: Optional[Size], what: str) -> Size:
    if not size or len(size) != 2 or not size[0] or not size[1]:
        raise ValidationError("Passport and sheet dimensions are required.")
    w, h = int(size[0]), int(size[1])
    if w <= 0 or h <= 0:
        raise ValidationError(f"{what} dimensions must be positive.")
    return w, h


def render_photo(image: Image.Image, spec: TransformSpec) -> Image.Image:
    return apply_transforms(image, spec.clamped())


def render_sheet(
    image: Image.Image,
    spec: TransformSpec,
    cell_size: Optional[Size],
    sheet_size: Optional[Size],
    margin: int = DEFAULT_MARGIN_PX,
    spacing: int = DEFAULT_SPACING_PX,
) -> Tuple[Image.Image, SheetPlan]:
    """Transform image into one passport cell and tile it onto the sheet."""
    cell_w, cell_h = _require_size(cell_size, "Passport")
    sheet_w, sheet_h = _require_size(sheet_size, "Sheet")

    # Plan first: an infeasible layout fails before any pixel work.
    plan = plan_sheet(cell_w, cell_h, sheet_w, sheet_h, margin=margin, spacing=spacing)

    cell_spec = replace(spec, target_width_px=cell_w, target_height_px=cell_h, fit=FIT_CONTAIN)
    cell = render_photo(image, cell_spec)
    sheet = composite_sheet(cell, plan, background=cell_spec.background_color)
    return sheet, plan


def process_image(
    image: Image.Image,
    spec: TransformSpec,
    fmt: str = FORMAT_JPEG,
    quality: Optional[float] = DEFAULT_QUALITY,
) -> EncodedImage:
    """Single-photo export."""
    fmt = normalize_format(fmt)
    out = render_photo(image, spec)
    encoded = encode_image(out, fmt, quality)
    logger.info("Exported photo %dx%d as %s", encoded.width, encoded.height, encoded.format)
    return encoded


def print_sheet(
    image: Image.Image,
    spec: TransformSpec,
    cell_size: Optional[Size],
    sheet_size: Optional[Size],
    fmt: str = FORMAT_JPEG,
    quality: Optional[float] = DEFAULT_QUALITY,
    margin: int = DEFAULT_MARGIN_PX,
    spacing: int = DEFAULT_SPACING_PX,
) -> EncodedImage:
    """Tiled export: as many copies of the passport cell as fit on the sheet."""
    fmt = normalize_format(fmt)
    sheet, plan = render_sheet(image, spec, cell_size, sheet_size, margin=margin, spacing=spacing)
    encoded = encode_image(sheet, fmt, quality)
    logger.info(
        "Exported %dx%d sheet with %d photos (%dx%d) as %s",
        plan.sheet_width, plan.sheet_height, plan.count, plan.cols, plan.rows, encoded.format,
    )
    return encoded


def resize_passport(
    image: Image.Image,
    width_px: Optional[int],
    height_px: Optional[int],
    background_color: "str | Color" = "#FFFFFF",
    crop: Optional[CropBox] = None,
    fmt: str = FORMAT_JPEG,
    quality: Optional[float] = DEFAULT_QUALITY,
) -> EncodedImage:
    """
    Quick conversion to an exact passport size by filling the box ("cover" fit).

    Without `crop` the overflow is cut away around the center; with `crop` the
    given region is used instead.
    """
    if not width_px or not height_px:
        raise ValidationError("Width and height are required.")
    spec = TransformSpec(
        background_color=Color.parse(background_color),
        target_width_px=int(width_px),
        target_height_px=int(height_px),
        fit=FIT_COVER,
        crop=crop,
    )
    return process_image(image, spec, fmt=fmt, quality=quality)
