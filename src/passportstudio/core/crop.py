from __future__ import annotations

from passportstudio.core.errors import ValidationError
from passportstudio.core.models import CropBox

# Fraction of the limiting source dimension the default crop box spans,
# leaving a visible margin around the subject.
CROP_FILL_RATIO = 0.7


def compute_crop_box(source_width: float, source_height: float, target_aspect: float) -> CropBox:
    """
    Largest box with `target_aspect` (width / height) at 70% of the limiting
    source dimension, centered in the source.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValidationError("Source image size must be positive.")
    if target_aspect <= 0:
        raise ValidationError("Target aspect ratio must be positive.")

    if source_width / source_height > target_aspect:
        height = min(source_height * CROP_FILL_RATIO, source_height)
        width = height * target_aspect
    else:
        width = min(source_width * CROP_FILL_RATIO, source_width)
        height = width / target_aspect

    if width > source_width:
        width = source_width
        height = width / target_aspect
    if height > source_height:
        height = source_height
        width = height * target_aspect

    return CropBox(
        x=(source_width - width) / 2.0,
        y=(source_height - height) / 2.0,
        width=width,
        height=height,
    )


def move_crop_box(box: CropBox, source_width: float, source_height: float, x: float, y: float) -> CropBox:
    """Return box moved to (x, y), clamped so it stays inside the source."""
    max_x = max(0.0, source_width - box.width)
    max_y = max(0.0, source_height - box.height)
    return CropBox(
        x=max(0.0, min(max_x, float(x))),
        y=max(0.0, min(max_y, float(y))),
        width=box.width,
        height=box.height,
    )
