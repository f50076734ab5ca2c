"""
Geometry/color transform engine.

`apply_transforms` is the only supported way to run the chain; the individual
steps are exposed for testing but callers must not reorder them:

  rotate -> flip (vertical, then horizontal) -> crop -> resize (contain/cover)
  -> brightness/saturation -> contrast -> background flatten
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from passportstudio.core.codec import normalize_mode
from passportstudio.core.errors import ValidationError
from passportstudio.core.models import FIT_COVER, Color, CropBox, TransformSpec

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)

# Clockwise quarter turns -> Pillow transpose ops (Pillow's ROTATE_* are counter-clockwise).
_QUARTER_TURNS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def _pil_to_np(img: Image.Image) -> np.ndarray:
    """PIL RGB/RGBA -> HxWxC uint8 array."""
    return np.array(normalize_mode(img))


def _np_to_pil(arr: np.ndarray) -> Image.Image:
    """HxWx3 / HxWx4 uint8 array -> PIL RGB / RGBA."""
    return Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8))


def _resize_np(arr: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize an image array to (width, height)."""
    new_w, new_h = size
    if new_w <= 0 or new_h <= 0:
        raise ValueError("Target size must be > 0")
    h, w = arr.shape[:2]
    if (w, h) == (new_w, new_h):
        return arr.copy()
    # Area averaging when shrinking, Lanczos when enlarging.
    interpolation = cv2.INTER_AREA if new_w < w and new_h < h else cv2.INTER_LANCZOS4
    return cv2.resize(arr, (new_w, new_h), interpolation=interpolation)


def _crop_with_padding(
    arr: np.ndarray,
    left: int,
    top: int,
    width: int,
    height: int,
    pad_color: Sequence[int],
) -> np.ndarray:
    """
    Cut a width x height window whose top-left corner is (left, top) out of arr.
    Parts of the window outside the source are filled with pad_color.
    """
    h, w = arr.shape[:2]
    channels = arr.shape[2]
    if len(pad_color) != channels:
        raise ValueError(f"pad_color needs {channels} components, got {len(pad_color)}")

    out = np.empty((height, width, channels), dtype=np.uint8)
    out[:, :] = pad_color

    src_left = max(0, left)
    src_top = max(0, top)
    src_right = min(w, left + width)
    src_bottom = min(h, top + height)

    if src_left >= src_right or src_top >= src_bottom:
        return out

    dst_left = src_left - left
    dst_top = src_top - top
    dst_right = dst_left + (src_right - src_left)
    dst_bottom = dst_top + (src_bottom - src_top)

    out[dst_top:dst_bottom, dst_left:dst_right] = arr[src_top:src_bottom, src_left:src_right]
    return out


def _scaled_size(w: int, h: int, scale: float) -> Tuple[int, int]:
    return max(1, int(round(w * scale))), max(1, int(round(h * scale)))


# ---------- Steps ----------

def rotate(img: Image.Image, degrees: float) -> Image.Image:
    """
    Rotate clockwise by `degrees`, growing the canvas so no corner is cut off.
    Uncovered corners of non-right-angle rotations are transparent.
    """
    if not math.isfinite(float(degrees)):
        raise ValidationError("Rotation must be a finite number of degrees.")
    d = float(degrees) % 360.0
    if d == 0:
        return img
    if d in _QUARTER_TURNS:
        return img.transpose(_QUARTER_TURNS[int(d)])
    rgba = img.convert("RGBA")
    return rgba.rotate(-d, resample=Image.Resampling.BICUBIC, expand=True, fillcolor=TRANSPARENT)


def flip(img: Image.Image, horizontal: bool = False, vertical: bool = False) -> Image.Image:
    out = img
    if vertical:
        out = out.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    if horizontal:
        out = out.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    return out


def crop_region(img: Image.Image, box: CropBox) -> Image.Image:
    """Crop to box (rounded to whole pixels and clamped to the image)."""
    left = max(0, min(img.width - 1, int(round(box.x))))
    top = max(0, min(img.height - 1, int(round(box.y))))
    right = max(left + 1, min(img.width, int(round(box.right))))
    bottom = max(top + 1, min(img.height, int(round(box.bottom))))
    if (left, top, right, bottom) == (0, 0, img.width, img.height):
        return img
    return img.crop((left, top, right, bottom))


def fit_contain(img: Image.Image, width: int, height: int, background: Optional[Color] = None) -> Image.Image:
    """
    Scale preserving aspect ratio so the whole image fits in width x height and
    pad the rest, centered, with background (or transparency).
    """
    if width <= 0 or height <= 0:
        raise ValidationError("Resize target must be positive.")
    arr = _pil_to_np(img)
    h, w = arr.shape[:2]
    scale = min(width / w, height / h)
    new_w, new_h = _scaled_size(w, h, scale)
    new_w, new_h = min(new_w, width), min(new_h, height)
    resized = _resize_np(arr, (new_w, new_h))

    if (new_w, new_h) == (width, height):
        return _np_to_pil(resized)

    if background is not None:
        pad = background.rgba if resized.shape[2] == 4 else background.rgb
    else:
        if resized.shape[2] == 3:
            resized = np.dstack([resized, np.full((new_h, new_w), 255, dtype=np.uint8)])
        pad = TRANSPARENT

    left = (width - new_w) // 2
    top = (height - new_h) // 2
    return _np_to_pil(_crop_with_padding(resized, -left, -top, width, height, pad))


def fit_cover(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale preserving aspect ratio to fill width x height, cropping the overflow centered."""
    if width <= 0 or height <= 0:
        raise ValidationError("Resize target must be positive.")
    arr = _pil_to_np(img)
    h, w = arr.shape[:2]
    scale = max(width / w, height / h)
    new_w, new_h = _scaled_size(w, h, scale)
    new_w, new_h = max(new_w, width), max(new_h, height)
    resized = _resize_np(arr, (new_w, new_h))

    left = (new_w - width) // 2
    top = (new_h - height) // 2
    pad = TRANSPARENT if resized.shape[2] == 4 else (0, 0, 0)
    return _np_to_pil(_crop_with_padding(resized, left, top, width, height, pad))


def modulate(img: Image.Image, brightness: float = 0.0, saturation: float = 0.0) -> Image.Image:
    """
    Perceptual brightness/saturation in CIE Lab: lightness L is multiplied by
    (1 + brightness/100) and chroma by (1 + saturation/100). Scaling a and b by
    the same factor scales LCh chroma and keeps the hue. Alpha is left untouched.
    """
    if brightness == 0 and saturation == 0:
        return img
    arr = _pil_to_np(img)
    rgb = arr[:, :, :3].astype(np.float32) / 255.0
    lab = cv2.cvtColor(rgb, cv2.COLOR_RGB2Lab)
    lab[:, :, 0] = np.clip(lab[:, :, 0] * (1.0 + brightness / 100.0), 0.0, 100.0)
    lab[:, :, 1:] *= 1.0 + saturation / 100.0
    out_rgb = cv2.cvtColor(lab, cv2.COLOR_Lab2RGB)

    out = arr.copy()
    out[:, :, :3] = np.clip(np.rint(out_rgb * 255.0), 0, 255).astype(np.uint8)
    return _np_to_pil(out)


def adjust_contrast(img: Image.Image, contrast: float = 0.0) -> Image.Image:
    """
    Per-channel affine contrast: out = in * m + 128 * (1 - m), m = 1 + contrast/100.
    Mid-gray 128 is a fixed point. Alpha is left untouched.
    """
    if contrast == 0:
        return img
    m = 1.0 + contrast / 100.0
    arr = _pil_to_np(img)
    color = arr[:, :, :3].astype(np.float64)
    # Written around the pivot so 128 maps to exactly 128.
    adjusted = (color - 128.0) * m + 128.0

    out = arr.copy()
    out[:, :, :3] = np.clip(np.rint(adjusted), 0, 255).astype(np.uint8)
    return _np_to_pil(out)


def flatten(img: Image.Image, background: Color) -> Image.Image:
    """Composite img over an opaque fill of background; result is RGB."""
    if img.mode == "RGB":
        return img
    base = Image.new("RGBA", img.size, background.rgba)
    return Image.alpha_composite(base, img.convert("RGBA")).convert("RGB")


# ---------- Pipeline ----------

def apply_transforms(image: Image.Image, spec: TransformSpec) -> Image.Image:
    """
    Run the full transform chain on image and return a new image.

    The input is never modified. A spec with no effective step returns a
    pixel-identical copy.
    """
    out = normalize_mode(image)
    if spec.is_identity:
        return out.copy()
    w0, h0 = out.size

    out = rotate(out, spec.rotation_degrees)
    out = flip(out, horizontal=spec.flip_horizontal, vertical=spec.flip_vertical)

    if spec.crop is not None:
        out = crop_region(out, spec.crop)

    target = spec.target_size
    if target is not None:
        if spec.fit == FIT_COVER:
            out = fit_cover(out, *target)
        else:
            out = fit_contain(out, *target, background=spec.background_color)

    out = modulate(out, brightness=spec.brightness, saturation=spec.saturation)
    out = adjust_contrast(out, contrast=spec.contrast)

    if spec.background_color is not None:
        out = flatten(out, spec.background_color)

    logger.debug(
        "Transformed %dx%d -> %dx%d %s (rot=%s flipH=%s flipV=%s)",
        w0, h0, out.width, out.height, out.mode,
        spec.rotation_degrees, spec.flip_horizontal, spec.flip_vertical,
    )
    return out.copy() if out is image else out
