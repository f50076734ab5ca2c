from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from PIL import ImageColor

from passportstudio.core.errors import ValidationError

DPI = 300
MM_PER_INCH = 25.4

FIT_CONTAIN = "contain"
FIT_COVER = "cover"
FIT_MODES = (FIT_CONTAIN, FIT_COVER)

ADJUSTMENT_MIN = -100.0
ADJUSTMENT_MAX = 100.0


def mm_to_px(mm: float, dpi: int = DPI) -> int:
    return int(round(mm / MM_PER_INCH * dpi))


def clamp_adjustment(value: float) -> float:
    return max(ADJUSTMENT_MIN, min(ADJUSTMENT_MAX, float(value)))


@dataclass(frozen=True)
class Color:
    """Opaque sRGB color used for padding and flattening."""
    r: int
    g: int
    b: int

    @staticmethod
    def parse(value: "str | Color") -> "Color":
        """Parse '#RGB', '#RRGGBB', CSS names or 'rgb(...)' via Pillow's ImageColor."""
        if isinstance(value, Color):
            return value
        try:
            rgb = ImageColor.getrgb(str(value).strip())
        except ValueError as e:
            raise ValidationError(f"Unrecognized color: {value!r}") from e
        return Color(r=rgb[0], g=rgb[1], b=rgb[2])

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, 255)

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


@dataclass(frozen=True)
class CropBox:
    """
    Axis-aligned crop rectangle in source-image pixels.

    Coordinates are floats because the resolver works with fractional sizes;
    callers round when the box is applied to pixels.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class TransformSpec:
    """
    Everything the transform engine needs to turn a source photo into an output photo.

    rotation_degrees:
        Clockwise rotation. Any value is accepted; multiples of 90 are lossless.
    flip_horizontal / flip_vertical:
        Mirror across the vertical / horizontal midline.
    brightness, contrast, saturation:
        Adjustments in [-100, 100]; 0 means unchanged.
    background_color:
        When set, padding uses it and the result is flattened onto it (opaque output).
    target_width_px / target_height_px:
        Output box. Ignored unless both are set.
    fit:
        "contain" pads to the box, "cover" fills the box and crops the overflow.
    crop:
        Optional crop region applied after rotate/flip, before resizing.
    """
    rotation_degrees: float = 0.0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    background_color: Optional[Color] = None
    target_width_px: Optional[int] = None
    target_height_px: Optional[int] = None
    fit: str = FIT_CONTAIN
    crop: Optional[CropBox] = None

    @property
    def target_size(self) -> Optional[Tuple[int, int]]:
        if self.target_width_px and self.target_height_px:
            return (int(self.target_width_px), int(self.target_height_px))
        return None

    @property
    def is_identity(self) -> bool:
        return (
            self.rotation_degrees % 360 == 0
            and not self.flip_horizontal
            and not self.flip_vertical
            and self.brightness == 0
            and self.contrast == 0
            and self.saturation == 0
            and self.background_color is None
            and self.target_size is None
            and self.crop is None
        )

    def clamped(self) -> "TransformSpec":
        """Return a copy with adjustments forced into range and the fit mode checked."""
        if self.fit not in FIT_MODES:
            raise ValidationError(f"Unknown fit mode {self.fit!r}; expected one of {', '.join(FIT_MODES)}.")
        if not math.isfinite(float(self.rotation_degrees)):
            raise ValidationError("Rotation must be a finite number of degrees.")
        for name in ("target_width_px", "target_height_px"):
            value = getattr(self, name)
            if value is not None and int(value) < 0:
                raise ValidationError(f"{name} must not be negative.")
        return TransformSpec(
            rotation_degrees=float(self.rotation_degrees),
            flip_horizontal=bool(self.flip_horizontal),
            flip_vertical=bool(self.flip_vertical),
            brightness=clamp_adjustment(self.brightness),
            contrast=clamp_adjustment(self.contrast),
            saturation=clamp_adjustment(self.saturation),
            background_color=self.background_color,
            target_width_px=self.target_width_px,
            target_height_px=self.target_height_px,
            fit=self.fit,
            crop=self.crop,
        )

    @staticmethod
    def from_form(fields: Mapping[str, str]) -> "TransformSpec":
        """
        Build a spec from raw form fields (all strings).

        Unparsable numbers fall back to their defaults, booleans are true only for
        the literal "true", and adjustments are clamped.
        """
        bg = (fields.get("backgroundColor") or "").strip()
        spec = TransformSpec(
            rotation_degrees=parse_number(fields.get("rotation"), 0.0),
            flip_horizontal=parse_bool(fields.get("flipHorizontal")),
            flip_vertical=parse_bool(fields.get("flipVertical")),
            brightness=parse_number(fields.get("brightness"), 0.0),
            contrast=parse_number(fields.get("contrast"), 0.0),
            saturation=parse_number(fields.get("saturation"), 0.0),
            background_color=Color.parse(bg) if bg else None,
            target_width_px=parse_int(fields.get("width")),
            target_height_px=parse_int(fields.get("height")),
            fit=(fields.get("fit") or FIT_CONTAIN).strip().lower(),
        )
        return spec.clamped()


def parse_number(value: Optional[str], default: float) -> float:
    if value is None or str(value).strip() == "":
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(parsed):
        return default
    return parsed


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_bool(value: Optional[str]) -> bool:
    return str(value).strip().lower() == "true" if value is not None else False


@dataclass(frozen=True)
class PhotoSize:
    """
    Catalog entry for a passport photo size or a print sheet.

    Pixel dimensions are at 300 DPI. The "custom" entry has zero pixel size and
    means "keep the source dimensions".
    """
    id: str
    label: str
    width_mm: float
    height_mm: float
    width_px: int
    height_px: int

    @staticmethod
    def from_mm(id: str, label: str, width_mm: float, height_mm: float) -> "PhotoSize":
        return PhotoSize(id, label, width_mm, height_mm, mm_to_px(width_mm), mm_to_px(height_mm))

    @staticmethod
    def from_inches(id: str, label: str, width_in: float, height_in: float) -> "PhotoSize":
        return PhotoSize(
            id,
            label,
            round(width_in * MM_PER_INCH),
            round(height_in * MM_PER_INCH),
            int(round(width_in * DPI)),
            int(round(height_in * DPI)),
        )

    @property
    def is_custom(self) -> bool:
        return self.width_px <= 0 or self.height_px <= 0

    @property
    def size_px(self) -> Tuple[int, int]:
        return (self.width_px, self.height_px)

    @property
    def aspect_ratio(self) -> float:
        if self.is_custom:
            raise ValidationError(f"Size {self.id!r} has no fixed aspect ratio.")
        return self.width_px / self.height_px


@dataclass(frozen=True)
class Placement:
    """Top-left corner of one tiled cell on the sheet canvas."""
    x: int
    y: int


@dataclass(frozen=True)
class SheetPlan:
    """
    Grid of cell placements on a sheet, row-major.

    Built only by the layout planner; a plan always has at least one row and one column.
    """
    placements: Tuple[Placement, ...]
    cols: int
    rows: int
    cell_width: int
    cell_height: int
    sheet_width: int
    sheet_height: int

    @property
    def count(self) -> int:
        return len(self.placements)

    @property
    def sheet_size(self) -> Tuple[int, int]:
        return (self.sheet_width, self.sheet_height)

    @property
    def cell_size(self) -> Tuple[int, int]:
        return (self.cell_width, self.cell_height)

    def rects(self) -> list[Tuple[int, int, int, int]]:
        """(left, top, right, bottom) for every placement, right/bottom exclusive."""
        return [
            (p.x, p.y, p.x + self.cell_width, p.y + self.cell_height)
            for p in self.placements
        ]
