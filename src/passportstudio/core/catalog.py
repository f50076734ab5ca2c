from __future__ import annotations

from typing import Iterable, Tuple

from passportstudio.core.errors import ValidationError
from passportstudio.core.models import Color, PhotoSize

# Passport/ID photo sizes. Inch-based formats are defined in inches so that
# 2x2" lands on exactly 600x600 px.
PASSPORT_SIZES: Tuple[PhotoSize, ...] = (
    PhotoSize.from_inches("us-standard", '2x2" (USA Passport)', 2, 2),
    PhotoSize.from_inches("india-standard", '2x2" (India Passport/Visa)', 2, 2),
    PhotoSize.from_mm("china-standard", "33x48mm (China Passport)", 33, 48),
    PhotoSize.from_mm("eu-standard", "35x45mm (EU Passport)", 35, 45),
    PhotoSize.from_mm("uk-standard", "35x45mm (UK Passport)", 35, 45),
    PhotoSize.from_mm("germany-standard", "35x45mm (Germany)", 35, 45),
    PhotoSize.from_mm("france-standard", "35x45mm (France)", 35, 45),
    PhotoSize.from_mm("spain-standard", "26x32mm (Spain DNI)", 26, 32),
    PhotoSize.from_mm("italy-standard", "35x45mm (Italy)", 35, 45),
    PhotoSize.from_mm("japan-standard", "35x45mm (Japan Passport)", 35, 45),
    PhotoSize.from_mm("korea-standard", "35x45mm (South Korea)", 35, 45),
    PhotoSize.from_mm("brazil-standard", "5x7cm (Brazil)", 50, 70),
    PhotoSize.from_mm("australia-standard", "35x45mm (Australia)", 35, 45),
    PhotoSize.from_mm("canada-standard", "50x70mm (Canada)", 50, 70),
    PhotoSize.from_mm("russia-standard", "35x45mm (Russia)", 35, 45),
    PhotoSize.from_mm("mexico-standard", "25x35mm (Mexico)", 25, 35),
    PhotoSize("custom", "Custom Size", 0, 0, 0, 0),
)

PRINT_SHEET_SIZES: Tuple[PhotoSize, ...] = (
    PhotoSize.from_inches("3x4", '3x4"', 3, 4),
    PhotoSize.from_inches("4x4", '4x4"', 4, 4),
    PhotoSize.from_inches("4x6", '4x6"', 4, 6),
    PhotoSize.from_inches("5x6", '5x6"', 5, 6),
    PhotoSize.from_inches("5x7", '5x7"', 5, 7),
    PhotoSize.from_mm("a4", "A4", 210, 297),
)

BACKGROUND_COLORS: Tuple[Tuple[str, str, Color], ...] = (
    ("white", "White", Color.parse("#FFFFFF")),
    ("light-gray", "Light Gray", Color.parse("#F5F5F5")),
    ("light-blue", "Light Blue", Color.parse("#E3F2FD")),
    ("blue", "Blue", Color.parse("#2196F3")),
    ("red", "Red", Color.parse("#F44336")),
    ("gray", "Gray", Color.parse("#9E9E9E")),
    ("beige", "Beige", Color.parse("#F5F5DC")),
    ("light-red", "Light Red", Color.parse("#FFEBEE")),
)

DEFAULT_PASSPORT_SIZE_ID = "india-standard"
DEFAULT_BACKGROUND = Color.parse("#FFFFFF")


def _find(entries: Iterable[PhotoSize], size_id: str, kind: str) -> PhotoSize:
    for entry in entries:
        if entry.id == size_id:
            return entry
    raise ValidationError(f"Unknown {kind} {size_id!r}.")


def passport_size(size_id: str) -> PhotoSize:
    return _find(PASSPORT_SIZES, size_id, "passport size")


def print_sheet_size(size_id: str) -> PhotoSize:
    return _find(PRINT_SHEET_SIZES, size_id, "print sheet")


def default_passport_size() -> PhotoSize:
    return passport_size(DEFAULT_PASSPORT_SIZE_ID)


def background_preset(preset_id: str) -> Color:
    for pid, _label, color in BACKGROUND_COLORS:
        if pid == preset_id:
            return color
    raise ValidationError(f"Unknown background preset {preset_id!r}.")
