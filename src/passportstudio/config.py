from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from passportstudio.core.background import DEFAULT_MODEL
from passportstudio.core.codec import DEFAULT_QUALITY, MAX_UPLOAD_BYTES
from passportstudio.core.errors import ValidationError
from passportstudio.core.layout import DEFAULT_MARGIN_PX, DEFAULT_SPACING_PX

ENV_PREFIX = "PASSPORTSTUDIO_"


@dataclass(frozen=True)
class Settings:
    """
    Process-wide defaults. Read once at startup; never mutated.

    max_upload_bytes:
        Uploads above this size are rejected before decoding (10 MiB).
    default_quality:
        Encoder quality used when a request gives none (1-100).
    sheet_margin_px / sheet_spacing_px:
        Print-sheet margin from the paper edge and gap between photos.
    preview_debounce_s:
        Quiet period after the last settings change before a preview renders.
    rembg_model:
        Model name passed to rembg.new_session().
    """
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    default_quality: int = DEFAULT_QUALITY
    sheet_margin_px: int = DEFAULT_MARGIN_PX
    sheet_spacing_px: int = DEFAULT_SPACING_PX
    preview_debounce_s: float = 0.3
    rembg_model: str = DEFAULT_MODEL
    log_level: str = "INFO"

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from PASSPORTSTUDIO_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        d = Settings()

        def get(name: str, cast, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw.strip())
            except ValueError as e:
                raise ValidationError(f"Invalid value for {ENV_PREFIX + name}: {raw!r}") from e

        settings = Settings(
            max_upload_bytes=get("MAX_UPLOAD_BYTES", int, d.max_upload_bytes),
            default_quality=get("DEFAULT_QUALITY", int, d.default_quality),
            sheet_margin_px=get("SHEET_MARGIN_PX", int, d.sheet_margin_px),
            sheet_spacing_px=get("SHEET_SPACING_PX", int, d.sheet_spacing_px),
            preview_debounce_s=get("PREVIEW_DEBOUNCE_S", float, d.preview_debounce_s),
            rembg_model=get("REMBG_MODEL", str, d.rembg_model),
            log_level=get("LOG_LEVEL", str.upper, d.log_level),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.max_upload_bytes <= 0:
            raise ValidationError("max_upload_bytes must be > 0")
        if not (1 <= self.default_quality <= 100):
            raise ValidationError("default_quality must be between 1 and 100")
        if self.sheet_margin_px < 0 or self.sheet_spacing_px < 0:
            raise ValidationError("sheet margin and spacing must not be negative")
        if self.preview_debounce_s < 0:
            raise ValidationError("preview_debounce_s must not be negative")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValidationError(f"Unknown log level {self.log_level!r}")
