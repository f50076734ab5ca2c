from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from passportstudio.core.errors import (
    DecodeError,
    PayloadTooLargeError,
    UnsupportedFormatError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png")

FORMAT_JPEG = "jpeg"
FORMAT_PNG = "png"
CONTENT_TYPES = {FORMAT_JPEG: "image/jpeg", FORMAT_PNG: "image/png"}

DEFAULT_QUALITY = 90
_JPEG_MATTE = (255, 255, 255)


@dataclass(frozen=True)
class UploadedImage:
    """A decoded upload plus the metadata reported back to the client."""
    image: Image.Image
    width: int
    height: int
    mime_type: str
    size_bytes: int


@dataclass(frozen=True)
class EncodedImage:
    """Final encoded output of an export operation."""
    data: bytes
    format: str
    width: int
    height: int

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES[self.format]


def normalize_format(fmt: str) -> str:
    value = (fmt or "").strip().lower()
    if value not in CONTENT_TYPES:
        raise UnsupportedFormatError(f"Unsupported output format {fmt!r}; use 'jpeg' or 'png'.")
    return value


def clamp_quality(quality: float | int | None) -> int:
    if quality is None:
        return DEFAULT_QUALITY
    return int(min(100, max(1, round(float(quality)))))


def normalize_mode(img: Image.Image) -> Image.Image:
    """Return img in RGB or RGBA, keeping transparency when the source has any."""
    if img.mode in ("RGB", "RGBA"):
        return img
    has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def decode_image(data: bytes) -> Image.Image:
    """Decode raw bytes, apply EXIF orientation and return an RGB/RGBA image."""
    if not data:
        raise DecodeError("The uploaded file is empty.")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise DecodeError() from e
    img = ImageOps.exif_transpose(img)
    return normalize_mode(img)


def intake_upload(data: bytes, mime_type: str, max_bytes: int = MAX_UPLOAD_BYTES) -> UploadedImage:
    """
    Validate an upload's declared type and size, then decode it.

    Type and size are checked before any decoding happens.
    """
    mime = (mime_type or "").strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise UnsupportedFormatError()
    if not data:
        raise ValidationError("No image file provided.")
    if len(data) > max_bytes:
        raise PayloadTooLargeError(
            f"Please select an image smaller than {max_bytes // (1024 * 1024)}MB."
        )

    img = decode_image(data)
    logger.info("Accepted upload: %dx%d %s, %d bytes", img.width, img.height, mime, len(data))
    return UploadedImage(
        image=img,
        width=img.width,
        height=img.height,
        mime_type=mime,
        size_bytes=len(data),
    )


def _matte(img: Image.Image, rgb=_JPEG_MATTE) -> Image.Image:
    base = Image.new("RGBA", img.size, rgb + (255,))
    return Image.alpha_composite(base, img.convert("RGBA")).convert("RGB")


def encode_image(img: Image.Image, fmt: str = FORMAT_JPEG, quality: float | int | None = DEFAULT_QUALITY) -> EncodedImage:
    """
    Encode to JPEG or PNG.

    JPEG output is always opaque: transparent pixels are matted onto white.
    PNG output keeps the alpha channel when the image has one.
    """
    fmt = normalize_format(fmt)
    q = clamp_quality(quality)
    buf = io.BytesIO()

    if fmt == FORMAT_JPEG:
        out = img if img.mode == "RGB" else _matte(normalize_mode(img))
        out.save(buf, format="JPEG", quality=q, optimize=True)
    else:
        out = normalize_mode(img)
        out.save(buf, format="PNG", optimize=True)

    logger.debug("Encoded %dx%d %s (quality=%d, %d bytes)", out.width, out.height, fmt, q, buf.tell())
    return EncodedImage(data=buf.getvalue(), format=fmt, width=out.width, height=out.height)
