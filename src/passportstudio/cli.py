#!/usr/bin/env python3
"""
passportstudio command line.

Edit a photo and export it as a single passport photo or as a print sheet
tiling as many copies as fit on the paper.

Usage:
  passportstudio sizes
  passportstudio info -i photo.jpg
  passportstudio process -i photo.jpg -o out.png --rotation 90 --flip-h --passport us-standard --background "#FFFFFF"
  passportstudio sheet -i photo.jpg -o sheet.jpg --passport eu-standard --sheet 4x6
  passportstudio resize-passport -i photo.jpg -o passport.jpg --passport uk-standard
  passportstudio remove-bg -i photo.jpg -o cutout.png
"""

from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional, Tuple

from passportstudio.config import Settings
from passportstudio.core.background import BackgroundRemover
from passportstudio.core.catalog import (
    BACKGROUND_COLORS,
    PASSPORT_SIZES,
    PRINT_SHEET_SIZES,
    passport_size,
    print_sheet_size,
)
from passportstudio.core.codec import FORMAT_JPEG, FORMAT_PNG, encode_image, intake_upload
from passportstudio.core.errors import PassportStudioError, ValidationError, describe_error
from passportstudio.core.layout import plan_sheet
from passportstudio.core.models import FIT_MODES, Color, CropBox, TransformSpec
from passportstudio.core.pipeline import print_sheet, process_image, resize_passport

logger = logging.getLogger("passportstudio")


def _format_for(path: str, explicit: Optional[str]) -> str:
    if explicit:
        return explicit
    return FORMAT_PNG if path.lower().endswith(".png") else FORMAT_JPEG


def _read_upload(path: str, settings: Settings):
    mime, _ = mimetypes.guess_type(path)
    data = Path(path).read_bytes()
    return intake_upload(data, mime or "", max_bytes=settings.max_upload_bytes)


def _passport_dims(args: argparse.Namespace) -> Optional[Tuple[int, int]]:
    if getattr(args, "width", None) and getattr(args, "height", None):
        return (args.width, args.height)
    if getattr(args, "passport", None):
        size = passport_size(args.passport)
        return None if size.is_custom else size.size_px
    return None


def _sheet_dims(args: argparse.Namespace) -> Optional[Tuple[int, int]]:
    if args.sheet_width and args.sheet_height:
        return (args.sheet_width, args.sheet_height)
    if args.sheet:
        return print_sheet_size(args.sheet).size_px
    return None


def _crop(args: argparse.Namespace) -> Optional[CropBox]:
    if not args.crop:
        return None
    x, y, w, h = args.crop
    return CropBox(x=x, y=y, width=w, height=h)


def _spec_from_args(args: argparse.Namespace, target: Optional[Tuple[int, int]]) -> TransformSpec:
    return TransformSpec(
        rotation_degrees=args.rotation,
        flip_horizontal=args.flip_h,
        flip_vertical=args.flip_v,
        brightness=args.brightness,
        contrast=args.contrast,
        saturation=args.saturation,
        background_color=Color.parse(args.background) if args.background else None,
        target_width_px=target[0] if target else None,
        target_height_px=target[1] if target else None,
        fit=args.fit,
        crop=_crop(args),
    ).clamped()


def _write(path: str, data: bytes) -> None:
    Path(path).write_bytes(data)
    print(f"Saved: {path}")


# ---------- Commands ----------

def cmd_sizes(args: argparse.Namespace, settings: Settings) -> int:
    print("Passport sizes:")
    for s in PASSPORT_SIZES:
        dims = "source size" if s.is_custom else f"{s.width_px}x{s.height_px}px"
        print(f"  {s.id:<20} {s.label:<30} {dims}")
    print("Print sheets:")
    for s in PRINT_SHEET_SIZES:
        print(f"  {s.id:<20} {s.label:<30} {s.width_px}x{s.height_px}px")
    print("Background presets:")
    for pid, label, color in BACKGROUND_COLORS:
        print(f"  {pid:<20} {label:<30} {color.hex}")
    return 0


def cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    up = _read_upload(args.input, settings)
    print(f"File: {Path(args.input).name}   Type: {up.mime_type}   Size: {up.width}x{up.height}   Bytes: {up.size_bytes}")
    if args.sheet or (args.sheet_width and args.sheet_height):
        cell = _passport_dims(args)
        if cell is None:
            raise ValidationError("Passport and sheet dimensions are required.")
        sheet = _sheet_dims(args)
        plan = plan_sheet(*cell, *sheet, margin=settings.sheet_margin_px, spacing=settings.sheet_spacing_px)
        print(f"Sheet layout: {plan.cols} x {plan.rows} = {plan.count} photos")
    return 0


def cmd_process(args: argparse.Namespace, settings: Settings) -> int:
    up = _read_upload(args.input, settings)
    spec = _spec_from_args(args, _passport_dims(args))
    out = process_image(up.image, spec, fmt=_format_for(args.output, args.format), quality=args.quality)
    _write(args.output, out.data)
    return 0


def cmd_sheet(args: argparse.Namespace, settings: Settings) -> int:
    up = _read_upload(args.input, settings)
    cell = _passport_dims(args)
    spec = _spec_from_args(args, cell)
    out = print_sheet(
        up.image,
        spec,
        cell,
        _sheet_dims(args),
        fmt=_format_for(args.output, args.format),
        quality=args.quality,
        margin=settings.sheet_margin_px if args.margin is None else args.margin,
        spacing=settings.sheet_spacing_px if args.spacing is None else args.spacing,
    )
    _write(args.output, out.data)
    return 0


def cmd_resize_passport(args: argparse.Namespace, settings: Settings) -> int:
    up = _read_upload(args.input, settings)
    dims = _passport_dims(args)
    if dims is None:
        raise ValidationError("Width and height are required.")
    out = resize_passport(
        up.image,
        *dims,
        background_color=args.background or "#FFFFFF",
        crop=_crop(args),
        fmt=_format_for(args.output, args.format),
        quality=args.quality,
    )
    _write(args.output, out.data)
    return 0


def cmd_remove_bg(args: argparse.Namespace, settings: Settings) -> int:
    up = _read_upload(args.input, settings)
    cut = BackgroundRemover(model_name=settings.rembg_model).remove(up.image)
    out = encode_image(cut, FORMAT_PNG)
    _write(args.output, out.data)
    return 0


# ---------- Parser ----------

def _add_io(p: argparse.ArgumentParser, output: bool = True) -> None:
    p.add_argument("--input", "-i", required=True, help="Path to input image (JPEG or PNG)")
    if output:
        p.add_argument("--output", "-o", required=True, help="Path to output image (.jpg/.png)")
        p.add_argument("--format", choices=(FORMAT_JPEG, FORMAT_PNG), help="Output format (default: from extension)")
        p.add_argument("--quality", type=int, default=None, help="Encoder quality 1-100 (default: 90)")


def _add_size(p: argparse.ArgumentParser) -> None:
    p.add_argument("--passport", help="Passport size id (see 'sizes')")
    p.add_argument("--width", type=int, help="Target width in px (overrides --passport)")
    p.add_argument("--height", type=int, help="Target height in px (overrides --passport)")
    p.add_argument("--crop", type=float, nargs=4, metavar=("X", "Y", "W", "H"),
                   help="Crop region in rotated/flipped image pixels")


def _add_sheet(p: argparse.ArgumentParser) -> None:
    p.add_argument("--sheet", help="Print sheet id (see 'sizes')")
    p.add_argument("--sheet-width", type=int, help="Sheet width in px (overrides --sheet)")
    p.add_argument("--sheet-height", type=int, help="Sheet height in px (overrides --sheet)")


def _add_adjustments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--rotation", type=float, default=0.0, help="Clockwise rotation in degrees")
    p.add_argument("--flip-h", action="store_true", help="Mirror left-right")
    p.add_argument("--flip-v", action="store_true", help="Mirror top-bottom")
    p.add_argument("--brightness", type=float, default=0.0, help="-100..100")
    p.add_argument("--contrast", type=float, default=0.0, help="-100..100")
    p.add_argument("--saturation", type=float, default=0.0, help="-100..100")
    p.add_argument("--background", help="Background color, e.g. '#FFFFFF' or 'white'")
    p.add_argument("--fit", choices=FIT_MODES, default=FIT_MODES[0], help="Resize policy (default: contain)")


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="passportstudio", description="Passport photo editor and print-sheet builder.")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("sizes", help="List passport sizes, print sheets and background presets").set_defaults(func=cmd_sizes)

    info = sub.add_parser("info", help="Validate an upload and show its dimensions (and sheet layout)")
    _add_io(info, output=False)
    _add_size(info)
    _add_sheet(info)
    info.set_defaults(func=cmd_info)

    proc = sub.add_parser("process", help="Export a single edited photo")
    _add_io(proc)
    _add_size(proc)
    _add_adjustments(proc)
    proc.set_defaults(func=cmd_process)

    sheet = sub.add_parser("sheet", help="Export a print sheet of passport photos")
    _add_io(sheet)
    _add_size(sheet)
    _add_sheet(sheet)
    _add_adjustments(sheet)
    sheet.add_argument("--margin", type=int, default=None, help="Sheet margin in px (default: 20)")
    sheet.add_argument("--spacing", type=int, default=None, help="Gap between photos in px (default: 15)")
    sheet.set_defaults(func=cmd_sheet)

    resize = sub.add_parser("resize-passport", help="Fill an exact passport size, cropping the overflow")
    _add_io(resize)
    _add_size(resize)
    resize.add_argument("--background", help="Background color (default: #FFFFFF)")
    resize.set_defaults(func=cmd_resize_passport)

    rmbg = sub.add_parser("remove-bg", help="Remove the background (PNG with transparency)")
    _add_io(rmbg)
    rmbg.set_defaults(func=cmd_remove_bg)
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except PassportStudioError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "quality", None) is None and hasattr(args, "quality"):
        args.quality = settings.default_quality

    try:
        return args.func(args, settings)
    except PassportStudioError as e:
        _status, message = describe_error(e)
        print(f"ERROR: {message}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
