import io
import unittest

import numpy as np
from PIL import Image

from tests._test_path import SRC, encoded, gradient, solid  # noqa: F401

from passportstudio.core import codec
from passportstudio.core.errors import InfeasibleLayoutError, UnsupportedFormatError, ValidationError, describe_error
from passportstudio.core.layout import plan_sheet
from passportstudio.core.models import Color, CropBox, TransformSpec
from passportstudio.core.pipeline import print_sheet, process_image, render_photo, render_sheet, resize_passport


def _open(out):
    return Image.open(io.BytesIO(out.data))


class TestProcessImage(unittest.TestCase):
    def test_end_to_end_jpeg_upload_to_opaque_png(self):
        upload = codec.intake_upload(encoded(solid((1000, 1000), (90, 140, 200)), "JPEG"), "image/jpeg")
        spec = TransformSpec(
            rotation_degrees=90,
            flip_horizontal=True,
            target_width_px=600,
            target_height_px=600,
            background_color=Color.parse("#FFFFFF"),
        )
        out = process_image(upload.image, spec, fmt="png", quality=90)

        self.assertEqual(out.content_type, "image/png")
        img = _open(out)
        self.assertEqual(img.format, "PNG")
        self.assertEqual(img.size, (600, 600))
        self.assertNotIn("A", img.getbands())

    def test_png_keeps_transparency_without_background(self):
        src = solid((100, 50), (10, 10, 10))
        out = process_image(src, TransformSpec(target_width_px=100, target_height_px=100), fmt="png")
        img = _open(out)
        self.assertEqual(img.mode, "RGBA")
        self.assertEqual(img.getpixel((50, 0))[3], 0)

    def test_jpeg_output(self):
        out = process_image(gradient(40, 30), TransformSpec(), fmt="jpeg", quality=500)
        self.assertEqual(out.content_type, "image/jpeg")
        self.assertEqual(_open(out).size, (40, 30))

    def test_unsupported_format(self):
        with self.assertRaises(UnsupportedFormatError):
            process_image(gradient(4, 4), TransformSpec(), fmt="gif")

    def test_adjustments_are_clamped_before_the_engine(self):
        a = render_photo(solid((4, 4), (100, 100, 100)), TransformSpec(brightness=900))
        b = render_photo(solid((4, 4), (100, 100, 100)), TransformSpec(brightness=100))
        self.assertEqual(a.getpixel((0, 0)), b.getpixel((0, 0)))


class TestPrintSheet(unittest.TestCase):
    def test_sheet_contains_grid_of_cells(self):
        src = solid((800, 800), (250, 0, 0))
        out = print_sheet(src, TransformSpec(background_color=Color(255, 255, 255)),
                          (600, 600), (1200, 1800), fmt="png")
        img = _open(out)
        self.assertEqual(img.size, (1200, 1800))
        self.assertEqual(img.mode, "RGB")
        plan = plan_sheet(600, 600, 1200, 1800)
        for p in plan.placements:
            self.assertEqual(img.getpixel((p.x + 300, p.y + 300)), (250, 0, 0))
        self.assertEqual(img.getpixel((5, 5)), (255, 255, 255))

    def test_preview_matches_export(self):
        src = gradient(300, 400)
        spec = TransformSpec(rotation_degrees=90, brightness=15, contrast=-10, background_color=Color(0, 0, 255))
        preview, plan = render_sheet(src, spec, (413, 531), (1200, 1800))
        export = _open(print_sheet(src, spec, (413, 531), (1200, 1800), fmt="png"))
        self.assertEqual(plan.count, 6)
        self.assertTrue(np.array_equal(np.asarray(preview), np.asarray(export.convert(preview.mode))))

    def test_infeasible(self):
        with self.assertRaises(InfeasibleLayoutError) as cm:
            print_sheet(solid((10, 10), (0, 0, 0)), TransformSpec(), (2000, 2000), (1200, 1800))
        status, message = describe_error(cm.exception)
        self.assertEqual(status, 422)
        self.assertIn("smaller passport size", message)

    def test_missing_dimensions(self):
        with self.assertRaises(ValidationError):
            print_sheet(solid((10, 10), (0, 0, 0)), TransformSpec(), None, (1200, 1800))
        with self.assertRaises(ValidationError):
            print_sheet(solid((10, 10), (0, 0, 0)), TransformSpec(), (600, 600), (0, 1800))


class TestResizePassport(unittest.TestCase):
    def test_cover_fit_fills_box(self):
        out = resize_passport(solid((1000, 500), (0, 128, 0)), 413, 531)
        self.assertEqual(out.content_type, "image/jpeg")
        img = _open(out)
        self.assertEqual(img.size, (413, 531))
        self.assertEqual(img.mode, "RGB")

    def test_crop_origin_selects_region(self):
        src = Image.new("RGB", (200, 100), (255, 0, 0))
        src.paste((0, 0, 255), (100, 0, 200, 100))  # right half blue
        out = resize_passport(src, 50, 50, crop=CropBox(x=100, y=0, width=100, height=100), fmt="png")
        r, g, b = _open(out).getpixel((25, 25))
        self.assertEqual((r, g, b), (0, 0, 255))

    def test_center_crop_without_origin(self):
        src = Image.new("RGB", (300, 100), (255, 0, 0))
        src.paste((0, 255, 0), (100, 0, 200, 100))
        img = _open(resize_passport(src, 100, 100, fmt="png"))
        self.assertEqual(img.getpixel((50, 50)), (0, 255, 0))

    def test_requires_dimensions(self):
        with self.assertRaises(ValidationError):
            resize_passport(solid((10, 10), (0, 0, 0)), None, 531)


class TestDescribeError(unittest.TestCase):
    def test_unknown_errors_are_generic(self):
        self.assertEqual(describe_error(RuntimeError("boom"))[0], 500)
        self.assertNotIn("boom", describe_error(RuntimeError("boom"))[1])
