import io
import unittest

from PIL import Image

from tests._test_path import SRC, encoded, solid  # noqa: F401

from passportstudio.core import codec
from passportstudio.core.errors import DecodeError, PayloadTooLargeError, UnsupportedFormatError, ValidationError


class TestIntake(unittest.TestCase):
    def test_accepts_jpeg_and_reports_dimensions(self):
        data = encoded(solid((40, 30), (10, 20, 30)), "JPEG")
        up = codec.intake_upload(data, "image/jpeg")
        self.assertEqual((up.width, up.height), (40, 30))
        self.assertEqual(up.mime_type, "image/jpeg")
        self.assertEqual(up.size_bytes, len(data))
        self.assertEqual(up.image.mode, "RGB")

    def test_png_keeps_alpha(self):
        data = encoded(solid((8, 8), (1, 2, 3, 0), mode="RGBA"), "PNG")
        up = codec.intake_upload(data, "image/png")
        self.assertEqual(up.image.mode, "RGBA")

    def test_rejects_other_mime_types(self):
        data = encoded(solid((8, 8), (0, 0, 0)), "GIF")
        with self.assertRaises(UnsupportedFormatError):
            codec.intake_upload(data, "image/gif")

    def test_rejects_oversize_before_decoding(self):
        with self.assertRaises(PayloadTooLargeError) as cm:
            codec.intake_upload(b"x" * 101, "image/png", max_bytes=100)
        self.assertIsInstance(cm.exception, ValidationError)
        self.assertEqual(cm.exception.status, 413)

    def test_rejects_garbage(self):
        with self.assertRaises(DecodeError):
            codec.intake_upload(b"definitely not an image", "image/jpeg")

    def test_rejects_empty(self):
        with self.assertRaises(ValidationError):
            codec.intake_upload(b"", "image/png")


class TestDecode(unittest.TestCase):
    def test_grayscale_becomes_rgb(self):
        img = codec.decode_image(encoded(solid((5, 5), 128, mode="L"), "PNG"))
        self.assertEqual(img.mode, "RGB")

    def test_exif_orientation_applied(self):
        src = solid((20, 10), (200, 0, 0))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW on display
        buf = io.BytesIO()
        src.save(buf, format="JPEG", exif=exif.tobytes())
        img = codec.decode_image(buf.getvalue())
        self.assertEqual(img.size, (10, 20))


class TestEncode(unittest.TestCase):
    def test_png_preserves_alpha(self):
        out = codec.encode_image(solid((4, 4), (0, 0, 0, 0), mode="RGBA"), "png")
        self.assertEqual(out.content_type, "image/png")
        back = Image.open(io.BytesIO(out.data))
        self.assertEqual(back.mode, "RGBA")
        self.assertEqual(back.getpixel((0, 0))[3], 0)

    def test_jpeg_is_always_opaque(self):
        out = codec.encode_image(solid((4, 4), (0, 0, 0, 0), mode="RGBA"), "JPEG")
        self.assertEqual(out.format, "jpeg")
        self.assertEqual(out.content_type, "image/jpeg")
        back = Image.open(io.BytesIO(out.data))
        self.assertEqual(back.format, "JPEG")
        self.assertEqual(back.mode, "RGB")
        r, g, b = back.getpixel((1, 1))
        self.assertGreater(min(r, g, b), 240)  # matted onto white

    def test_unsupported_format(self):
        with self.assertRaises(UnsupportedFormatError):
            codec.encode_image(solid((2, 2), (0, 0, 0)), "webp")

    def test_quality_is_clamped(self):
        self.assertEqual(codec.clamp_quality(0), 1)
        self.assertEqual(codec.clamp_quality(250), 100)
        self.assertEqual(codec.clamp_quality(None), 90)
        # out-of-range quality still encodes
        codec.encode_image(solid((2, 2), (0, 0, 0)), "jpeg", quality=-5)
