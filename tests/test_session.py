import unittest
from dataclasses import FrozenInstanceError

from tests._test_path import SRC, solid  # noqa: F401

from passportstudio.app import session as s
from passportstudio.core.catalog import passport_size, print_sheet_size
from passportstudio.core.models import Color


class TestEditSession(unittest.TestCase):
    def test_defaults(self):
        sess = s.EditSession()
        self.assertFalse(sess.has_image)
        self.assertEqual(sess.passport_size.id, "india-standard")
        self.assertEqual(sess.background_color, Color(255, 255, 255))
        self.assertIsNone(sess.crop_box)

    def test_frozen(self):
        with self.assertRaises(FrozenInstanceError):
            s.EditSession().rotation = 90  # type: ignore[misc]

    def test_updates_return_new_sessions(self):
        a = s.EditSession()
        b = s.rotate_right(a)
        self.assertIsNot(a, b)
        self.assertEqual(a.rotation, 0)
        self.assertEqual(b.rotation, 90)

    def test_rotation_wraps(self):
        sess = s.rotate_left(s.EditSession())
        self.assertEqual(sess.rotation, 270)
        for _ in range(4):
            sess = s.rotate_right(sess)
        self.assertEqual(sess.rotation, 270)

    def test_load_image_resets_image_specific_state(self):
        sess = s.EditSession()
        sess = s.set_adjustments(sess, brightness=30)
        sess = s.toggle_flip_horizontal(s.rotate_right(sess))
        sess = s.mark_background_removed(sess, solid((4, 4), (0, 0, 0, 0), mode="RGBA"))
        sess = s.load_image(sess, solid((40, 20), (1, 1, 1)), name="me.jpg")

        self.assertEqual(sess.input_name, "me.jpg")
        self.assertEqual(sess.rotation, 0)
        self.assertFalse(sess.flip_horizontal)
        self.assertFalse(sess.background_removed)
        self.assertEqual(sess.brightness, 30)  # adjustments survive a new upload

    def test_adjustments_clamped(self):
        sess = s.set_adjustments(s.EditSession(), brightness=500, saturation=-500)
        self.assertEqual((sess.brightness, sess.contrast, sess.saturation), (100, 0, -100))

    def test_display_size_follows_rotation(self):
        sess = s.load_image(s.EditSession(), solid((40, 20), (1, 1, 1)))
        self.assertEqual(sess.display_size, (40, 20))
        self.assertEqual(s.rotate_right(sess).display_size, (20, 40))

    def test_crop_box_centered_then_moved(self):
        sess = s.load_image(s.EditSession(), solid((1000, 1000), (1, 1, 1)))
        sess = s.set_passport_size(sess, passport_size("us-standard"))
        box = sess.crop_box
        self.assertAlmostEqual(box.width, 700)
        self.assertAlmostEqual(box.x, 150)

        moved = s.move_crop(sess, 0, 5000)
        self.assertEqual(moved.crop_box.x, 0)
        self.assertAlmostEqual(moved.crop_box.y, 300)

        # Changing size recenters the box.
        self.assertIsNone(s.set_passport_size(moved, passport_size("eu-standard")).crop_position)

    def test_custom_size_has_no_crop_box(self):
        sess = s.load_image(s.EditSession(), solid((100, 100), (1, 1, 1)))
        sess = s.set_passport_size(sess, passport_size("custom"))
        self.assertIsNone(sess.crop_box)
        self.assertIs(s.move_crop(sess, 1, 1), sess)

    def test_reset_background(self):
        sess = s.set_background_color(s.EditSession(), "#2196F3")
        sess = s.mark_background_removed(sess, solid((2, 2), (0, 0, 0, 0), mode="RGBA"))
        sess = s.reset_background(sess)
        self.assertFalse(sess.background_removed)
        self.assertEqual(sess.background_color.hex, "#FFFFFF")

    def test_reset_restores_defaults(self):
        sess = s.load_image(s.EditSession(), solid((10, 10), (1, 1, 1)), name="x.png")
        sess = s.set_print_sheet(s.rotate_right(sess), print_sheet_size("4x6"))
        self.assertEqual(s.reset(sess), s.EditSession())


class TestToTransformSpec(unittest.TestCase):
    def test_background_only_after_removal(self):
        sess = s.load_image(s.EditSession(), solid((600, 600), (1, 1, 1)))
        sess = s.set_background_color(sess, "#F44336")
        self.assertIsNone(s.to_transform_spec(sess).background_color)

        sess = s.mark_background_removed(sess, solid((600, 600), (1, 1, 1, 0), mode="RGBA"))
        self.assertEqual(s.to_transform_spec(sess).background_color.hex, "#F44336")

    def test_passport_size_and_crop_flow_into_spec(self):
        sess = s.load_image(s.EditSession(), solid((1000, 800), (1, 1, 1)))
        sess = s.set_passport_size(sess, passport_size("eu-standard"))
        sess = s.move_crop(sess, 10, 20)
        sess = s.toggle_flip_vertical(sess)
        spec = s.to_transform_spec(sess)
        self.assertEqual(spec.target_size, (413, 531))
        self.assertTrue(spec.flip_vertical)
        self.assertEqual((spec.crop.x, spec.crop.y), (10, 20))

    def test_untouched_crop_box_is_preview_only(self):
        sess = s.load_image(s.EditSession(), solid((1000, 800), (1, 1, 1)))
        sess = s.set_passport_size(sess, passport_size("us-standard"))
        self.assertIsNotNone(sess.crop_box)
        self.assertIsNone(s.to_transform_spec(sess).crop)

        # Dragging back to the centered position still counts as a chosen crop.
        box = sess.crop_box
        moved = s.move_crop(sess, box.x, box.y)
        self.assertEqual(s.to_transform_spec(moved).crop, box)

    def test_custom_size_keeps_source_dimensions(self):
        sess = s.set_passport_size(s.EditSession(), passport_size("custom"))
        spec = s.to_transform_spec(sess)
        self.assertIsNone(spec.target_size)
        self.assertIsNone(spec.crop)


class TestSessionStore(unittest.TestCase):
    def test_dispatch_notifies_subscribers(self):
        store = s.SessionStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.dispatch(s.rotate_right)
        store.dispatch(s.set_adjustments, contrast=20)
        self.assertEqual([x.rotation for x in seen], [90, 90])
        self.assertEqual(store.current.contrast, 20)

        unsubscribe()
        store.dispatch(s.rotate_right)
        self.assertEqual(len(seen), 2)

    def test_noop_update_does_not_notify(self):
        store = s.SessionStore()
        seen = []
        store.subscribe(seen.append)
        store.dispatch(s.move_crop, 1, 1)  # no image -> unchanged
        self.assertEqual(seen, [])
