from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from passportstudio.core.catalog import DEFAULT_BACKGROUND, default_passport_size
from passportstudio.core.crop import compute_crop_box, move_crop_box
from passportstudio.core.models import Color, CropBox, PhotoSize, TransformSpec, clamp_adjustment

if TYPE_CHECKING:  # avoid importing Pillow at module import time
    from PIL import Image


@dataclass(frozen=True)
class EditSession:
    """
    Immutable snapshot of one editing session.

    Never modified in place: every update function below returns a new session,
    and the preview/export layers read whichever snapshot is current.
    """
    # Input
    input_name: Optional[str] = None
    original: Optional["Image.Image"] = None
    cutout: Optional["Image.Image"] = None  # original with background removed

    # Output sizing
    passport_size: PhotoSize = default_passport_size()
    print_sheet: Optional[PhotoSize] = None

    # Adjustments
    background_color: Color = DEFAULT_BACKGROUND
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    rotation: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    # Top-left of the crop box in displayed (rotated/flipped) pixels; None = centered.
    crop_position: Optional[Tuple[float, float]] = None

    @property
    def has_image(self) -> bool:
        return self.original is not None

    @property
    def background_removed(self) -> bool:
        return self.cutout is not None

    @property
    def source(self) -> Optional["Image.Image"]:
        return self.cutout if self.cutout is not None else self.original

    @property
    def display_size(self) -> Optional[Tuple[int, int]]:
        """Size of the source as shown on screen, i.e. after quarter-turn rotation."""
        if self.original is None:
            return None
        w, h = self.original.size
        return (h, w) if self.rotation % 180 == 90 else (w, h)

    @property
    def crop_box(self) -> Optional[CropBox]:
        if self.display_size is None or self.passport_size.is_custom:
            return None
        w, h = self.display_size
        box = compute_crop_box(w, h, self.passport_size.aspect_ratio)
        if self.crop_position is None:
            return box
        return move_crop_box(box, w, h, *self.crop_position)


def load_image(session: EditSession, image: "Image.Image", name: Optional[str] = None) -> EditSession:
    """A new upload invalidates everything tied to the previous image."""
    return replace(
        session,
        input_name=name,
        original=image,
        cutout=None,
        rotation=0,
        flip_horizontal=False,
        flip_vertical=False,
        crop_position=None,
    )


def rotate_left(session: EditSession) -> EditSession:
    return replace(session, rotation=(session.rotation - 90) % 360, crop_position=None)


def rotate_right(session: EditSession) -> EditSession:
    return replace(session, rotation=(session.rotation + 90) % 360, crop_position=None)


def toggle_flip_horizontal(session: EditSession) -> EditSession:
    return replace(session, flip_horizontal=not session.flip_horizontal)


def toggle_flip_vertical(session: EditSession) -> EditSession:
    return replace(session, flip_vertical=not session.flip_vertical)


def set_adjustments(
    session: EditSession,
    brightness: Optional[float] = None,
    contrast: Optional[float] = None,
    saturation: Optional[float] = None,
) -> EditSession:
    return replace(
        session,
        brightness=session.brightness if brightness is None else clamp_adjustment(brightness),
        contrast=session.contrast if contrast is None else clamp_adjustment(contrast),
        saturation=session.saturation if saturation is None else clamp_adjustment(saturation),
    )


def set_background_color(session: EditSession, color: "str | Color") -> EditSession:
    return replace(session, background_color=Color.parse(color))


def set_passport_size(session: EditSession, size: PhotoSize) -> EditSession:
    return replace(session, passport_size=size, crop_position=None)


def set_print_sheet(session: EditSession, sheet: Optional[PhotoSize]) -> EditSession:
    return replace(session, print_sheet=sheet)


def move_crop(session: EditSession, x: float, y: float) -> EditSession:
    box = session.crop_box
    if box is None or session.display_size is None:
        return session
    moved = move_crop_box(box, *session.display_size, x, y)
    return replace(session, crop_position=(moved.x, moved.y))


def mark_background_removed(session: EditSession, cutout: "Image.Image") -> EditSession:
    return replace(session, cutout=cutout)


def reset_background(session: EditSession) -> EditSession:
    return replace(session, cutout=None, background_color=DEFAULT_BACKGROUND)


def reset(session: Optional[EditSession] = None) -> EditSession:
    """Clear the session entirely (Reset button)."""
    return EditSession()


def to_transform_spec(session: EditSession) -> TransformSpec:
    """
    The TransformSpec an export of this session uses.

    The background color only applies once the background has been removed.
    The crop box only reaches the export once the user has moved it; an
    untouched box is a preview guide and the whole image is exported.
    """
    size = session.passport_size
    return TransformSpec(
        rotation_degrees=session.rotation,
        flip_horizontal=session.flip_horizontal,
        flip_vertical=session.flip_vertical,
        brightness=session.brightness,
        contrast=session.contrast,
        saturation=session.saturation,
        background_color=session.background_color if session.background_removed else None,
        target_width_px=None if size.is_custom else size.width_px,
        target_height_px=None if size.is_custom else size.height_px,
        crop=session.crop_box if session.crop_position is not None else None,
    )


Listener = Callable[[EditSession], None]


class SessionStore:
    """Holds the current session and notifies subscribers whenever it changes."""

    def __init__(self, session: Optional[EditSession] = None):
        self._session = session if session is not None else EditSession()
        self._listeners: List[Listener] = []

    @property
    def current(self) -> EditSession:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, update: Callable[..., EditSession], *args, **kwargs) -> EditSession:
        new = update(self._session, *args, **kwargs)
        if new is self._session:
            return new
        self._session = new
        for listener in list(self._listeners):
            listener(new)
        return new
