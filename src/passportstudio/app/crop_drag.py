"""
Crop-box dragging as a pointer-event state machine.

    Idle --down--> Dragging(origin, start_offset) --move--> Dragging --up--> Idle

Events carrying more than one pointer (pinch gestures) are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from passportstudio.app.session import SessionStore, move_crop
from passportstudio.core.crop import move_crop_box
from passportstudio.core.models import CropBox

Point = Tuple[float, float]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    origin: Point        # pointer position at pointer-down
    start_offset: Point  # crop box top-left at pointer-down


DragState = Union[Idle, Dragging]
IDLE = Idle()


def pointer_down(state: DragState, pointer: Point, crop_position: Point, pointer_count: int = 1) -> DragState:
    if pointer_count != 1:
        return state
    return Dragging(origin=pointer, start_offset=crop_position)


def pointer_move(
    state: DragState,
    pointer: Point,
    box: CropBox,
    source_width: float,
    source_height: float,
    pointer_count: int = 1,
) -> Tuple[DragState, Optional[CropBox]]:
    """Return the (unchanged) state and the moved box, or None when not dragging."""
    if not isinstance(state, Dragging) or pointer_count != 1:
        return state, None
    x = state.start_offset[0] + (pointer[0] - state.origin[0])
    y = state.start_offset[1] + (pointer[1] - state.origin[1])
    return state, move_crop_box(box, source_width, source_height, x, y)


def pointer_up(state: DragState) -> DragState:
    return IDLE


class CropDragger:
    """Feeds pointer events into a SessionStore's crop position."""

    def __init__(self, store: SessionStore):
        self.store = store
        self.state: DragState = IDLE

    def down(self, x: float, y: float, pointer_count: int = 1) -> None:
        box = self.store.current.crop_box
        if box is None:
            return
        self.state = pointer_down(self.state, (x, y), (box.x, box.y), pointer_count)

    def move(self, x: float, y: float, pointer_count: int = 1) -> None:
        session = self.store.current
        box, size = session.crop_box, session.display_size
        if box is None or size is None:
            return
        self.state, moved = pointer_move(self.state, (x, y), box, size[0], size[1], pointer_count)
        if moved is not None:
            self.store.dispatch(move_crop, moved.x, moved.y)

    def up(self) -> None:
        self.state = pointer_up(self.state)
