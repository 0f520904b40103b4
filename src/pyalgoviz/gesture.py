"""
Hand-gesture interaction with array slots and simulation nodes.

A hand tracker supplies 21 normalised landmarks per frame. The thumb tip
and index fingertip drive everything here:
- their distance, filtered through a hysteresis band, is the pinch state
- their mirrored midpoint is the cursor used for hit-testing and dragging

GestureController drags the slot blocks of ARRAY and STRING views. Each
slot carries a persistent offset on top of its computed position, and
dropping a slot onto another exchanges the two offsets.

NodeGestureController holds Simulation nodes instead: the pinched node
follows the pinch point exactly until the hand opens or is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

from .errors import ValidationError, validate_size
from .geom import Rectangle, distance
from .initial import line_position
from .interaction import Interaction
from .simulation import Simulation
from .structure import StructureType, VisualState, VizState, as_visual_state, slot_id

logger = logging.getLogger(__name__)

THUMB_TIP = 4
INDEX_TIP = 8

SLOT_TYPES = (StructureType.ARRAY, StructureType.STRING)


@dataclass
class GestureOptions:
    """
    Gesture and slot geometry constants.

    Attributes:
        pinch_on: Thumb-index distance below which a pinch engages
        pinch_off: Distance above which an engaged pinch releases
        block_width: Slot block width in pixels
        block_height: Slot block height in pixels
        gap: Horizontal gap between blocks
        hit_padding: Extra margin around a block for hit-testing
        swap_fraction: Centre distance, as a fraction of block width, that triggers a swap
        clamp_left: Furthest leftward offset, as a fraction of viewport width
        clamp_right: Furthest rightward offset, as a fraction of viewport width
        clamp_vertical: Furthest vertical offset, as a fraction of viewport height
        grab_scale: Render scale of the grabbed block
        hover_scale: Render scale of the hovered block
        mirror: Mirror x so the camera feed behaves like a mirror
        pointer_lift: Distance of the first pointer label above its block
        pointer_step: Vertical distance between stacked pointer labels
    """

    pinch_on: float = 0.055
    pinch_off: float = 0.075
    block_width: float = 60.0
    block_height: float = 60.0
    gap: float = 14.0
    hit_padding: float = 40.0
    swap_fraction: float = 0.9
    clamp_left: float = 0.4
    clamp_right: float = 0.5
    clamp_vertical: float = 0.45
    grab_scale: float = 1.25
    hover_scale: float = 1.15
    mirror: bool = True
    pointer_lift: float = 25.0
    pointer_step: float = 25.0

    def __post_init__(self):
        if self.pinch_off <= self.pinch_on:
            raise ValidationError("pinch_off", self.pinch_off, f"value greater than pinch_on ({self.pinch_on})")


def landmark_xy(landmark: Any) -> tuple[float, float]:
    """Read (x, y) from a landmark given as an object, a mapping or a sequence."""
    if hasattr(landmark, 'x') and hasattr(landmark, 'y'):
        return float(landmark.x), float(landmark.y)
    if isinstance(landmark, dict):
        return float(landmark['x']), float(landmark['y'])
    return float(landmark[0]), float(landmark[1])


def pinch_distance(landmarks: Sequence[Any]) -> float:
    """Distance between thumb tip and index fingertip in normalised units."""
    tx, ty = landmark_xy(landmarks[THUMB_TIP])
    ix, iy = landmark_xy(landmarks[INDEX_TIP])
    return distance(tx, ty, ix, iy)


def pinch_point(
    landmarks: Sequence[Any],
    size: Sequence[float],
    mirror: bool = True
) -> tuple[float, float]:
    """
    Thumb-index midpoint in viewport pixels.

    Args:
        landmarks: Hand landmarks, normalised to 0..1
        size: Viewport [width, height]
        mirror: Flip x horizontally

    Returns:
        (x, y) in pixels
    """
    width, height = size
    tx, ty = landmark_xy(landmarks[THUMB_TIP])
    ix, iy = landmark_xy(landmarks[INDEX_TIP])
    mx = (tx + ix) / 2.0
    my = (ty + iy) / 2.0
    if mirror:
        mx = 1.0 - mx
    return mx * width, my * height


class PinchDetector:
    """
    Pinch state with hysteresis.

    Engages when the distance drops below `on` and stays engaged until the
    distance rises above `off`, so jitter between the two thresholds never
    toggles the state.
    """

    def __init__(self, on: float = 0.055, off: float = 0.075):
        if off <= on:
            raise ValidationError("off", off, f"value greater than on ({on})")
        self.on = on
        self.off = off
        self.engaged = False

    def update(self, dist: float) -> bool:
        """Feed one distance sample and return the new state."""
        if self.engaged:
            self.engaged = dist <= self.off
        else:
            self.engaged = dist < self.on
        return self.engaged

    def reset(self) -> None:
        self.engaged = False


class SlotOffsets:
    """
    Manual displacement per slot, keyed by 'item-<i>'.

    Missing slots have a zero offset.
    """

    def __init__(self):
        self._offsets: dict[str, tuple[float, float]] = {}

    def get(self, key: str) -> tuple[float, float]:
        return self._offsets.get(key, (0.0, 0.0))

    def set(self, key: str, dx: float, dy: float) -> None:
        self._offsets[key] = (float(dx), float(dy))

    def add(
        self,
        key: str,
        dx: float,
        dy: float,
        bounds: Optional[Rectangle] = None
    ) -> tuple[float, float]:
        """
        Accumulate (dx, dy) onto a slot, optionally clamped to bounds.

        Returns:
            The new offset
        """
        ox, oy = self.get(key)
        nx = ox + dx
        ny = oy + dy
        if bounds is not None:
            nx = max(bounds.x, min(bounds.X, nx))
            ny = max(bounds.y, min(bounds.Y, ny))
        self.set(key, nx, ny)
        return nx, ny

    def swap(self, a: str, b: str) -> None:
        """Exchange the offsets of two slots."""
        oa = self.get(a)
        ob = self.get(b)
        self._offsets[a] = ob
        self._offsets[b] = oa

    def reset(self) -> None:
        self._offsets.clear()

    def total(self, keys: Optional[Sequence[str]] = None) -> tuple[float, float]:
        """Sum of offsets over keys (all stored slots if omitted)."""
        keys = self._offsets.keys() if keys is None else keys
        sx = sum(self.get(k)[0] for k in keys)
        sy = sum(self.get(k)[1] for k in keys)
        return sx, sy

    def as_dict(self) -> dict[str, tuple[float, float]]:
        return dict(self._offsets)

    def __contains__(self, key: str) -> bool:
        return key in self._offsets

    def __len__(self) -> int:
        return len(self._offsets)


class SlotLayout:
    """Block geometry of n slots on a line centred in the viewport."""

    def __init__(self, count: int, size: Sequence[float], options: GestureOptions):
        self.count = count
        self.width, self.height = validate_size(size)
        self.options = options

    @property
    def step(self) -> float:
        return self.options.block_width + self.options.gap

    def base_center(self, i: int) -> tuple[float, float]:
        return line_position(i, self.count, self.width / 2.0, self.height / 2.0, self.step)

    def box(self, i: int, offset: tuple[float, float] = (0.0, 0.0)) -> Rectangle:
        """Unscaled rectangle of block i, displaced by offset."""
        cx, cy = self.base_center(i)
        o = self.options
        return Rectangle.from_origin(
            cx - o.block_width / 2.0 + offset[0],
            cy - o.block_height / 2.0 + offset[1],
            o.block_width,
            o.block_height
        )

    def origin(self, i: int, offset: tuple[float, float] = (0.0, 0.0)) -> tuple[float, float]:
        """Top-left corner of block i, displaced by offset."""
        b = self.box(i, offset)
        return b.x, b.y

    def center(self, i: int, offset: tuple[float, float] = (0.0, 0.0)) -> tuple[float, float]:
        b = self.box(i, offset)
        return b.cx(), b.cy()

    def hit(
        self,
        i: int,
        px: float,
        py: float,
        offset: tuple[float, float] = (0.0, 0.0),
        scale: float = 1.0
    ) -> bool:
        """
        Test a viewport point against the padded box of block i.

        The point is taken into the block's local frame (translated to the
        block origin and scaled about it) before the test.
        """
        ox, oy = self.origin(i, offset)
        lx = (px - ox) / scale
        ly = (py - oy) / scale
        box = Rectangle.from_origin(0.0, 0.0, self.options.block_width, self.options.block_height)
        return box.inflate(self.options.hit_padding).contains(lx, ly)

    def clamp_bounds(self) -> Rectangle:
        """Allowed range of a slot offset."""
        o = self.options
        return Rectangle(
            -self.width * o.clamp_left,
            self.width * o.clamp_right,
            -self.height * o.clamp_vertical,
            self.height * o.clamp_vertical
        )


class TrackingStatus(Enum):
    """State of the camera hand tracker."""

    INITIALIZING = 'initializing'
    ACTIVE = 'active'
    BLOCKED = 'blocked'
    DENIED = 'denied'


class TrackingSession:
    """
    Availability of gesture input for one session.

    DENIED is terminal: a refused camera is not retried, the session stays
    pointer-only.
    """

    def __init__(self):
        self.status = TrackingStatus.INITIALIZING
        self.reason: Optional[str] = None

    @property
    def accepts_input(self) -> bool:
        return self.status is TrackingStatus.ACTIVE

    def _set(self, status: TrackingStatus) -> bool:
        if self.status is TrackingStatus.DENIED:
            return False
        if status is not self.status:
            logger.info("Hand tracking %s -> %s", self.status.value, status.value)
        self.status = status
        return True

    def activate(self) -> bool:
        """Tracker is delivering frames."""
        return self._set(TrackingStatus.ACTIVE)

    def block(self) -> bool:
        """Tracker is waiting for user interaction before it can start."""
        return self._set(TrackingStatus.BLOCKED)

    def deny(self, reason: str = 'access refused') -> None:
        """Tracker is unavailable for the rest of the session."""
        if self.status is not TrackingStatus.DENIED:
            logger.warning("Hand tracking unavailable: %s", reason)
        self.status = TrackingStatus.DENIED
        self.reason = reason


class GestureController:
    """
    Per-frame gesture driver for slot-based structures.

    Call set_state() whenever the description changes and update() once
    per frame with the latest landmarks (None when no hand is tracked).
    """

    def __init__(
        self,
        options: Optional[GestureOptions] = None,
        session: Optional[TrackingSession] = None
    ):
        self.options = options or GestureOptions()
        self.session = session or TrackingSession()
        self.offsets = SlotOffsets()
        self.pinch = PinchDetector(self.options.pinch_on, self.options.pinch_off)
        self.interaction = Interaction.free()
        self.cursor: Optional[tuple[float, float]] = None
        self._hovered: Optional[str] = None
        self._last: Optional[tuple[float, float]] = None
        self._state: Optional[VisualState] = None
        self._size: tuple[float, float] = (1.0, 1.0)
        self._layout: Optional[SlotLayout] = None

    @property
    def hovered(self) -> Optional[str]:
        return self._hovered

    @property
    def grabbed(self) -> Optional[str]:
        return self.interaction.grabbed_id

    @property
    def pinching(self) -> bool:
        return self.pinch.engaged

    @property
    def structure_type(self) -> Optional[StructureType]:
        return None if self._state is None else self._state.type

    @property
    def has_slots(self) -> bool:
        """True when the loaded structure is drawn as a row of slot blocks."""
        return self._state is not None and self._state.type in SLOT_TYPES

    def slot_ids(self) -> list[str]:
        n = len(self._state) if self.has_slots else 0
        return [slot_id(i) for i in range(n)]

    def set_state(
        self,
        state: Union[VisualState, VizState, dict],
        size: Sequence[float]
    ) -> None:
        """
        Load a description and viewport size.

        Offsets survive while the structure type stays the same and are
        cleared, together with any hover, grab and pinch, when it changes.
        Only ARRAY and STRING structures have slots; any other type loads
        with none, so nothing can be hovered or grabbed here.
        """
        new_state = as_visual_state(state)
        if self._state is not None and self._state.type is not new_state.type:
            logger.debug("Structure type changed, clearing %d slot offsets", len(self.offsets))
            self.offsets.reset()
            self._clear()
        self._state = new_state
        self._size = validate_size(size)
        self._layout = SlotLayout(len(self.slot_ids()), self._size, self.options)

        ids = set(self.slot_ids())
        if self._hovered not in ids:
            self._hovered = None
        if self.interaction.node_id is not None and self.interaction.node_id not in ids:
            self.interaction = Interaction.free()

    def _clear(self) -> None:
        self._hovered = None
        self.interaction = Interaction.free()
        self._last = None
        self.cursor = None
        self.pinch.reset()

    def scale_for(self, key: str) -> float:
        """Render scale of a slot given the current interaction."""
        if key == self.grabbed:
            return self.options.grab_scale
        if key == self._hovered:
            return self.options.hover_scale
        return 1.0

    def slot_positions(self) -> dict[str, tuple[float, float]]:
        """Centre of every slot including its offset."""
        if self._layout is None:
            return {}
        return {
            key: self._layout.center(i, self.offsets.get(key))
            for i, key in enumerate(self.slot_ids())
        }

    def pointer_positions(self) -> dict[str, tuple[float, float]]:
        """Anchor of every valid pointer label, stacked above its slot."""
        if self._layout is None or not self.has_slots:
            return {}
        index ={e.id: i for i, e in enumerate(self._state.elements)}
        result = {}
        for k, p in enumerate(self._state.valid_pointers()):
            i = index[p.element_id]
            key = slot_id(i)
            offset = self.offsets.get(key)
            cx, _ = self._layout.center(i, offset)
            _, top = self._layout.origin(i, offset)
            result[p.name] = (cx, top - self.options.pointer_lift - k * self.options.pointer_step)
        return result

    def hit_test(self, px: float, py: float) -> Optional[str]:
        """
        Slot under the viewport point (px, py), or None.

        Padded boxes of neighbours overlap; the slot whose centre is
        nearest the point wins.
        """
        if self._layout is None:
            return None
        best = None
        best_d = float('inf')
        for i, key in enumerate(self.slot_ids()):
            offset = self.offsets.get(key)
            if not self._layout.hit(i, px, py, offset, self.scale_for(key)):
                continue
            cx, cy = self._layout.center(i, offset)
            d = distance(px, py, cx, cy)
            if d < best_d:
                best = key
                best_d = d
        return best

    def drag_by(self, dx: float, dy: float) -> Optional[str]:
        """
        Move the grabbed slot by (dx, dy) and resolve at most one swap.

        Returns:
            Id of the slot swapped with, or None
        """
        key = self.grabbed
        if key is None or self._layout is None:
            return None
        self.offsets.add(key, dx, dy, self._layout.clamp_bounds())
        return self._swap_nearby(key)

    def _swap_nearby(self, key: str) -> Optional[str]:
        ids = self.slot_ids()
        gi = ids.index(key)
        gx, gy = self._layout.center(gi, self.offsets.get(key))
        threshold = self.options.block_width * self.options.swap_fraction
        for i, other in enumerate(ids):
            if other == key:
                continue
            ox, oy = self._layout.center(i, self.offsets.get(other))
            if (gx - ox) ** 2 + (gy - oy) ** 2 < threshold ** 2:
                self.offsets.swap(key, other)
                logger.debug("Swapped %s with %s", key, other)
                return other
        return None

    def update(self, landmarks: Optional[Sequence[Any]]) -> Interaction:
        """
        Process one frame of tracking.

        Args:
            landmarks: Landmarks of the first tracked hand, or None when no
                hand is visible

        Returns:
            The interaction after this frame
        """
        if not self.session.accepts_input:
            return self.interaction
        if landmarks is None or len(landmarks) <= INDEX_TIP:
            if self.grabbed is not None:
                logger.debug("Tracking lost, releasing %s", self.grabbed)
            self._clear()
            return self.interaction

        pinching = self.pinch.update(pinch_distance(landmarks))
        px, py = pinch_point(landmarks, self._size, self.options.mirror)
        self.cursor = (px, py)
        self._hovered = self.hit_test(px, py)

        if pinching:
            if self.grabbed is None and self._hovered is not None:
                self.interaction = Interaction.grabbed(self._hovered)
                logger.debug("Pinch grabbed %s", self._hovered)
            if self.grabbed is not None and self._last is not None:
                self.drag_by(px - self._last[0], py - self._last[1])
        elif self.grabbed is not None:
            logger.debug("Pinch released %s", self.grabbed)
            self.interaction = Interaction.free()

        if self.grabbed is None:
            if self._hovered is None:
                self.interaction = Interaction.free()
            else:
                self.interaction = Interaction.hovered(self._hovered)

        self._last = (px, py)
        return self.interaction

    def grab(self, key: str) -> bool:
        """Grab a slot directly, as a pointer press would."""
        if self.grabbed is not None or key not in self.slot_ids():
            return False
        self.interaction = Interaction.grabbed(key)
        return True

    def release(self) -> None:
        self.interaction = Interaction.free()


class NodeGestureController:
    """
    Hand-gesture driver for Simulation nodes.

    The gesture counterpart of PointerController: a pinch over a node grabs
    it, the pinched node sits exactly at the pinch point while the pinch
    lasts, and opening the hand or losing the hand releases it.
    """

    def __init__(
        self,
        simulation: Simulation,
        options: Optional[GestureOptions] = None,
        session: Optional[TrackingSession] = None
    ):
        self.simulation = simulation
        self.options = options or GestureOptions()
        self.session = session or TrackingSession()
        self.pinch = PinchDetector(self.options.pinch_on, self.options.pinch_off)
        self.interaction = Interaction.free()
        self.cursor: Optional[tuple[float, float]] = None
        self._hovered: Optional[str] = None

    @property
    def hovered(self) -> Optional[str]:
        return self._hovered

    @property
    def grabbed(self) -> Optional[str]:
        return self.interaction.grabbed_id

    @property
    def pinching(self) -> bool:
        return self.pinch.engaged

    def hit_test(self, px: float, py: float) -> Optional[str]:
        """Nearest node whose padded box contains (px, py), or None."""
        o = self.options
        best = None
        best_d = float('inf')
        for n in self.simulation.nodes():
            box = Rectangle.from_origin(
                n.x - o.block_width / 2.0, n.y - o.block_height / 2.0,
                o.block_width, o.block_height
            )
            if not box.inflate(o.hit_padding).contains(px, py):
                continue
            d = distance(px, py, n.x, n.y)
            if d < best_d:
                best = n.id
                best_d = d
        return best

    def update(self, landmarks: Optional[Sequence[Any]]) -> Interaction:
        """
        Process one frame of tracking before the physics step.

        Args:
            landmarks: Landmarks of the first tracked hand, or None when no
                hand is visible

        Returns:
            The interaction after this frame
        """
        if not self.session.accepts_input:
            return self.interaction
        if landmarks is None or len(landmarks) <= INDEX_TIP:
            if self.grabbed is not None:
                logger.debug("Tracking lost, releasing node %s", self.grabbed)
            self.release()
            self._hovered = None
            self.cursor = None
            self.pinch.reset()
            return self.interaction

        key = self.grabbed
        if key is not None and self.simulation.node(key) is None:
            logger.debug("Grabbed node %s no longer exists", key)
            self.interaction = Interaction.free()

        pinching = self.pinch.update(pinch_distance(landmarks))
        px, py = pinch_point(landmarks, self.simulation.size(), self.options.mirror)
        self.cursor = (px, py)
        self._hovered = self.hit_test(px, py)

        if pinching:
            if self.grabbed is None and self._hovered is not None:
                if self.simulation.grab(self._hovered):
                    self.interaction = Interaction.grabbed(self._hovered)
                    logger.debug("Pinch grabbed node %s", self._hovered)
            if self.grabbed is not None:
                self.simulation.drag(self.grabbed, px, py)
        elif self.grabbed is not None:
            logger.debug("Pinch released node %s", self.grabbed)
            self.release()

        if self.grabbed is None:
            if self._hovered is None:
                self.interaction = Interaction.free()
            else:
                self.interaction = Interaction.hovered(self._hovered)
        return self.interaction

    def release(self) -> None:
        """Hand the grabbed node back to physics."""
        key = self.grabbed
        if key is not None:
            self.simulation.release(key)
        self.interaction = Interaction.free()
