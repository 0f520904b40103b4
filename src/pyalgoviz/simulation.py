"""
Force-directed simulation with direct manipulation.

This module implements the Simulation class which provides:
- Node set replacement with position carry-over for stable ids
- Pairwise repulsion within a fixed radius
- Spring attraction along connections beyond a target distance
- Velocity integration with friction damping
- Held nodes that follow the pointer exactly and skip integration
- Event system (start/tick/end events)
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Callable, Optional, Sequence, TypedDict, Union

import numpy as np

from .errors import SimulationError, ValidationError, validate_size
from .initial import LayoutOptions, initial_positions
from .structure import StructureType, VisualState, VizState, as_visual_state

logger = logging.getLogger(__name__)

REPULSION_RADIUS = 150.0
REPULSION_STRENGTH = 0.05
ATTRACTION_STRENGTH = 0.02
TREE_LINK_DISTANCE = 100.0
LINK_DISTANCE = 150.0
DAMPING = 0.9
DISTANCE_EPSILON = 0.1


class EventType(IntEnum):
    """
    The simulation fires three events:
    - start: a new node set was loaded
    - tick: fired once per integration step, listen to this to redraw
    - end: the simulation was stopped
    """
    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event dictionary passed to event listeners."""
    type: EventType
    energy: float
    settled: bool
    nodes: int


class PseudoRandom:
    """Linear congruential pseudo random number generator."""

    def __init__(self, seed: int = 1):
        self.seed = seed
        self.a = 214013
        self.c = 2531011
        self.m = 2147483648
        self.range = 32767

    def get_next(self) -> float:
        """Get random real between 0 and 1."""
        self.seed = (self.seed * self.a + self.c) % self.m
        return (self.seed >> 16) / self.range

    def get_next_between(self, min_val: float, max_val: float) -> float:
        """Get random real between min and max."""
        return min_val + self.get_next() * (max_val - min_val)

    def unit_vector(self) -> np.ndarray:
        """Random 2D unit vector."""
        u = np.array([self.get_next_between(0.01, 1) - 0.5 for _ in range(2)])
        return u / np.linalg.norm(u)


class Node:
    """
    Physics node for one structure element.

    A node is either free (moved by the integrator) or held (moved only by
    the pointer). Owned by a Simulation for the lifetime of one structure.
    """

    def __init__(
        self,
        id: str,
        value: Any = None,
        x: float = 0.0,
        y: float = 0.0,
        color: Optional[str] = None,
        label: Optional[str] = None
    ):
        self.id = id
        self.value = value
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.held = False
        self.color = color
        self.label = label

    def stop(self) -> None:
        """Zero the velocity."""
        self.vx = 0.0
        self.vy = 0.0

    def __repr__(self) -> str:
        state = 'held' if self.held else 'free'
        return f"Node({self.id!r}, x={self.x:.1f}, y={self.y:.1f}, {state})"


class Simulation:
    """
    Per-frame force-directed engine.

    Configuration uses get-or-set accessors: called without an argument
    they return the value, called with one they set it and return self.
    """

    def __init__(self, size: Sequence[float] = (1000.0, 600.0)):
        self._size = validate_size(size)
        self._repulsionRadius = REPULSION_RADIUS
        self._repulsionStrength = REPULSION_STRENGTH
        self._attractionStrength = ATTRACTION_STRENGTH
        self._damping = DAMPING
        self._linkDistance: Optional[float] = None
        self._threshold = 0.01
        self._layoutOptions = LayoutOptions()

        self._state: Optional[VisualState] = None
        self._nodes: list[Node] = []
        self._index: dict[str, int] = {}
        self._sources = np.zeros(0, dtype=int)
        self._targets = np.zeros(0, dtype=int)
        self._lastEnergy: Optional[float] = None
        self._random = PseudoRandom()

        self.event: Optional[dict] = None

    def on(self, e: Union[EventType, str], listener: Callable[[Event], None]) -> Simulation:
        """
        Subscribe a listener to an event.

        Args:
            e: Event type (EventType enum or string name)
            listener: Function to call when event fires

        Returns:
            self for method chaining
        """
        if self.event is None:
            self.event = {}
        if isinstance(e, str):
            e = EventType[e]
        self.event[e] = listener
        return self

    def trigger(self, e: Event) -> None:
        """Call the listener registered for the event's type, if any."""
        if self.event and e['type'] in self.event:
            self.event[e['type']](e)

    def _accessor(self, attr: str, x, cast=float):
        if x is None:
            return getattr(self, attr)
        setattr(self, attr, cast(x))
        return self

    def repulsion_radius(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the distance below which nodes push each other apart."""
        return self._accessor('_repulsionRadius', x)

    def repulsion_strength(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the repulsion constant."""
        return self._accessor('_repulsionStrength', x)

    def attraction_strength(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the spring constant along connections."""
        return self._accessor('_attractionStrength', x)

    def damping(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """
        Get or set the velocity damping factor.

        Raises:
            ValidationError: If the factor is outside (0, 1)
        """
        if x is not None and not 0.0 < float(x) < 1.0:
            raise ValidationError("damping", x, "value between 0 and 1 (exclusive)")
        return self._accessor('_damping', x)

    def convergence_threshold(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the energy below which the simulation counts as settled."""
        return self._accessor('_threshold', x)

    def link_distance(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """
        Get or set the connection target distance.

        Unless set explicitly, trees use a tighter distance than other
        structures.
        """
        if x is None:
            if self._linkDistance is not None:
                return self._linkDistance
            if self._state is not None and self._state.type.is_hierarchical:
                return TREE_LINK_DISTANCE
            return LINK_DISTANCE
        self._linkDistance = float(x)
        return self

    def size(self, x: Optional[Sequence[float]] = None) -> Union[tuple[float, float], Simulation]:
        """Get or set the viewport [width, height] used for initial placement."""
        if x is None:
            return self._size
        self._size = validate_size(x)
        return self

    def layout_options(self, x: Optional[LayoutOptions] = None) -> Union[LayoutOptions, Simulation]:
        """Get or set the placement constants for new nodes."""
        if x is None:
            return self._layoutOptions
        self._layoutOptions = x
        return self

    def state(
        self,
        v: Optional[Union[VisualState, VizState, dict]] = None
    ) -> Union[Optional[VisualState], Simulation]:
        """
        Get or set the structure description.

        Setting replaces the node set wholesale. If the structure type is
        unchanged, nodes whose id survives keep their position, velocity
        and held status; every other node is placed by the initializer.

        Args:
            v: Optional description to load

        Returns:
            Current state if v is None, otherwise self for chaining
        """
        if v is None:
            return self._state

        new_state = as_visual_state(v)
        previous = {}
        if self._state is not None and self._state.type is new_state.type:
            previous = {n.id: n for n in self._nodes}
        elif self._state is not None:
            logger.debug("Structure type changed %s -> %s", self._state.type.value, new_state.type.value)

        positions = initial_positions(new_state.type, new_state.elements, self._size, self._layoutOptions)
        nodes = []
        for e, (x, y) in zip(new_state.elements, positions):
            node = Node(e.id, e.value, x, y, color=e.color, label=e.label)
            old = previous.get(e.id)
            if old is not None and not e.has_position:
                node.x, node.y = old.x, old.y
                node.vx, node.vy = old.vx, old.vy
                node.held = old.held
            nodes.append(node)

        self._state = new_state
        self._nodes = nodes
        self._index = {n.id: i for i, n in enumerate(nodes)}
        self._lastEnergy = None

        pairs = [
            (self._index[c.source], self._index[c.target])
            for c in new_state.valid_connections()
            if c.source != c.target
        ]
        self._sources = np.array([s for s, _ in pairs], dtype=int)
        self._targets = np.array([t for _, t in pairs], dtype=int)

        logger.debug(
            "Loaded %s with %d nodes and %d connections",
            new_state.type.value, len(nodes), len(pairs)
        )
        self.trigger({'type': EventType.start, 'nodes': len(nodes)})
        return self

    def nodes(self) -> list[Node]:
        return self._nodes

    def node(self, node_id: str) -> Optional[Node]:
        i = self._index.get(node_id)
        return None if i is None else self._nodes[i]

    def positions(self) -> dict[str, tuple[float, float]]:
        """Current position of every node, keyed by id."""
        return {n.id: (n.x, n.y) for n in self._nodes}

    def held(self) -> Optional[Node]:
        """The node under direct control, or None."""
        for n in self._nodes:
            if n.held:
                return n
        return None

    def grab(self, node_id: str) -> bool:
        """
        Put a node under direct control.

        Refused when the id is unknown or another node is already held.

        Returns:
            True if the node is now held
        """
        node = self.node(node_id)
        if node is None:
            return False
        current = self.held()
        if current is not None and current is not node:
            return False
        node.held = True
        node.stop()
        logger.debug("Grabbed %s", node_id)
        return True

    def drag(self, node_id: str, x: float, y: float) -> bool:
        """Move a held node to (x, y). Free or unknown nodes are not moved."""
        node = self.node(node_id)
        if node is None or not node.held:
            return False
        node.x = float(x)
        node.y = float(y)
        return True

    def move_held(self, x: float, y: float) -> bool:
        """Move whichever node is held to (x, y)."""
        node = self.held()
        if node is None:
            return False
        return self.drag(node.id, x, y)

    def release(self, node_id: Optional[str] = None) -> None:
        """
        Return held nodes to physics control.

        Args:
            node_id: Node to release; all nodes if omitted
        """
        for n in self._nodes:
            if n.held and (node_id is None or n.id == node_id):
                n.held = False
                logger.debug("Released %s", n.id)

    def settled(self) -> bool:
        """True once the last step's energy fell below the threshold."""
        return self._lastEnergy is not None and self._lastEnergy < self._threshold

    def energy(self) -> Optional[float]:
        """Kinetic energy (sum of speeds) of the last step."""
        return self._lastEnergy

    def _accelerations(self, x: np.ndarray) -> np.ndarray:
        """
        Accelerations of every node given positions x (2 x n).

        Vectorized: repulsion over all ordered pairs by broadcasting, then
        attraction accumulated per connection with np.add.at.
        """
        n = x.shape[1]
        acc = np.zeros((2, n))
        if n == 0:
            return acc

        # diff[:, i, j] = x[:, i] - x[:, j]
        diff = x[:, :, np.newaxis] - x[:, np.newaxis, :]
        dist_squared = np.sum(diff ** 2, axis=0)
        off_diagonal = ~np.eye(n, dtype=bool)

        coincident = np.argwhere(np.triu(off_diagonal & (dist_squared == 0.0)))
        for i, j in coincident:
            u = self._random.unit_vector()
            diff[:, i, j] = u
            diff[:, j, i] = -u
        unit_scale = np.ones((n, n))

        dist = np.sqrt(dist_squared + DISTANCE_EPSILON)
        if len(coincident):
            # coincident pairs carry a unit direction rather than a displacement
            unit_scale[coincident[:, 0], coincident[:, 1]] = dist[coincident[:, 0], coincident[:, 1]]
            unit_scale[coincident[:, 1], coincident[:, 0]] = dist[coincident[:, 1], coincident[:, 0]]

        R = self._repulsionRadius
        near = off_diagonal & (dist < R)
        force = np.where(near, (R - dist) * self._repulsionStrength, 0.0)
        acc += np.sum(diff * unit_scale / dist * force, axis=2)

        if len(self._sources):
            s = self._sources
            t = self._targets
            d = x[:, t] - x[:, s]
            length = np.sqrt(np.sum(d ** 2, axis=0))
            target = self.link_distance()
            stretched = length > target
            safe_length = np.where(stretched, length, 1.0)
            f = np.where(stretched, (length - target) * self._attractionStrength, 0.0)
            pull = d / safe_length * f
            np.add.at(acc[0], s, pull[0])
            np.add.at(acc[1], s, pull[1])
            np.add.at(acc[0], t, -pull[0])
            np.add.at(acc[1], t, -pull[1])

        return acc

    def tick(self) -> float:
        """
        Advance every free node by one integration step.

        All forces are computed from the positions at the start of the step.
        Held nodes keep their pointer-driven position and zero velocity.

        Returns:
            Kinetic energy of the step (sum of node speeds)
        """
        if self._state is None:
            raise SimulationError("no state loaded; call state() before tick()")

        n = len(self._nodes)
        x = np.array([[v.x for v in self._nodes], [v.y for v in self._nodes]], dtype=float).reshape(2, n)
        vel = np.array([[v.vx for v in self._nodes], [v.vy for v in self._nodes]], dtype=float).reshape(2, n)
        free = np.array([not v.held for v in self._nodes], dtype=bool)

        acc = self._accelerations(x)
        vel = np.where(free, (vel + acc) * self._damping, 0.0)
        x = np.where(free, x + vel, x)

        self._update_nodes(x, vel, free)

        energy = float(np.sum(np.sqrt(np.sum(vel ** 2, axis=0))))
        self._lastEnergy = energy
        self.trigger({
            'type': EventType.tick,
            'energy': energy,
            'settled': energy < self._threshold
        })
        return energy

    def _update_nodes(self, x: np.ndarray, vel: np.ndarray, free: np.ndarray) -> None:
        """Copy integrated positions and velocities back onto free nodes."""
        for i, v in enumerate(self._nodes):
            if not free[i]:
                continue
            v.x = float(x[0, i])
            v.y = float(x[1, i])
            v.vx = float(vel[0, i])
            v.vy = float(vel[1, i])

    def run(self, iterations: int) -> float:
        """
        Step until settled or for at most the given number of iterations.

        Returns:
            Energy of the last step (0.0 if no step ran)
        """
        energy = 0.0
        for _ in range(iterations):
            energy = self.tick()
            if self.settled():
                break
        return energy

    def stop(self) -> Simulation:
        """Release every hold and fire the end event."""
        self.release()
        self.trigger({'type': EventType.end, 'energy': self._lastEnergy or 0.0})
        return self

    @property
    def structure_type(self) -> Optional[StructureType]:
        return None if self._state is None else self._state.type
