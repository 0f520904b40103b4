"""
Pointer interaction with simulation nodes.

The controller owns a single Interaction record describing what the pointer
is doing (nothing, hovering a node, or holding one). Node positions are
written through the Simulation, which excludes the held node from physics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .simulation import Simulation

logger = logging.getLogger(__name__)


class InteractionKind(Enum):
    """What the pointer is doing to a node."""

    FREE = 'free'
    HOVERED = 'hovered'
    GRABBED = 'grabbed'


@dataclass(frozen=True)
class Interaction:
    """
    Active interaction.

    Attributes:
        kind: Interaction kind
        node_id: Node being hovered or grabbed, None when FREE
    """

    kind: InteractionKind = InteractionKind.FREE
    node_id: Optional[str] = None

    @classmethod
    def free(cls) -> Interaction:
        return cls()

    @classmethod
    def hovered(cls, node_id: str) -> Interaction:
        return cls(InteractionKind.HOVERED, node_id)

    @classmethod
    def grabbed(cls, node_id: str) -> Interaction:
        return cls(InteractionKind.GRABBED, node_id)

    @property
    def hovered_id(self) -> Optional[str]:
        return self.node_id if self.kind is InteractionKind.HOVERED else None

    @property
    def grabbed_id(self) -> Optional[str]:
        return self.node_id if self.kind is InteractionKind.GRABBED else None


class PointerController:
    """
    Mouse/pointer driver for a Simulation.

    The grabbed node is whichever node the pointer was pressed on; while
    grabbed it sits exactly at the pointer position.
    """

    def __init__(self, simulation: Simulation):
        self.simulation = simulation
        self.interaction = Interaction.free()
        self.position: Optional[tuple[float, float]] = None

    @property
    def grabbed(self) -> Optional[str]:
        return self.interaction.grabbed_id

    @property
    def hovered(self) -> Optional[str]:
        return self.interaction.hovered_id

    def hover(self, node_id: Optional[str]) -> None:
        """Pointer entered node_id, or left all nodes when None."""
        if self.interaction.kind is InteractionKind.GRABBED:
            return
        if node_id is None or self.simulation.node(node_id) is None:
            self.interaction = Interaction.free()
        else:
            self.interaction = Interaction.hovered(node_id)

    def press(self, node_id: str, x: Optional[float] = None, y: Optional[float] = None) -> bool:
        """
        Pointer pressed on node_id.

        Returns:
            True if the node is now grabbed
        """
        if self.interaction.kind is InteractionKind.GRABBED:
            return False
        if not self.simulation.grab(node_id):
            return False
        self.interaction = Interaction.grabbed(node_id)
        if x is not None and y is not None:
            self.move(x, y)
        return True

    def move(self, x: float, y: float) -> None:
        """Pointer moved to (x, y); a grabbed node follows exactly."""
        self.position = (float(x), float(y))
        node_id = self.interaction.grabbed_id
        if node_id is not None:
            self.simulation.drag(node_id, x, y)

    def sync(self) -> None:
        """
        Re-apply the pointer position to the grabbed node.

        Called once per frame before the physics step. Drops the grab if
        the node vanished with a state replacement.
        """
        node_id = self.interaction.grabbed_id
        if node_id is None:
            if self.interaction.node_id is not None and self.simulation.node(self.interaction.node_id) is None:
                self.interaction = Interaction.free()
            return
        node = self.simulation.node(node_id)
        if node is None or not node.held:
            logger.debug("Grabbed node %s no longer held", node_id)
            self.interaction = Interaction.free()
            return
        if self.position is not None:
            self.simulation.drag(node_id, *self.position)

    def release(self) -> None:
        """Pointer released; the grabbed node returns to physics."""
        node_id = self.interaction.grabbed_id
        if node_id is not None:
            self.simulation.release(node_id)
        self.interaction = Interaction.free()

    def leave(self) -> None:
        """Pointer left the surface."""
        self.release()
        self.position = None
