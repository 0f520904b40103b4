"""
PyAlgoViz: Layout and interaction core for algorithm visualizations

Places data-structure elements, animates them with a force-directed
simulation and turns pointer or hand-gesture input into grabs and drags.
"""

__version__ = "0.1.0"

from .structure import (
    StructureType, Element, Connection, Pointer,
    VisualState, VizState, AnimationStep
)
from .initial import LayoutOptions, initial_positions, layout_state
from .simulation import EventType, Node, Simulation
from .scheduler import ManualScheduler, AsyncioScheduler, FrameLoop
from .interaction import InteractionKind, Interaction, PointerController
from .gesture import (
    GestureOptions, PinchDetector, SlotOffsets,
    TrackingStatus, TrackingSession, GestureController, NodeGestureController
)
from .timeline import Timeline
from .errors import AlgoVizError, ValidationError, SimulationError

__all__ = [
    "StructureType", "Element", "Connection", "Pointer",
    "VisualState", "VizState", "AnimationStep",
    "LayoutOptions", "initial_positions", "layout_state",
    "EventType", "Node", "Simulation",
    "ManualScheduler", "AsyncioScheduler", "FrameLoop",
    "InteractionKind", "Interaction", "PointerController",
    "GestureOptions", "PinchDetector", "SlotOffsets",
    "TrackingStatus", "TrackingSession", "GestureController", "NodeGestureController",
    "Timeline",
    "AlgoVizError", "ValidationError", "SimulationError",
]
