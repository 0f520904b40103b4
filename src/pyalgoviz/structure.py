"""
Structure descriptions consumed by the layout and interaction engines.

This module defines:
- StructureType, the tag selecting per-type layout rules
- Element, Connection and Pointer, the parts of a structure
- VisualState, the general node/edge/pointer description
- VizState, the array-oriented description keyed by slot index
- AnimationStep, one frame of a step trace
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, TypedDict, Union

from .errors import ValidationError

logger = logging.getLogger(__name__)

ELEMENT_COLORS = ('#3b82f6', '#ec4899')
SLOT_COLORS = ('#6366f1', '#ec4899', '#f59e0b', '#10b981', '#ef4444', '#06b6d4', '#8b5cf6')


class StructureType(str, Enum):
    """Kind of data structure being visualized."""

    ARRAY = 'ARRAY'
    STRING = 'STRING'
    LINKED_LIST = 'LINKED_LIST'
    TREE = 'TREE'
    GRAPH = 'GRAPH'
    POINTERS = 'POINTERS'
    MATRIX = 'MATRIX'

    @classmethod
    def parse(cls, tag: Union[StructureType, str]) -> StructureType:
        """
        Resolve a structure type from an enum member or a tag string.

        Accepts exact tags, case-insensitive names and the aliases used by
        the step-trace producers ('STRINGS', 'BINARY_TREE', 'Linked List').

        Raises:
            ValidationError: If the tag names no known structure
        """
        if isinstance(tag, cls):
            return tag
        if isinstance(tag, str):
            key = tag.strip().upper().replace(' ', '_').replace('-', '_')
            key = _ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        raise ValidationError("type", tag, f"one of {', '.join(cls.__members__)}")

    @property
    def is_hierarchical(self) -> bool:
        """True for structures whose links should be held tighter."""
        return self is StructureType.TREE

    @property
    def is_linear(self) -> bool:
        """True for structures laid out on a single horizontal line."""
        return self in (
            StructureType.ARRAY,
            StructureType.STRING,
            StructureType.POINTERS,
            StructureType.MATRIX,
            StructureType.LINKED_LIST,
        )


_ALIASES = {
    'STRINGS': 'STRING',
    'BINARY_TREE': 'TREE',
    'LIST': 'LINKED_LIST',
    'POINTER': 'POINTERS',
}


class InputElement(TypedDict, total=False):
    """Element as supplied by the trace producer."""
    id: str
    value: Any
    x: float
    y: float
    color: str
    label: str


# 'from' is a keyword, so the functional form is required here
InputConnection = TypedDict(
    'InputConnection',
    {'from': str, 'to': str, 'type': str, 'weight': float},
    total=False
)


class InputPointer(TypedDict, total=False):
    """Pointer annotation as supplied by the trace producer."""
    name: str
    elementId: str
    color: str


class Element:
    """
    One element of a structure.

    Attributes:
        id: Identifier, unique within one structure
        value: Display value
        x: Explicit x coordinate, or None to let the initializer place it
        y: Explicit y coordinate, or None to let the initializer place it
        color: Optional display colour
        label: Optional display label
    """

    def __init__(
        self,
        id: str,
        value: Any = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        color: Optional[str] = None,
        label: Optional[str] = None
    ):
        self.id = str(id)
        self.value = value
        self.x = x
        self.y = y
        self.color = color
        self.label = label

    @property
    def has_position(self) -> bool:
        """True when both coordinates were supplied."""
        return self.x is not None and self.y is not None

    @classmethod
    def from_dict(cls, d: InputElement) -> Element:
        x = d.get('x')
        y = d.get('y')
        return cls(
            d['id'],
            d.get('value'),
            x=None if x is None else float(x),
            y=None if y is None else float(y),
            color=d.get('color'),
            label=d.get('label')
        )

    def __repr__(self) -> str:
        return f"Element({self.id!r}, {self.value!r})"


class Connection:
    """
    Relation between two elements.

    Attributes:
        source: Id of the element the connection starts at
        target: Id of the element the connection ends at
        directed: Whether the renderer should draw an arrow head
        weight: Optional numeric weight
    """

    def __init__(
        self,
        source: str,
        target: str,
        directed: bool = True,
        weight: Optional[float] = None
    ):
        self.source = str(source)
        self.target = str(target)
        self.directed = directed
        self.weight = weight

    def touches(self, element_id: str) -> bool:
        """True if either endpoint is element_id."""
        return self.source == element_id or self.target == element_id

    def other(self, element_id: str) -> str:
        """Return the endpoint opposite element_id."""
        return self.target if self.source == element_id else self.source

    @classmethod
    def from_dict(cls, d: InputConnection) -> Connection:
        return cls(
            d['from'],
            d['to'],
            directed=d.get('type', 'directed') != 'undirected',
            weight=d.get('weight')
        )

    def __repr__(self) -> str:
        arrow = '->' if self.directed else '--'
        return f"Connection({self.source!r} {arrow} {self.target!r})"


class Pointer:
    """Named marker attached to an element (e.g. 'head', 'left', 'i')."""

    def __init__(self, name: str, element_id: str, color: str = '#fbbf24'):
        self.name = name
        self.element_id = str(element_id)
        self.color = color

    @classmethod
    def from_dict(cls, d: InputPointer) -> Pointer:
        return cls(d['name'], d['elementId'], d.get('color', '#fbbf24'))

    def __repr__(self) -> str:
        return f"Pointer({self.name!r} -> {self.element_id!r})"


class VisualState:
    """
    Typed node/edge/pointer description of one structure instance.

    Connections and pointers may reference ids missing from the element
    list; such references are kept as given and filtered out by
    valid_connections() and valid_pointers().
    """

    def __init__(
        self,
        type: Union[StructureType, str],
        elements: Optional[list[Element]] = None,
        connections: Optional[list[Connection]] = None,
        pointers: Optional[list[Pointer]] = None
    ):
        self.type = StructureType.parse(type)
        self.elements: list[Element] = []
        self.connections: list[Connection] = list(connections or [])
        self.pointers: list[Pointer] = list(pointers or [])

        seen = set()
        for e in elements or []:
            if e.id in seen:
                logger.debug("Dropping duplicate element id %r", e.id)
                continue
            seen.add(e.id)
            if e.color is None:
                # the caller's element is left untouched
                color = ELEMENT_COLORS[len(self.elements) % len(ELEMENT_COLORS)]
                e = Element(e.id, e.value, e.x, e.y, color=color, label=e.label)
            self.elements.append(e)

    @classmethod
    def from_dict(cls, d: dict) -> VisualState:
        """
        Build a state from the producer's JSON shape.

        Entries missing a required key (an element id, a connection
        endpoint, a pointer name or target) are skipped.
        """
        return cls(
            d.get('type'),
            [Element.from_dict(e) for e in _complete(d.get('elements'), ('id',), 'element')],
            [Connection.from_dict(c) for c in _complete(d.get('connections'), ('from', 'to'), 'connection')],
            [Pointer.from_dict(p) for p in _complete(d.get('pointers'), ('name', 'elementId'), 'pointer')]
        )

    def element_ids(self) -> list[str]:
        return [e.id for e in self.elements]

    def element(self, element_id: str) -> Optional[Element]:
        for e in self.elements:
            if e.id == element_id:
                return e
        return None

    def valid_connections(self) -> list[Connection]:
        """Connections whose endpoints both exist."""
        ids = set(self.element_ids())
        return [c for c in self.connections if c.source in ids and c.target in ids]

    def valid_pointers(self) -> list[Pointer]:
        """Pointers whose target exists."""
        ids = set(self.element_ids())
        return [p for p in self.pointers if p.element_id in ids]

    def pointers_for(self, element_id: str) -> list[Pointer]:
        return [p for p in self.pointers if p.element_id == element_id]

    def __len__(self) -> int:
        return len(self.elements)


def _complete(entries: Optional[list], keys: tuple[str, ...], kind: str) -> list[dict]:
    """Entries carrying a non-null value for every key; others are dropped."""
    kept = []
    for entry in entries or []:
        if not isinstance(entry, dict) or any(entry.get(k) is None for k in keys):
            logger.debug("Skipping incomplete %s %r", kind, entry)
            continue
        kept.append(entry)
    return kept


def slot_id(index: int) -> str:
    """Stable synthetic id of the slot at index."""
    return f"item-{index}"


class VizState:
    """
    Array-oriented description: a list or string of values plus index pointers.

    Attributes:
        type: Structure type
        data: List of values, or a string split into characters
        explanation: Optional caption for the current step
        current_line: Optional highlighted source line
        pointers: Mapping of pointer name to slot index
    """

    def __init__(
        self,
        type: Union[StructureType, str],
        data: Any = None,
        explanation: Optional[str] = None,
        current_line: Optional[int] = None,
        pointers: Optional[dict[str, Union[int, str]]] = None
    ):
        self.type = StructureType.parse(type)
        self.data = data
        self.explanation = explanation
        self.current_line = current_line
        self.pointers = dict(pointers or {})

    @classmethod
    def from_dict(cls, d: dict) -> VizState:
        return cls(
            d.get('type'),
            d.get('data'),
            explanation=d.get('explanation'),
            current_line=d.get('currentLine'),
            pointers=d.get('pointers')
        )

    def values(self) -> list:
        """Slot values; non-list data is split into characters."""
        if self.data is None:
            return []
        if isinstance(self.data, (list, tuple)):
            return list(self.data)
        return list(str(self.data))

    def pointer_indices(self) -> dict[str, int]:
        """Pointers resolved to in-range integer indices; others are dropped."""
        n = len(self.values())
        resolved = {}
        for name, idx in self.pointers.items():
            try:
                i = int(idx)
            except (TypeError, ValueError):
                continue
            if 0 <= i < n:
                resolved[name] = i
        return resolved

    def to_visual_state(self) -> VisualState:
        """Convert to a VisualState with 'item-<i>' element ids."""
        elements = [
            Element(slot_id(i), v, color=SLOT_COLORS[i % len(SLOT_COLORS)])
            for i, v in enumerate(self.values())
        ]
        pointers = [Pointer(name, slot_id(i)) for name, i in self.pointer_indices().items()]
        return VisualState(self.type, elements, pointers=pointers)


def as_visual_state(state: Union[VisualState, VizState, dict]) -> VisualState:
    """Normalise any accepted description to a VisualState."""
    if isinstance(state, VisualState):
        return state
    if isinstance(state, VizState):
        return state.to_visual_state()
    if isinstance(state, dict):
        if 'elements' in state:
            return VisualState.from_dict(state)
        return VizState.from_dict(state).to_visual_state()
    raise ValidationError("state", state, "VisualState, VizState or dict")


class AnimationStep:
    """One step of a trace: a state, the active code line and a message."""

    def __init__(
        self,
        viz: Union[VisualState, VizState],
        code_line: Optional[int] = None,
        message: str = ''
    ):
        self.viz = viz
        self.code_line = code_line
        self.message = message

    @property
    def structure_type(self) -> StructureType:
        return self.viz.type
