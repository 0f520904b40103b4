"""
Initial placement of structure elements.

Elements that arrive with explicit coordinates keep them. The rest are
placed by a per-type rule:
- ARRAY, STRING, POINTERS, MATRIX: centred horizontal line
- LINKED_LIST: centred horizontal line with room for arrows
- TREE: complete-binary-tree levels by level-order index
- GRAPH: evenly spaced around a circle

The tree rule assumes a complete binary tree stored in level order. Sparse
or unbalanced trees can overlap; no attempt is made to balance subtrees.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .errors import validate_size
from .structure import Element, StructureType, VisualState


@dataclass
class LayoutOptions:
    """
    Placement constants.

    Attributes:
        spacing: Distance between neighbours on a line
        list_spacing: Distance between linked list nodes
        tree_width: Horizontal extent of every tree level
        tree_top_offset: Distance of the root above the viewport centre
        level_step: Vertical distance between tree levels
        graph_radius: Radius of the graph ring
    """

    spacing: float = 90.0
    list_spacing: float = 150.0
    tree_width: float = 800.0
    tree_top_offset: float = 150.0
    level_step: float = 100.0
    graph_radius: float = 200.0


Placement = Callable[[int, int, float, float, LayoutOptions], tuple[float, float]]


def line_position(i: int, n: int, cx: float, cy: float, spacing: float) -> tuple[float, float]:
    """Position i of n on a horizontal line centred on (cx, cy)."""
    return cx - (n - 1) * spacing / 2.0 + i * spacing, cy


def _linear(i: int, n: int, cx: float, cy: float, opts: LayoutOptions) -> tuple[float, float]:
    return line_position(i, n, cx, cy, opts.spacing)


def _linked_list(i: int, n: int, cx: float, cy: float, opts: LayoutOptions) -> tuple[float, float]:
    return line_position(i, n, cx, cy, opts.list_spacing)


def tree_level(i: int) -> int:
    """Depth of level-order index i in a complete binary tree."""
    return int(math.floor(math.log2(i + 1)))


def _tree(i: int, n: int, cx: float, cy: float, opts: LayoutOptions) -> tuple[float, float]:
    level = tree_level(i)
    slots = 2 ** level
    slot = i - (slots - 1)
    slot_width = opts.tree_width / slots
    x = cx - opts.tree_width / 2.0 + (slot + 0.5) * slot_width
    y = cy - opts.tree_top_offset + level * opts.level_step
    return x, y


def _graph(i: int, n: int, cx: float, cy: float, opts: LayoutOptions) -> tuple[float, float]:
    angle = i / n * 2.0 * math.pi
    return cx + math.cos(angle) * opts.graph_radius, cy + math.sin(angle) * opts.graph_radius


PLACEMENTS: dict[StructureType, Placement] = {
    StructureType.ARRAY: _linear,
    StructureType.STRING: _linear,
    StructureType.POINTERS: _linear,
    StructureType.MATRIX: _linear,
    StructureType.LINKED_LIST: _linked_list,
    StructureType.TREE: _tree,
    StructureType.GRAPH: _graph,
}


def initial_positions(
    structure_type: StructureType | str,
    elements: Sequence[Element],
    size: Sequence[float],
    options: Optional[LayoutOptions] = None
) -> list[tuple[float, float]]:
    """
    Compute a position for every element.

    Args:
        structure_type: Structure type or tag
        elements: Elements in order; index drives the placement rule
        size: Viewport [width, height]
        options: Placement constants, defaults if omitted

    Returns:
        One (x, y) per element, in order
    """
    kind = StructureType.parse(structure_type)
    width, height = validate_size(size)
    opts = options or LayoutOptions()
    place = PLACEMENTS[kind]
    cx = width / 2.0
    cy = height / 2.0
    n = len(elements)

    result = []
    for i, e in enumerate(elements):
        if e.has_position:
            result.append((e.x, e.y))
        else:
            result.append(place(i, n, cx, cy, opts))
    return result


def layout_state(
    state: VisualState,
    size: Sequence[float],
    options: Optional[LayoutOptions] = None
) -> dict[str, tuple[float, float]]:
    """Map element id to initial position for a whole state."""
    positions = initial_positions(state.type, state.elements, size, options)
    return {e.id: p for e, p in zip(state.elements, positions)}
