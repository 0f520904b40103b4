"""
Geometric primitives for node placement and hit-testing.

This module provides distances and axis-aligned rectangles
used by the layout initializer and the gesture hit-tester.
"""

from __future__ import annotations

import math


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between (x1, y1) and (x2, y2)."""
    return math.hypot(x2 - x1, y2 - y1)


class Rectangle:
    """Axis-aligned rectangle."""

    def __init__(self, x: float, X: float, y: float, Y: float):
        """
        Initialize rectangle.

        Args:
            x: Left edge
            X: Right edge
            y: Top edge (screen coordinates grow downwards)
            Y: Bottom edge
        """
        self.x = x
        self.X = X
        self.y = y
        self.Y = Y

    @staticmethod
    def from_origin(x: float, y: float, width: float, height: float) -> Rectangle:
        """Create a rectangle from its top-left corner and size."""
        return Rectangle(x, x + width, y, y + height)

    def cx(self) -> float:
        """Get x center."""
        return (self.x + self.X) / 2.0

    def cy(self) -> float:
        """Get y center."""
        return (self.y + self.Y) / 2.0

    def width(self) -> float:
        """Get width."""
        return self.X - self.x

    def height(self) -> float:
        """Get height."""
        return self.Y - self.y

    def inflate(self, pad: float) -> Rectangle:
        """
        Inflate rectangle by padding.

        Args:
            pad: Padding amount on every side

        Returns:
            Inflated rectangle
        """
        return Rectangle(self.x - pad, self.X + pad, self.y - pad, self.Y + pad)

    def contains(self, px: float, py: float) -> bool:
        """Test whether (px, py) lies inside or on the border."""
        return self.x <= px <= self.X and self.y <= py <= self.Y

    def __repr__(self) -> str:
        return f"Rectangle({self.x!r}, {self.X!r}, {self.y!r}, {self.Y!r})"
