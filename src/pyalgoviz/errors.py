"""Exception classes for pyalgoviz.

Malformed structure descriptions are never reported through these: they
are defaulted or skipped. Exceptions here signal caller mistakes.
"""


class AlgoVizError(Exception):
    """Base exception for pyalgoviz errors."""

    pass


class ValidationError(AlgoVizError):
    """Exception raised when input validation fails."""

    def __init__(self, field: str, value: object, expected: str) -> None:
        """Initialize validation error.

        Args:
            field: Field name that failed validation
            value: Invalid value
            expected: Expected type/description
        """
        self.field = field
        self.value = value
        self.expected = expected
        super().__init__(f"Validation failed for '{field}': expected {expected}, got {value!r}")


class SimulationError(AlgoVizError):
    """Exception raised when the simulation is driven out of order."""

    def __init__(self, reason: str) -> None:
        """Initialize simulation error.

        Args:
            reason: Reason for failure
        """
        self.reason = reason
        super().__init__(f"Simulation error: {reason}")


def validate_size(size) -> tuple[float, float]:
    """Validate a viewport size and return it as a (width, height) tuple.

    Raises:
        ValidationError: If the size is not two positive numbers
    """
    try:
        width, height = size
        width = float(width)
        height = float(height)
    except (TypeError, ValueError):
        raise ValidationError("size", size, "[width, height]") from None
    if width <= 0 or height <= 0:
        raise ValidationError("size", size, "positive width and height")
    return width, height
