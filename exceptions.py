"""
Exception types for HF Band Simulation.
"""


class PropagationError(Exception):
    """Base class for propagation engine errors."""


class InvalidLocator(PropagationError, ValueError):
    """Raised when a Maidenhead grid locator is malformed."""

    def __init__(self, grid, reason: str = "malformed locator"):
        self.grid = grid
        self.reason = reason
        super().__init__(f"Invalid grid locator {grid!r}: {reason}")


class FeedUnavailable(PropagationError):
    """Raised when an external feed could not be fetched or parsed."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source} feed unavailable: {message}")


class ParseError(PropagationError):
    """Raised when a feed payload does not contain usable data."""


class StaleCache(PropagationError):
    """Signals that a computed value was invalidated before it could be cached."""
