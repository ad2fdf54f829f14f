"""Error taxonomy for graph editing and rendering."""

from typing import Optional


class GraphEditError(Exception):
    """Base class for every error raised by the editor core."""


class ValidationError(GraphEditError, ValueError):
    """Malformed or ill-typed graph payload. Never applied to working state."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RangeError(GraphEditError, IndexError):
    """Trace index outside the payload's data list."""


class EngineError(GraphEditError, RuntimeError):
    """The charting engine rejected a draw, delete or reflow call."""
