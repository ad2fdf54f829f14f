"""Graph payload codec, trace editors and the location-level undo engine."""

from .errors import EngineError, GraphEditError, RangeError, ValidationError
from .payload import (
    create_from_graph,
    parse_location_graph,
    parse_location_graph_list,
    parse_payload,
    payload_signature,
    serialize_payload,
)
from .trace_editor import coerce_input_value, get_trace_type, set_trace_color
from .undo import EditResult, UndoResult, apply_edit, build_updates, undo_edit

__all__ = [
    "EngineError",
    "GraphEditError",
    "RangeError",
    "ValidationError",
    "create_from_graph",
    "parse_location_graph",
    "parse_location_graph_list",
    "parse_payload",
    "payload_signature",
    "serialize_payload",
    "coerce_input_value",
    "get_trace_type",
    "set_trace_color",
    "EditResult",
    "UndoResult",
    "apply_edit",
    "build_updates",
    "undo_edit",
]
