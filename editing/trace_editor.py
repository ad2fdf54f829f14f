"""
Per-trace-type row, color and axis-range editors.

Every function here is pure: it takes a trace (or layout) dict and returns
a new dict, never mutating its input. Traces are dispatched on their
``type`` field:

    pie                -> "pie"      (labels/values + per-slice marker.colors)
    bar                -> "bar"      (x/y arrays, marker.color)
    scatter, scattergl -> "scatter"  (x/y arrays, marker.color + line.color)

Any other type is unsupported: it is shown read-only and preserved as-is.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Optional

import numpy as np

TRACE_EDITOR_BY_TYPE = {
    "pie": "pie",
    "bar": "bar",
    "scatter": "scatter",
    "scattergl": "scatter",
}

TRACE_COLOR_OPTIONS = {
    "Ocean Blue": "#2563eb",
    "Forest Green": "#16a34a",
    "Sunset Orange": "#ea580c",
    "Crimson Red": "#dc2626",
    "Deep Violet": "#7c3aed",
    "Slate Gray": "#475569",
}

_DEFAULT_SWATCH = next(iter(TRACE_COLOR_OPTIONS.values()))

# "-", "+", ".", "-.", "+." and "12." are numbers still being typed
_PARTIAL_NUMBER_TOKENS = frozenset({"-", "+", ".", "-.", "+."})
_TRAILING_DOT_RE = re.compile(r"[+-]?\d+\.")
_INTEGER_RE = re.compile(r"[+-]?\d+")


def is_record(value: Any) -> bool:
    return isinstance(value, dict)


def is_number(value: Any) -> bool:
    """True for ints, floats and numpy numeric scalars (never for bools)."""
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.number))


def _is_partial_number(text: str) -> bool:
    return text in _PARTIAL_NUMBER_TOKENS or _TRAILING_DOT_RE.fullmatch(text) is not None


def _parse_number(text: str):
    """Parse *text* as a finite number, returning None when it is not one."""
    normalized = text.strip()
    if not normalized or "_" in normalized:
        return None
    try:
        value = float(normalized)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    if _INTEGER_RE.fullmatch(normalized):
        return int(normalized)
    return value


def to_input_value(value: Any) -> str:
    """Text shown in an input box for a cell value."""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, str) or is_number(value):
        return str(value)
    return ""


def coerce_input_value(raw_value: str, previous_value: Any, prefer_numeric: bool) -> Any:
    """Convert typed text into a cell value, guided by the value it replaces.

    Numbers stay numbers, except that clearing the box yields ``""`` and
    half-typed numbers ("-", ".", "3.") are kept verbatim so the input
    does not fight the user mid-keystroke. Booleans compare against
    "true". With *prefer_numeric*, untyped cells become numbers when the
    text parses as one.
    """
    normalized = raw_value.strip()

    if is_number(previous_value):
        if not normalized:
            return ""
        if _is_partial_number(normalized):
            return raw_value
        numeric = _parse_number(raw_value)
        return numeric if numeric is not None else raw_value

    if isinstance(previous_value, (bool, np.bool_)):
        return raw_value.lower() == "true"

    if prefer_numeric and normalized and not _is_partial_number(normalized):
        numeric = _parse_number(raw_value)
        if numeric is not None:
            return numeric

    return raw_value


def get_trace_array(trace: dict, field: str) -> list:
    """Return a fresh list copy of an array-valued trace field."""
    value = trace.get(field)
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def get_trace_type(trace: dict) -> Optional[str]:
    """Resolve the editor variant for *trace*, or None when unsupported."""
    type_value = trace.get("type")
    if not isinstance(type_value, str):
        return None
    return TRACE_EDITOR_BY_TYPE.get(type_value.lower())


def get_trace_color(trace: dict) -> Optional[str]:
    marker = trace.get("marker") if is_record(trace.get("marker")) else None
    if marker:
        if isinstance(marker.get("color"), str):
            return marker["color"]
        for entry in get_trace_array(marker, "colors"):
            if isinstance(entry, str):
                return entry

    line = trace.get("line") if is_record(trace.get("line")) else None
    if line and isinstance(line.get("color"), str):
        return line["color"]

    return None


def build_trace_label(trace: dict, index: int) -> str:
    """Human label for a trace picker: ``"1. Revenue (bar)"`` or ``"1. bar"``."""
    name = trace.get("name").strip() if isinstance(trace.get("name"), str) else ""
    trace_type = trace.get("type") if isinstance(trace.get("type"), str) else "trace"
    if name:
        return f"{index + 1}. {name} ({trace_type})"
    return f"{index + 1}. {trace_type}"


def _write_at(values: list, index: int, value: Any) -> None:
    if index < 0:
        raise IndexError(f"Row index must be >= 0, got {index}")
    if index >= len(values):
        values.extend([None] * (index + 1 - len(values)))
    values[index] = value


def _read_at(values: list, index: int) -> Any:
    return values[index] if 0 <= index < len(values) else None


def _remove_at(values: list, index: int) -> None:
    if 0 <= index < len(values):
        del values[index]


# ---------------------------------------------------------------------------
# Pie
# ---------------------------------------------------------------------------

def _pie_fallback_color(marker: dict, existing_colors: list) -> str:
    if isinstance(marker.get("color"), str):
        return marker["color"]
    for entry in existing_colors:
        if isinstance(entry, str):
            return entry
    return _DEFAULT_SWATCH


def sync_pie_marker_colors(trace: dict, preferred_color: Optional[str] = None) -> dict:
    """Re-derive ``marker.colors`` so it has one swatch per slice.

    The array length is ``max(len(labels), len(values), 1)``. Existing
    per-slice colors are kept by index; new slices get the fallback color
    (``marker.color``, else the first existing swatch, else the first
    palette swatch), which is also written back to ``marker.color``.

    With *preferred_color*, the fallback changes to that color and every
    slice still holding the old fallback is repainted. Slices with their
    own distinct color keep it.
    """
    marker = dict(trace["marker"]) if is_record(trace.get("marker")) else {}
    color_count = max(
        len(get_trace_array(trace, "labels")),
        len(get_trace_array(trace, "values")),
        1,
    )
    existing_colors = get_trace_array(marker, "colors")
    previous_fallback = _pie_fallback_color(marker, existing_colors)
    fallback = preferred_color or previous_fallback

    colors = []
    for index in range(color_count):
        existing = _read_at(existing_colors, index)
        if not isinstance(existing, str) or existing == previous_fallback:
            colors.append(fallback)
        else:
            colors.append(existing)

    marker["color"] = fallback
    marker["colors"] = colors
    return {**trace, "marker": marker}


def add_pie_row(trace: dict) -> dict:
    labels = get_trace_array(trace, "labels")
    values = get_trace_array(trace, "values")
    labels.append(f"Slice {len(labels) + 1}")
    values.append(0)
    return sync_pie_marker_colors({**trace, "labels": labels, "values": values})


def update_pie_label(trace: dict, row_index: int, raw_value: str) -> dict:
    labels = get_trace_array(trace, "labels")
    _write_at(labels, row_index, raw_value)
    return sync_pie_marker_colors({**trace, "labels": labels})


def update_pie_value(trace: dict, row_index: int, raw_value: str) -> dict:
    values = get_trace_array(trace, "values")
    _write_at(values, row_index, coerce_input_value(raw_value, _read_at(values, row_index), True))
    return sync_pie_marker_colors({**trace, "values": values})


def remove_pie_row(trace: dict, row_index: int) -> dict:
    labels = get_trace_array(trace, "labels")
    values = get_trace_array(trace, "values")
    _remove_at(labels, row_index)
    _remove_at(values, row_index)
    return sync_pie_marker_colors({**trace, "labels": labels, "values": values})


# ---------------------------------------------------------------------------
# Cartesian (bar / scatter)
# ---------------------------------------------------------------------------

def _first_present(values: list) -> Any:
    return next((value for value in values if value is not None), None)


def add_cartesian_row(trace: dict) -> dict:
    """Append one x/y row.

    x continues the 1-based position index (categories included), y
    starts at 0. A column whose entries are neither numbers nor strings
    (x) or not numbers (y) receives an empty string instead.
    """
    x_values = get_trace_array(trace, "x")
    y_values = get_trace_array(trace, "y")

    first_x = _first_present(x_values)
    if first_x is None or is_number(first_x) or isinstance(first_x, str):
        x_values.append(len(x_values) + 1)
    else:
        x_values.append("")

    first_y = _first_present(y_values)
    y_values.append(0 if first_y is None or is_number(first_y) else "")

    return {**trace, "x": x_values, "y": y_values}


def update_cartesian_x(trace: dict, row_index: int, raw_value: str) -> dict:
    x_values = get_trace_array(trace, "x")
    _write_at(x_values, row_index, coerce_input_value(raw_value, _read_at(x_values, row_index), False))
    return {**trace, "x": x_values}


def update_cartesian_y(trace: dict, row_index: int, raw_value: str) -> dict:
    y_values = get_trace_array(trace, "y")
    _write_at(y_values, row_index, coerce_input_value(raw_value, _read_at(y_values, row_index), True))
    return {**trace, "y": y_values}


def remove_cartesian_row(trace: dict, row_index: int) -> dict:
    # x and y are spliced independently; their lengths may differ
    x_values = get_trace_array(trace, "x")
    y_values = get_trace_array(trace, "y")
    _remove_at(x_values, row_index)
    _remove_at(y_values, row_index)
    return {**trace, "x": x_values, "y": y_values}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

ROW_EDITORS: dict[str, dict[str, Callable]] = {
    "pie": {
        "add": add_pie_row,
        "remove": remove_pie_row,
        "labels": update_pie_label,
        "values": update_pie_value,
    },
    "bar": {
        "add": add_cartesian_row,
        "remove": remove_cartesian_row,
        "x": update_cartesian_x,
        "y": update_cartesian_y,
    },
}
ROW_EDITORS["scatter"] = ROW_EDITORS["bar"]


def set_trace_color(trace: dict, trace_type: str, color_hex: str) -> dict:
    """Apply a color to a trace according to its editor variant."""
    if trace_type == "pie":
        return sync_pie_marker_colors(trace, color_hex)

    marker = dict(trace["marker"]) if is_record(trace.get("marker")) else {}
    marker["color"] = color_hex
    next_trace = {**trace, "marker": marker}

    if trace_type == "scatter":
        # Markers and the connecting line must match
        line = dict(trace["line"]) if is_record(trace.get("line")) else {}
        line["color"] = color_hex
        next_trace["line"] = line

    return next_trace


# ---------------------------------------------------------------------------
# Y-axis range
# ---------------------------------------------------------------------------

def resolve_y_axis_key(trace: dict) -> str:
    """Map a trace's ``yaxis`` reference to its layout key: 'y2' -> 'yaxis2'."""
    ref = trace.get("yaxis")
    if not isinstance(ref, str) or not ref.startswith("y"):
        return "yaxis"
    suffix = ref[1:]
    return f"yaxis{suffix}" if suffix else "yaxis"


def get_y_axis_range(layout: Optional[dict], trace: dict) -> list:
    """Return ``[min, max]`` for the trace's y-axis, ``[None, None]`` if unset."""
    if not is_record(layout):
        return [None, None]
    axis = layout.get(resolve_y_axis_key(trace))
    if not is_record(axis):
        return [None, None]
    bounds = get_trace_array(axis, "range")
    return [_read_at(bounds, 0), _read_at(bounds, 1)]


def update_y_axis_range(
    layout: Optional[dict],
    trace: dict,
    boundary_index: int,
    raw_value: str,
) -> dict:
    """Write one bound of the trace's y-axis range and return a new layout.

    *boundary_index* 0 writes the minimum, 1 the maximum. An empty value
    clears that bound; once both bounds are cleared the ``range`` key is
    dropped (and the axis too, if nothing else is left on it).
    """
    if boundary_index not in (0, 1):
        raise IndexError(f"Range boundary must be 0 or 1, got {boundary_index}")

    next_layout = dict(layout) if is_record(layout) else {}
    axis_key = resolve_y_axis_key(trace)
    axis = dict(next_layout[axis_key]) if is_record(next_layout.get(axis_key)) else {}

    bounds = get_y_axis_range(next_layout, trace)
    value = coerce_input_value(raw_value, bounds[boundary_index], True)
    bounds[boundary_index] = None if value == "" else value

    if bounds[0] is None and bounds[1] is None:
        axis.pop("range", None)
    else:
        axis["range"] = bounds

    if axis:
        next_layout[axis_key] = axis
    else:
        next_layout.pop(axis_key, None)
    return next_layout
