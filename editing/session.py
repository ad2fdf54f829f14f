"""
Editor surfaces for a location dashboard.

LocationGraphEditor owns the working graph collection and undo stack of
the location currently open; GraphEditorSession holds the state of the
dialog used to edit one graph's traces before the result is applied back
to the location.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Optional

from rendering.engine import PlotlyEngine, load_engine
from rendering.trace_removal import remove_trace

from .errors import ValidationError
from .logging import get_logger, log_error, set_session_id
from .payload import (
    clone_graphs,
    create_from_graph,
    parse_location_graph_list,
    parse_payload,
    serialize_payload,
)
from .trace_editor import (
    ROW_EDITORS,
    TRACE_COLOR_OPTIONS,
    build_trace_label,
    get_trace_array,
    get_trace_color,
    get_trace_type,
    get_y_axis_range,
    is_record,
    set_trace_color,
    update_y_axis_range,
)
from .undo import apply_edit, build_updates, undo_edit

logger = get_logger()

_TRACE_COLOR_VALUES = frozenset(TRACE_COLOR_OPTIONS.values())


def _empty_payload() -> dict:
    return {"data": [], "layout": None, "config": None, "style": None}


class LocationGraphEditor:
    """Working graphs and undo history for one location at a time."""

    def __init__(self):
        self.location_id: Optional[int] = None
        self.graphs: list[dict] = []
        self.undo_stack: list[list[dict]] = []

    def load(self, location_id: int, graphs: list[dict]) -> None:
        """Open *location_id* with *graphs*; the undo history starts empty."""
        self.location_id = location_id
        self.graphs = clone_graphs(graphs)
        self.undo_stack = []
        set_session_id(str(location_id))
        logger.debug(f"[Location] Loaded {len(self.graphs)} graphs for location {location_id}")

    def load_response(self, location_id: int, response: Any) -> None:
        """Load a raw graph-list response (flat or legacy nested graph shapes)."""
        self.load(location_id, parse_location_graph_list(response))

    @property
    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def graph_by_id(self, graph_id: int) -> Optional[dict]:
        return next((g for g in self.graphs if g.get("id") == graph_id), None)

    def section_graphs(self, graph_ids: list[int]) -> list[dict]:
        """Graphs for a dashboard section, in the section's order, skipping unknown ids."""
        by_id = {graph["id"]: graph for graph in self.graphs}
        return [by_id[graph_id] for graph_id in graph_ids if graph_id in by_id]

    def missing_graph_ids(self, graph_ids: list[int]) -> list[int]:
        known = {graph["id"] for graph in self.graphs}
        return [graph_id for graph_id in graph_ids if graph_id not in known]

    def apply(self, graph_id: int, payload: dict) -> bool:
        """Commit an edited payload. Returns True if anything changed."""
        result = apply_edit(self.graphs, self.undo_stack, graph_id, payload)
        self.graphs, self.undo_stack = result.next_graphs, result.next_undo_stack
        return result.changed

    def undo(self) -> bool:
        result = undo_edit(self.graphs, self.undo_stack)
        self.graphs, self.undo_stack = result.next_graphs, result.next_undo_stack
        return result.undone

    def save(self, persist: Callable[[list[dict]], Any]) -> list[dict]:
        """Send every graph's current fields to the persistence collaborator.

        Args:
            persist: Called with the list of update records.

        Returns:
            The update records that were sent.
        """
        updates = build_updates(self.graphs)
        try:
            persist(updates)
        except Exception as e:
            log_error(f"[Location] Failed to save graphs for location {self.location_id}", exc=e,
                      context={"graph_count": len(updates)})
            raise
        logger.info(f"[Location] Saved {len(updates)} graphs for location {self.location_id}")
        return updates


class GraphEditorSession:
    """Trace-editing state for a single graph.

    Args:
        engine_loader: Returns a Future resolving to the PlotlyEngine used
            for trace removal (defaults to the process-wide loader).
    """

    def __init__(self, engine_loader: Callable[[], Future] = load_engine):
        self.graph: Optional[dict] = None
        self.payload: dict = _empty_payload()
        self.operation_error = ""
        self.is_removing_trace = False
        self._selected_index = 0
        self._engine_loader = engine_loader

    def open(self, graph: dict) -> None:
        self.graph = graph
        self.payload = create_from_graph(graph)
        self._selected_index = 0
        self.operation_error = ""

    # ---- Selection ----

    def _clamp_selection(self) -> None:
        count = len(self.payload["data"])
        if count == 0:
            self._selected_index = 0
        elif self._selected_index > count - 1:
            self._selected_index = count - 1

    @property
    def selected_trace_index(self) -> int:
        return self._selected_index

    def select_trace(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"Trace index must be a non-negative integer, got {index!r}")
        self._selected_index = index
        self._clamp_selection()

    @property
    def trace_options(self) -> list[dict]:
        return [
            {"index": i, "label": build_trace_label(trace if is_record(trace) else {}, i)}
            for i, trace in enumerate(self.payload["data"])
        ]

    @property
    def selected_trace(self) -> Optional[dict]:
        data = self.payload["data"]
        if 0 <= self._selected_index < len(data) and is_record(data[self._selected_index]):
            return data[self._selected_index]
        return None

    @property
    def selected_trace_type(self) -> Optional[str]:
        trace = self.selected_trace
        return get_trace_type(trace) if trace else None

    @property
    def selected_trace_color(self) -> str:
        """The selected trace's color if it is a palette swatch, else ""."""
        trace = self.selected_trace
        color = get_trace_color(trace) if trace else None
        return color if color in _TRACE_COLOR_VALUES else ""

    def _row_count(self, *fields: str) -> int:
        trace = self.selected_trace
        if not trace:
            return 0
        return max(len(get_trace_array(trace, field)) for field in fields)

    @property
    def pie_row_indexes(self) -> list[int]:
        return list(range(self._row_count("labels", "values")))

    @property
    def cartesian_row_indexes(self) -> list[int]:
        return list(range(self._row_count("x", "y")))

    @property
    def is_busy(self) -> bool:
        return self.is_removing_trace

    # ---- Trace mutations ----

    def update_selected_trace(self, mutator: Callable[[dict], dict]) -> bool:
        index = self._selected_index
        data = self.payload["data"]
        if not (0 <= index < len(data)) or not is_record(data[index]):
            return False
        next_data = list(data)
        next_data[index] = mutator(data[index])
        self.payload = {**self.payload, "data": next_data}
        self.operation_error = ""
        return True

    def _row_editor(self, operation: str) -> Optional[Callable]:
        trace_type = self.selected_trace_type
        if trace_type is None:
            return None
        return ROW_EDITORS[trace_type].get(operation)

    def apply_color(self, color_hex: str) -> bool:
        trace_type = self.selected_trace_type
        if trace_type is None:
            return False
        return self.update_selected_trace(lambda trace: set_trace_color(trace, trace_type, color_hex))

    def add_row(self) -> bool:
        editor = self._row_editor("add")
        if editor is None:
            return False
        return self.update_selected_trace(editor)

    def remove_row(self, row_index: int) -> bool:
        editor = self._row_editor("remove")
        if editor is None:
            return False
        return self.update_selected_trace(lambda trace: editor(trace, row_index))

    def update_cell(self, field: str, row_index: int, raw_value: str) -> bool:
        """Write typed text into a cell: ``labels``/``values`` (pie) or ``x``/``y``."""
        editor = self._row_editor(field)
        if editor is None or field in ("add", "remove"):
            return False
        return self.update_selected_trace(lambda trace: editor(trace, row_index, raw_value))

    def get_y_axis_range(self) -> list:
        trace = self.selected_trace
        return get_y_axis_range(self.payload["layout"], trace) if trace else [None, None]

    def update_y_axis_range(self, boundary_index: int, raw_value: str) -> bool:
        trace = self.selected_trace
        if trace is None:
            return False
        layout = update_y_axis_range(self.payload["layout"], trace, boundary_index, raw_value)
        self.payload = {**self.payload, "layout": layout}
        self.operation_error = ""
        return True

    def remove_selected_trace(self, engine: Optional[PlotlyEngine] = None) -> bool:
        """Remove the selected trace through a disposable engine instance.

        On failure the payload is untouched and the message is kept in
        ``operation_error``.
        """
        if self.is_busy:
            return False
        index = self._selected_index
        if not 0 <= index < len(self.payload["data"]):
            return False

        self.is_removing_trace = True
        self.operation_error = ""
        try:
            if engine is None:
                engine = self._engine_loader().result()
            next_data = remove_trace(engine, self.payload, index)
        except Exception as e:
            self.operation_error = str(e) or "Unable to remove trace."
            log_error("[Editor] Trace removal failed", exc=e, context={"trace_index": index})
            return False
        finally:
            self.is_removing_trace = False

        self.payload = {**self.payload, "data": next_data}
        self._clamp_selection()
        return True

    # ---- Raw JSON ----

    def to_json(self) -> str:
        return serialize_payload(self.payload)

    def load_json(self, raw: str) -> bool:
        try:
            self.payload = parse_payload(raw)
        except ValidationError as e:
            self.operation_error = str(e)
            return False
        self.operation_error = ""
        self._clamp_selection()
        return True

    # ---- Commit ----

    def apply(self, on_apply: Callable[[int, dict], Any]) -> bool:
        """Hand the edited payload to *on_apply* (usually LocationGraphEditor.apply)."""
        if self.is_busy or self.graph is None:
            return False
        try:
            on_apply(self.graph["id"], self.payload)
        except Exception as e:
            self.operation_error = str(e) or "Unable to apply graph edits."
            log_error("[Editor] Applying graph edits failed", exc=e,
                      context={"graph_id": self.graph.get("id")})
            return False
        self.operation_error = ""
        return True
