"""
Location-level edit/undo engine.

Graph collections are treated as immutable values: an effective edit
returns a new collection (only the target graph is replaced) and pushes a
deep clone of the whole pre-edit collection onto the undo stack. An edit
whose canonical signature matches the graph's current one is a no-op and
returns the inputs themselves, so callers can compare by identity.
"""

from __future__ import annotations

from typing import NamedTuple

from .logging import get_logger
from .payload import clone_graphs, clone_json, create_from_graph, payload_signature

logger = get_logger()


class EditResult(NamedTuple):
    next_graphs: list[dict]
    next_undo_stack: list[list[dict]]
    changed: bool


class UndoResult(NamedTuple):
    next_graphs: list[dict]
    next_undo_stack: list[list[dict]]
    undone: bool


def _find_graph(graphs: list[dict], graph_id: int):
    return next((graph for graph in graphs if graph.get("id") == graph_id), None)


def apply_edit(
    graphs: list[dict],
    undo_stack: list[list[dict]],
    graph_id: int,
    payload: dict,
) -> EditResult:
    """Commit *payload* to graph *graph_id*.

    Returns:
        EditResult. ``changed`` is False (and the inputs are returned
        untouched) when the graph is missing or the payload is
        structurally identical to the graph's current fields.
    """
    current = _find_graph(graphs, graph_id)
    if current is None:
        logger.debug(f"[Undo] Graph {graph_id} not found, edit ignored")
        return EditResult(graphs, undo_stack, False)

    if payload_signature(create_from_graph(current)) == payload_signature(payload):
        logger.debug(f"[Undo] Graph {graph_id} unchanged, no snapshot taken")
        return EditResult(graphs, undo_stack, False)

    replacement = {
        "data": clone_json(payload.get("data") or []),
        "layout": clone_json(payload.get("layout")),
        "config": clone_json(payload.get("config")),
        "style": clone_json(payload.get("style")),
    }
    next_graphs = [
        {**graph, **replacement} if graph is current else graph
        for graph in graphs
    ]
    next_undo_stack = [*undo_stack, clone_graphs(graphs)]
    logger.debug(f"[Undo] Applied edit to graph {graph_id} (undo depth {len(next_undo_stack)})")
    return EditResult(next_graphs, next_undo_stack, True)


def undo_edit(graphs: list[dict], undo_stack: list[list[dict]]) -> UndoResult:
    """Restore the most recent snapshot, if any."""
    if not undo_stack:
        return UndoResult(graphs, undo_stack, False)

    previous = undo_stack[-1]
    logger.debug(f"[Undo] Restored snapshot (undo depth {len(undo_stack) - 1})")
    return UndoResult(clone_graphs(previous), undo_stack[:-1], True)


def build_updates(graphs: list[dict]) -> list[dict]:
    """Update records for the persistence collaborator, one per graph."""
    return [
        {"graphId": graph["id"], **create_from_graph(graph)}
        for graph in graphs
    ]
