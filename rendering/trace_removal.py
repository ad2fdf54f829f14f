"""
Trace removal through a disposable engine instance.

The engine's delete operation is bound to a live, drawn host, while the
editor works on plain payload dicts. remove_trace() bridges the two: it
draws a cloned copy of the payload into a throwaway off-screen host, lets
the engine delete the trace there, then returns the payload's own trace
list minus that index. The host never outlives the call and the caller's
payload is never handed to the engine.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Optional

from plotly.utils import PlotlyJSONEncoder

import config
from editing.errors import RangeError
from editing.logging import get_logger, log_error

from .engine import ChartHost, HostContainer, PlotlyEngine, document_body

logger = get_logger()


def create_offscreen_host(container: HostContainer) -> ChartHost:
    """A zero-size, pointer-events-disabled host parked outside the visible area."""
    offset = config.OFFSCREEN_OFFSET
    host = ChartHost(
        name="offscreen",
        width=0,
        height=0,
        style={
            "position": "fixed",
            "left": f"{offset}px",
            "top": f"{offset}px",
            "width": "0px",
            "height": "0px",
            "pointerEvents": "none",
        },
    )
    return container.append(host)


def clone_for_engine(value: Any) -> Any:
    """Deep copy, falling back to a JSON round-trip, then to the value itself."""
    try:
        return copy.deepcopy(value)
    except (TypeError, copy.Error, RecursionError):
        pass
    try:
        return json.loads(json.dumps(value, cls=PlotlyJSONEncoder))
    except (TypeError, ValueError):
        return value


def remove_trace(
    engine: PlotlyEngine,
    payload: dict,
    trace_index: int,
    container: Optional[HostContainer] = None,
) -> list[dict]:
    """Delete trace *trace_index* via the engine and return the remaining traces.

    Raises:
        RangeError: *trace_index* is not an integer in ``[0, len(data))``;
            raised before any engine call.
        EngineError: the engine rejected the draw or the delete.
    """
    data = payload.get("data") or []
    if isinstance(trace_index, bool) or not isinstance(trace_index, int) \
            or not 0 <= trace_index < len(data):
        raise RangeError(f"Trace index {trace_index!r} out of range for {len(data)} traces.")

    host = create_offscreen_host(container if container is not None else document_body)
    try:
        engine.new_plot(
            host,
            [clone_for_engine(trace) for trace in data],
            clone_for_engine(payload.get("layout")),
            clone_for_engine(payload.get("config")),
        )
        engine.delete_traces(host, [trace_index])
        logger.debug(f"[TraceRemoval] Engine deleted trace {trace_index} of {len(data)}")
        return [trace for i, trace in enumerate(data) if i != trace_index]
    finally:
        try:
            engine.purge(host)
        except Exception as e:
            log_error("[TraceRemoval] Failed to purge disposable host", exc=e)
        host.remove()
