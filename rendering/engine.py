"""
Charting engine boundary.

The editor depends on exactly three engine capabilities:

    draw / redraw into a host   -> PlotlyEngine.new_plot(), .react()
    delete traces by index      -> PlotlyEngine.delete_traces()
    resize-reflow a live host   -> PlotlyEngine.resize()

plus purge() to drop a host's internal state. Everything else in a trace,
layout or config dict is passed through to Plotly untouched.

Hosts are plain render targets (ChartHost) that live in a HostContainer,
the way a chart element lives in a page; EventTarget stands in for the
window that emits "resize" events.

The engine module itself is imported once per process: the first
load_engine() call starts the import on a loader thread and every caller
shares the same Future.
"""

from __future__ import annotations

import importlib
import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Optional

import config
from editing.errors import EngineError
from editing.logging import get_logger

logger = get_logger()


# ---------------------------------------------------------------------------
# Hosts and events
# ---------------------------------------------------------------------------

class HostContainer:
    """Ordered set of attached render hosts."""

    def __init__(self, name: str = "body"):
        self.name = name
        self.children: list[ChartHost] = []
        self._lock = threading.Lock()

    def append(self, host: "ChartHost") -> "ChartHost":
        with self._lock:
            if host.parent is not None and host.parent is not self:
                host.parent.remove(host)
            if host not in self.children:
                self.children.append(host)
            host.parent = self
        return host

    def remove(self, host: "ChartHost") -> None:
        with self._lock:
            if host in self.children:
                self.children.remove(host)
            if host.parent is self:
                host.parent = None

    def __len__(self) -> int:
        return len(self.children)


class ChartHost:
    """A render target: holds the engine's live figure for one chart."""

    def __init__(
        self,
        name: str = "",
        width: int = 0,
        height: int = 0,
        style: Optional[dict] = None,
    ):
        self.name = name
        self.width = width
        self.height = height
        self.style = dict(style or {})
        self.figure = None
        self.config: Optional[dict] = None
        self.parent: Optional[HostContainer] = None
        self.draw_count = 0

    @property
    def is_attached(self) -> bool:
        return self.parent is not None

    def remove(self) -> None:
        """Detach from the parent container (no-op when already detached)."""
        if self.parent is not None:
            self.parent.remove(self)

    def __repr__(self) -> str:
        return f"ChartHost({self.name!r}, attached={self.is_attached})"


class EventTarget:
    """Named-event listener registry (the window's resize source)."""

    def __init__(self):
        self._listeners: dict[str, list[Callable[[], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def add_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners[event])

    def dispatch(self, event: str) -> int:
        """Call every listener for *event*; returns how many were called."""
        with self._lock:
            callbacks = list(self._listeners[event])
        for callback in callbacks:
            callback()
        return len(callbacks)


# Process-wide defaults, analogous to the page body and the browser window
document_body = HostContainer("body")
main_window = EventTarget()


# ---------------------------------------------------------------------------
# Plotly adapter
# ---------------------------------------------------------------------------

class PlotlyEngine:
    """Adapter exposing Plotly figures through the draw/delete/resize contract.

    Args:
        module: The imported ``plotly.graph_objects`` module (or any module
            providing a compatible ``Figure`` class).
    """

    def __init__(self, module):
        self.module = module

    def _build_figure(self, data: Optional[list], layout: Optional[dict]):
        try:
            return self.module.Figure(data=list(data or []), layout=layout or {})
        except (ValueError, TypeError) as e:
            raise EngineError(f"Engine rejected the figure: {e}") from e

    def new_plot(self, host: ChartHost, data: list, layout: Optional[dict] = None,
                 config: Optional[dict] = None) -> ChartHost:
        """Draw a brand-new figure into *host*, replacing whatever it held."""
        host.figure = self._build_figure(data, layout)
        host.config = dict(config or {})
        host.draw_count += 1
        return host

    def react(self, host: ChartHost, data: list, layout: Optional[dict] = None,
              config: Optional[dict] = None) -> ChartHost:
        """Redraw *host*, updating its live figure in place when it has one."""
        if host.figure is None:
            return self.new_plot(host, data, layout, config)

        # Validate the whole figure before touching the live one
        candidate = self._build_figure(data, layout)
        figure = host.figure
        figure.data = ()
        figure.add_traces([trace.to_plotly_json() for trace in candidate.data])
        figure.layout = candidate.layout.to_plotly_json()
        host.config = dict(config or {})
        host.draw_count += 1
        return host

    def delete_traces(self, host: ChartHost, indices: Iterable[int]) -> ChartHost:
        """Remove traces by index from the live figure in *host*.

        Negative indices count from the end, as in plotly.js.
        """
        figure = host.figure
        if figure is None:
            raise EngineError("Cannot delete traces: nothing has been drawn in this host.")

        count = len(figure.data)
        drop = set()
        for index in indices:
            resolved = index + count if index < 0 else index
            if not 0 <= resolved < count:
                raise EngineError(f"Trace index {index} out of range for {count} traces.")
            drop.add(resolved)

        # Rebuild fig.data tuple without removed indices
        figure.data = tuple(trace for i, trace in enumerate(figure.data) if i not in drop)
        return host

    def resize(self, host: ChartHost) -> ChartHost:
        """Reflow the live figure to the host's current size."""
        figure = host.figure
        if figure is None:
            raise EngineError("Cannot resize: nothing has been drawn in this host.")
        if host.width > 0 and host.height > 0:
            figure.update_layout(width=host.width, height=host.height, autosize=False)
        else:
            figure.update_layout(autosize=True)
        return host

    def purge(self, host: ChartHost) -> None:
        """Drop the host's figure and config."""
        host.figure = None
        host.config = None

    def to_html(self, host: ChartHost) -> str:
        if host.figure is None:
            raise EngineError("Cannot export: nothing has been drawn in this host.")
        return host.figure.to_html(
            config=host.config or {},
            include_plotlyjs=True,
            full_html=True,
            default_height=host.style.get("height", "100%"),
        )


# ---------------------------------------------------------------------------
# Process-wide module loading
# ---------------------------------------------------------------------------

_engine_future: Optional[Future] = None
_engine_lock = threading.Lock()
_loader_pool: Optional[ThreadPoolExecutor] = None


def _import_engine(module_name: str) -> PlotlyEngine:
    module = importlib.import_module(module_name)
    logger.debug(f"[Engine] Loaded charting module '{module_name}'")
    return PlotlyEngine(module)


def load_engine() -> Future:
    """Return the shared Future resolving to the process's PlotlyEngine.

    The module named by ``config.ENGINE_MODULE`` is imported at most once;
    later callers receive the same Future whether or not it has resolved.
    """
    global _engine_future, _loader_pool
    with _engine_lock:
        if _engine_future is None:
            if _loader_pool is None:
                _loader_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="engine-loader")
            _engine_future = _loader_pool.submit(_import_engine, config.ENGINE_MODULE)
        return _engine_future


def _reset_engine_cache() -> None:
    """Forget the shared engine Future (for testing only)."""
    global _engine_future
    with _engine_lock:
        _engine_future = None
