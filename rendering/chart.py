"""
Per-chart render reconciler.

ChartRenderer keeps one ChartHost in sync with a graph's data, layout,
config and the active theme:

    idle -> loading (engine) -> ready <-> rendering ... -> disposed

- mount() starts the shared engine load and subscribes to theme changes.
- Every change (update(), theme switch, engine becoming available)
  queues a redraw on the chart's own single-worker executor, so at most
  one draw runs at a time, draws happen in submission order, and a failed
  draw is logged without blocking the ones after it.
- After the first successful draw a resize listener is attached (once);
  each reflow it triggers runs on the same queue, after pending draws.
- dispose() detaches the resize listener and theme subscription and flips
  a flag that turns any in-flight or queued work into a no-op.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional

from editing.errors import EngineError
from editing.logging import get_logger, log_error

from .engine import ChartHost, EventTarget, PlotlyEngine, load_engine, main_window
from .theme import (
    build_plotly_config,
    build_plotly_layout,
    resolve_graph_height,
    resolve_themed_graph_layout,
)
from .theme_preference import ThemePreferenceStore, get_theme_store

logger = get_logger()

_PROP_NAMES = ("data", "layout", "config", "style")


def render_chart(engine: PlotlyEngine, host: ChartHost, data: list,
                 layout: Optional[dict] = None, config: Optional[dict] = None,
                 theme: str = "light") -> ChartHost:
    """Draw *data* into *host* with the chart defaults merged in."""
    return engine.react(host, data, build_plotly_layout(layout, theme), build_plotly_config(config))


def attach_resize_listener(event_target: EventTarget, engine: PlotlyEngine, host: ChartHost,
                           submit: Optional[Callable[[Callable[[], None]], None]] = None,
                           ) -> Callable[[], None]:
    """Reflow *host* on every "resize" event; returns the detach function.

    With *submit*, each reflow is handed to it instead of running on the
    thread that dispatched the event.
    """

    def reflow() -> None:
        try:
            engine.resize(host)
        except EngineError as e:
            log_error(f"[Chart] Failed to reflow '{host.name}'", exc=e)

    def on_resize() -> None:
        if submit is None:
            reflow()
        else:
            submit(reflow)

    event_target.add_listener("resize", on_resize)
    return lambda: event_target.remove_listener("resize", on_resize)


def _completed(result=None) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


class ChartRenderer:
    """Reconciles one chart host with its graph props and the active theme.

    Args:
        name: Graph name, used in logs.
        host: The render target this chart owns.
        data, layout, config, style: Initial graph props.
        theme_store: Source of the active theme (defaults to the global store).
        window: Source of "resize" events (defaults to the process window).
        engine_loader: Returns a Future resolving to a PlotlyEngine
            (defaults to the process-wide memoized loader).
    """

    def __init__(
        self,
        name: str,
        host: ChartHost,
        data: Optional[list] = None,
        layout: Optional[dict] = None,
        config: Optional[dict] = None,
        style: Optional[dict] = None,
        theme_store: Optional[ThemePreferenceStore] = None,
        window: Optional[EventTarget] = None,
        engine_loader: Callable[[], Future] = load_engine,
    ):
        self.name = name
        self.host = host
        self._props = {"data": list(data or []), "layout": layout, "config": config, "style": style}
        self._theme_store = theme_store or get_theme_store()
        self._window = window or main_window
        self._engine_loader = engine_loader

        self._lock = threading.RLock()
        self._queue = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chart-render")
        self._tail: Future = _completed(False)
        self._engine: Optional[PlotlyEngine] = None
        self._theme = self._theme_store.get()
        self._state = "idle"
        self._disposed = False
        self._cleanup_resize: Optional[Callable[[], None]] = None
        self._unsubscribe_theme: Optional[Callable[[], None]] = None
        self.render_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def theme(self) -> str:
        with self._lock:
            return self._theme

    def mount(self) -> None:
        """Start loading the engine and observing the theme."""
        with self._lock:
            if self._state != "idle":
                return
            self._state = "loading"
            self._theme = self._theme_store.get()
            self._unsubscribe_theme = self._theme_store.subscribe(self._on_theme_change)

        future = self._engine_loader()
        future.add_done_callback(self._on_engine_loaded)

    def dispose(self) -> None:
        """Tear down listeners and neutralize pending work. Idempotent."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._state = "disposed"
            cleanup_resize, self._cleanup_resize = self._cleanup_resize, None
            unsubscribe, self._unsubscribe_theme = self._unsubscribe_theme, None
            self._queue.shutdown(wait=False)

        if cleanup_resize is not None:
            cleanup_resize()
        if unsubscribe is not None:
            unsubscribe()
        logger.debug(f"[Chart] Disposed '{self.name}'")

    # ------------------------------------------------------------------
    # Reactive inputs
    # ------------------------------------------------------------------

    def update(self, **props) -> Future:
        """Replace any of data/layout/config/style and queue a redraw."""
        unknown = set(props) - set(_PROP_NAMES)
        if unknown:
            raise TypeError(f"Unknown chart props: {', '.join(sorted(unknown))}")
        with self._lock:
            self._props.update(props)
        return self._schedule_render()

    def _on_theme_change(self, theme: str) -> None:
        with self._lock:
            self._theme = theme
        self._schedule_render()

    def _on_engine_loaded(self, future: Future) -> None:
        if self._disposed:
            return
        try:
            engine = future.result()
        except Exception as e:
            log_error(f"[Chart] Failed to load charting engine for '{self.name}'", exc=e)
            return
        with self._lock:
            if self._disposed:
                return
            self._engine = engine
            self._state = "ready"
        self._schedule_render()

    # ------------------------------------------------------------------
    # Render queue
    # ------------------------------------------------------------------

    def _schedule_render(self) -> Future:
        with self._lock:
            if self._disposed or self._engine is None:
                return self._tail
            theme = self._theme
            self.host.style["height"] = resolve_graph_height(self._props["style"])
            layout = resolve_themed_graph_layout(self._props["layout"], self._props["style"], theme)
            self._tail = self._queue.submit(
                self._render_task, self._engine, self._props["data"], layout,
                self._props["config"], theme,
            )
            logger.debug(f"[Chart] Queued render for '{self.name}' (theme={theme})")
            return self._tail

    def _render_task(self, engine: PlotlyEngine, data: list, layout: dict,
                     config: Optional[dict], theme: str) -> bool:
        with self._lock:
            if self._disposed:
                return False
            self._state = "rendering"

        try:
            render_chart(engine, self.host, data, layout, config, theme)
        except Exception as e:
            log_error(f"[Chart] Failed to render graph '{self.name}'", exc=e,
                      context={"theme": theme, "traces": len(data)})
            return False
        finally:
            with self._lock:
                if not self._disposed:
                    self._state = "ready"

        with self._lock:
            if self._disposed:
                return False
            self.render_count += 1
            if self._cleanup_resize is None:
                self._cleanup_resize = attach_resize_listener(
                    self._window, engine, self.host, submit=self._submit_reflow,
                )
                logger.debug(f"[Chart] Attached resize listener for '{self.name}'")
        return True

    def _submit_reflow(self, reflow: Callable[[], None]) -> None:
        # Reflows share the render queue so they never overlap a draw
        with self._lock:
            if self._disposed:
                return
            self._tail = self._queue.submit(self._reflow_task, reflow)

    def _reflow_task(self, reflow: Callable[[], None]) -> None:
        if self._disposed:
            return
        reflow()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued render and reflow has finished.

        Returns:
            True if the queue drained within *timeout*.
        """
        while True:
            with self._lock:
                tail = self._tail
            done, _ = wait([tail], timeout=timeout)
            if not done:
                return False
            with self._lock:
                if self._tail is tail:
                    return True
