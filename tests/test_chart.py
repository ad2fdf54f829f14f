"""Tests for rendering.chart — per-chart render reconciliation."""

import threading
from concurrent.futures import Future

import plotly.graph_objects as go
import pytest

from editing.errors import EngineError
from rendering.chart import ChartRenderer, attach_resize_listener, render_chart
from rendering.engine import ChartHost, EventTarget, PlotlyEngine
from rendering.theme_preference import ThemePreferenceStore

DARK_TEXT = "#e5e7eb"


class FakeEngine:
    """Records every draw; can be told to fail one specific draw."""

    def __init__(self, fail_on_call=None):
        self.draws = []
        self.resizes = 0
        self.resize_threads = []
        self.fail_on_call = fail_on_call

    def react(self, host, data, layout=None, config=None):
        self.draws.append({"data": data, "layout": layout, "config": config})
        if len(self.draws) == self.fail_on_call:
            raise EngineError("draw failed")
        return host

    def resize(self, host):
        self.resizes += 1
        self.resize_threads.append(threading.current_thread().name)
        return host


def _ready(value) -> Future:
    future = Future()
    future.set_result(value)
    return future


@pytest.fixture
def theme_store(tmp_path):
    return ThemePreferenceStore(tmp_path / "theme.json")


@pytest.fixture
def window():
    return EventTarget()


def _renderer(engine, theme_store, window, loader=None, **props):
    renderer = ChartRenderer(
        name="Trend",
        host=ChartHost("Trend"),
        theme_store=theme_store,
        window=window,
        engine_loader=loader or (lambda: _ready(engine)),
        **props,
    )
    return renderer


class TestRenderChart:
    def test_merges_chart_defaults(self):
        engine = FakeEngine()
        render_chart(engine, ChartHost(), [], {"margin": {"t": 0}}, None, "light")
        draw = engine.draws[0]
        assert draw["layout"]["margin"] == {"t": 0}
        assert draw["config"]["responsive"] is True
        assert draw["config"]["displayModeBar"] is False

    def test_with_plotly(self):
        host = ChartHost()
        render_chart(PlotlyEngine(go), host, [{"type": "bar", "y": [1]}], None, None, "dark")
        assert host.figure.layout.font.color == DARK_TEXT


class TestResizeListener:
    def test_attach_and_detach(self, window):
        engine = FakeEngine()
        detach = attach_resize_listener(window, engine, ChartHost())
        window.dispatch("resize")
        detach()
        window.dispatch("resize")
        assert engine.resizes == 1

    def test_engine_error_is_logged_not_raised(self, window):
        host = ChartHost()
        attach_resize_listener(window, PlotlyEngine(go), host)
        assert window.dispatch("resize") == 1


class TestChartRenderer:
    def test_mount_renders_once_engine_ready(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window, data=[{"type": "bar", "y": [1]}])
        assert renderer.state == "idle"
        renderer.mount()
        assert renderer.flush(timeout=5)
        assert renderer.state == "ready"
        assert renderer.render_count == 1
        assert engine.draws[0]["data"] == [{"type": "bar", "y": [1]}]
        renderer.dispose()

    def test_renders_in_submission_order(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        for value in range(5):
            renderer.update(data=[{"type": "bar", "y": [value]}])
        renderer.flush(timeout=5)
        assert [draw["data"][0]["y"][0] for draw in engine.draws[1:]] == [0, 1, 2, 3, 4]
        renderer.dispose()

    def test_failed_render_does_not_block_later_ones(self, theme_store, window):
        engine = FakeEngine(fail_on_call=2)
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        failed = renderer.update(layout={"title": "bad"})
        ok = renderer.update(layout={"title": "good"})
        assert failed.result(timeout=5) is False
        assert ok.result(timeout=5) is True
        assert renderer.render_count == 2
        renderer.dispose()

    def test_resize_listener_attached_once(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.update(data=[])
        renderer.update(data=[])
        renderer.flush(timeout=5)
        assert window.listener_count("resize") == 1
        window.dispatch("resize")
        renderer.flush(timeout=5)
        assert engine.resizes == 1
        renderer.dispose()

    def test_reflow_runs_on_render_queue(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.flush(timeout=5)
        window.dispatch("resize")
        renderer.flush(timeout=5)
        assert engine.resizes == 1
        assert engine.resize_threads[0].startswith("chart-render")
        assert engine.resize_threads[0] != threading.current_thread().name
        renderer.dispose()

    def test_reflow_queued_behind_pending_draw(self, theme_store, window):
        release = threading.Event()
        order = []

        class SlowEngine(FakeEngine):
            def react(self, host, data, layout=None, config=None):
                if self.draws:
                    release.wait(timeout=5)
                order.append("draw")
                return super().react(host, data, layout, config)

            def resize(self, host):
                order.append("resize")
                return super().resize(host)

        engine = SlowEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.flush(timeout=5)
        renderer.update(data=[{"type": "bar"}])
        window.dispatch("resize")
        release.set()
        renderer.flush(timeout=5)
        assert order == ["draw", "draw", "resize"]
        renderer.dispose()

    def test_stale_resize_handler_after_dispose_is_ignored(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.flush(timeout=5)
        handlers = list(window._listeners["resize"])
        renderer.dispose()
        for handler in handlers:
            handler()
        assert engine.resizes == 0

    def test_host_height_follows_style(self, theme_store, window):
        renderer = _renderer(FakeEngine(), theme_store, window, style={"height": 320})
        renderer.mount()
        renderer.flush(timeout=5)
        assert renderer.host.style["height"] == "320px"
        renderer.update(style=None)
        renderer.flush(timeout=5)
        assert renderer.host.style["height"] == "18rem"
        renderer.dispose()

    def test_no_resize_listener_before_first_success(self, theme_store, window):
        engine = FakeEngine(fail_on_call=1)
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.flush(timeout=5)
        assert window.listener_count("resize") == 0
        renderer.dispose()

    def test_theme_change_rerenders(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window, layout={"xaxis": {}})
        renderer.mount()
        renderer.flush(timeout=5)
        theme_store.set("dark")
        renderer.flush(timeout=5)
        assert renderer.theme == "dark"
        assert engine.draws[-1]["layout"]["xaxis"]["color"] == DARK_TEXT
        renderer.dispose()

    def test_update_rejects_unknown_props(self, theme_store, window):
        renderer = _renderer(FakeEngine(), theme_store, window)
        with pytest.raises(TypeError, match="colour"):
            renderer.update(colour="red")

    def test_dispose_detaches_everything(self, theme_store, window):
        engine = FakeEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        renderer.flush(timeout=5)
        assert theme_store.subscriber_count == 1

        renderer.dispose()
        renderer.dispose()
        assert renderer.disposed
        assert renderer.state == "disposed"
        assert window.listener_count("resize") == 0
        assert theme_store.subscriber_count == 0

        draws = len(engine.draws)
        renderer.update(data=[])
        theme_store.set("dark")
        assert len(engine.draws) == draws

    def test_engine_arriving_after_dispose_is_ignored(self, theme_store, window):
        engine = FakeEngine()
        pending = Future()
        renderer = _renderer(engine, theme_store, window, loader=lambda: pending)
        renderer.mount()
        assert renderer.state == "loading"
        renderer.dispose()
        pending.set_result(engine)
        assert engine.draws == []

    def test_engine_load_failure_is_logged(self, theme_store, window):
        failed = Future()
        failed.set_exception(ImportError("no engine"))
        renderer = _renderer(FakeEngine(), theme_store, window, loader=lambda: failed)
        renderer.mount()
        assert renderer.state == "loading"
        assert renderer.render_count == 0
        renderer.dispose()

    def test_in_flight_render_skipped_after_dispose(self, theme_store, window):
        release = threading.Event()

        class BlockingEngine(FakeEngine):
            def react(self, host, data, layout=None, config=None):
                release.wait(timeout=5)
                return super().react(host, data, layout, config)

        engine = BlockingEngine()
        renderer = _renderer(engine, theme_store, window)
        renderer.mount()
        queued = renderer.update(data=[{"type": "bar"}])
        renderer.dispose()
        release.set()
        assert queued.result(timeout=5) is False
        assert renderer.render_count == 0
        assert window.listener_count("resize") == 0
