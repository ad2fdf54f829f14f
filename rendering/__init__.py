"""Charting engine boundary, theming and per-chart render reconciliation."""

from .engine import ChartHost, EventTarget, HostContainer, PlotlyEngine, load_engine
from .theme import resolve_graph_theme_style, resolve_themed_graph_layout
from .theme_preference import ThemePreferenceStore, get_theme_store
from .chart import ChartRenderer
from .trace_removal import remove_trace

__all__ = [
    "ChartHost",
    "EventTarget",
    "HostContainer",
    "PlotlyEngine",
    "load_engine",
    "resolve_graph_theme_style",
    "resolve_themed_graph_layout",
    "ThemePreferenceStore",
    "get_theme_store",
    "ChartRenderer",
    "remove_trace",
]
