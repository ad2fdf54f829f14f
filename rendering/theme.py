"""
Theme resolution for graph layouts.

resolve_themed_graph_layout() threads the active theme's text/grid/
background colors into a Plotly layout dict. It only touches structure
the layout already has: a layout without ``title``, ``legend``, ``xaxis``
or ``yaxis`` gets none added, so minimal layouts (a donut KPI with just
``annotations`` and ``margin``) render exactly as authored.

Per-graph overrides live in ``style["theme"][<theme name>]`` and win
field by field over the built-in defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import config

THEMES = ("light", "dark")


@dataclass(frozen=True)
class GraphThemeStyle:
    text_color: str
    grid_color: str
    paper_background_color: Optional[str] = None
    plot_background_color: Optional[str] = None


DEFAULT_GRAPH_THEME_STYLE = {
    "light": GraphThemeStyle(
        text_color="#111827",
        grid_color="rgba(15, 23, 42, 0.15)",
    ),
    "dark": GraphThemeStyle(
        text_color="#e5e7eb",
        grid_color="rgba(148, 163, 184, 0.3)",
    ),
}

# style["theme"][name] keys -> GraphThemeStyle fields
_OVERRIDE_FIELDS = {
    "textColor": "text_color",
    "gridColor": "grid_color",
    "paperBackgroundColor": "paper_background_color",
    "plotBackgroundColor": "plot_background_color",
}

# Chart-wide defaults applied beneath the caller's layout/config
_BASE_MARGIN = {"l": 40, "r": 20, "t": 20, "b": 40}
_BASE_FONT_SIZE = 12
_TRANSPARENT = "rgba(0,0,0,0)"


def _is_record(value: Any) -> bool:
    return isinstance(value, dict)


def normalize_theme(theme: Any) -> str:
    return theme if theme in THEMES else "light"


def resolve_graph_theme_style(graph_style: Any, theme: str) -> GraphThemeStyle:
    """Built-in colors for *theme*, overlaid by the graph's own overrides."""
    defaults = DEFAULT_GRAPH_THEME_STYLE[normalize_theme(theme)]
    if not _is_record(graph_style):
        return defaults

    theme_map = graph_style.get("theme")
    overrides = theme_map.get(theme) if _is_record(theme_map) else None
    if not _is_record(overrides):
        return defaults

    resolved = {
        field: overrides[key] if isinstance(overrides.get(key), str) else getattr(defaults, field)
        for key, field in _OVERRIDE_FIELDS.items()
    }
    return GraphThemeStyle(**resolved)


def resolve_graph_height(graph_style: Any) -> str:
    """CSS height for a graph: ``"<n>px"`` from a positive numeric style.height."""
    if _is_record(graph_style):
        height = graph_style.get("height")
        if isinstance(height, (int, float)) and not isinstance(height, bool) and height > 0:
            if float(height).is_integer():
                height = int(height)
            return f"{height}px"
    return config.DEFAULT_GRAPH_HEIGHT


def _with_font_color(container: dict, key: str, text_color: str) -> dict:
    font = container.get(key)
    return {**(font if _is_record(font) else {}), "color": text_color}


def _apply_title_theme(title: Any, text_color: str) -> Any:
    if isinstance(title, str):
        return {"text": title, "font": {"color": text_color}}
    if not _is_record(title):
        return title
    return {**title, "font": _with_font_color(title, "font", text_color)}


def _apply_legend_theme(legend: dict, text_color: str) -> dict:
    return {**legend, "font": _with_font_color(legend, "font", text_color)}


def _apply_axis_theme(axis: dict, text_color: str, grid_color: str) -> dict:
    themed = {**axis, "color": text_color}
    if "title" in axis:
        themed["title"] = _apply_title_theme(axis["title"], text_color)
    themed["tickfont"] = _with_font_color(axis, "tickfont", text_color)
    # Fill gaps only; explicit caller colors always win
    for key in ("gridcolor", "zerolinecolor", "linecolor"):
        if axis.get(key) is None:
            themed[key] = grid_color
    return themed


def _apply_annotation_theme(annotations: list, text_color: str) -> list:
    return [
        {**annotation, "font": _with_font_color(annotation, "font", text_color)}
        if _is_record(annotation) else annotation
        for annotation in annotations
    ]


def resolve_themed_graph_layout(layout: Any, graph_style: Any, theme: str) -> dict:
    """Return a new layout with the theme's colors applied.

    Args:
        layout: The graph's layout dict (``None`` is treated as ``{}``).
        graph_style: The graph's style dict, possibly carrying overrides.
        theme: Active theme name ("light" or "dark").

    Returns:
        A new layout dict. The input is never mutated.
    """
    source = layout if _is_record(layout) else {}
    style = resolve_graph_theme_style(graph_style, theme)
    text_color = style.text_color

    themed = {**source, "font": _with_font_color(source, "font", text_color)}

    if "title" in source:
        themed["title"] = _apply_title_theme(source["title"], text_color)
    if _is_record(source.get("legend")):
        themed["legend"] = _apply_legend_theme(source["legend"], text_color)
    for axis_key in ("xaxis", "yaxis"):
        if _is_record(source.get(axis_key)):
            themed[axis_key] = _apply_axis_theme(source[axis_key], text_color, style.grid_color)
    if isinstance(source.get("annotations"), list):
        themed["annotations"] = _apply_annotation_theme(source["annotations"], text_color)

    if style.paper_background_color is not None:
        themed["paper_bgcolor"] = style.paper_background_color
    if style.plot_background_color is not None:
        themed["plot_bgcolor"] = style.plot_background_color

    return themed


def build_plotly_layout(layout: Optional[dict] = None, theme: str = "light") -> dict:
    """Chart defaults (margins, transparent background, font) under *layout*."""
    text_color = DEFAULT_GRAPH_THEME_STYLE[normalize_theme(theme)].text_color
    return {
        "margin": dict(_BASE_MARGIN),
        "paper_bgcolor": _TRANSPARENT,
        "plot_bgcolor": _TRANSPARENT,
        "font": {"size": _BASE_FONT_SIZE, "color": text_color},
        **(layout or {}),
    }


def build_plotly_config(config_value: Optional[dict] = None) -> dict:
    return {
        "displayModeBar": False,
        "responsive": True,
        **(config_value or {}),
    }
