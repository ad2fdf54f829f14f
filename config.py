import json
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# User config, loaded from ~/.chart-editor/config.json (primary)
# or project-root config.json (fallback).
CONFIG_PATH = Path.home() / ".chart-editor" / "config.json"
_LOCAL_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
_user_config: dict = {}


def _load_config() -> dict:
    # Project-local config.json as base, user home config overlaid on top
    merged: dict = {}
    for path in (_LOCAL_CONFIG_PATH, CONFIG_PATH):
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    merged.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                pass
    return merged


def get(key: str, default=None):
    """Get a config value by dot-separated key. E.g. get('logging.console_format', 'simple')"""
    keys = key.split(".")
    val = _user_config
    for k in keys:
        if isinstance(val, dict):
            val = val.get(k)
        else:
            return default
    return val if val is not None else default


_user_config = _load_config()


# ---- Data directory -----------------------------------------------------------
# Base directory for logs and the stored theme preference.
# Priority: CHART_EDITOR_DIR env var > "data_dir" config key > ~/.chart-editor

_data_dir: Optional[Path] = None


def get_data_dir() -> Path:
    """Return the resolved base data directory.

    Resolution order:
    1. ``CHART_EDITOR_DIR`` environment variable (highest)
    2. ``"data_dir"`` key in config.json
    3. ``~/.chart-editor`` (default)
    """
    global _data_dir
    if _data_dir is not None:
        return _data_dir
    env_val = os.environ.get("CHART_EDITOR_DIR")
    if env_val:
        _data_dir = Path(env_val).expanduser().resolve()
    else:
        configured = get("data_dir")
        if configured:
            _data_dir = Path(configured).expanduser().resolve()
        else:
            _data_dir = Path.home() / ".chart-editor"
    return _data_dir


def _reset_data_dir() -> None:
    """Reset the cached data directory (for testing only)."""
    global _data_dir
    _data_dir = None


# ---- Rendering ----------------------------------------------------------------
DEFAULT_THEME = get("theme", "light")                         # "light" or "dark"
ENGINE_MODULE = get("engine_module", "plotly.graph_objects")  # imported once per process
DEFAULT_GRAPH_HEIGHT = get("graph_height", "18rem")
OFFSCREEN_OFFSET = get("offscreen_offset", -10000)            # px, parks disposable hosts
