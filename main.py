#!/usr/bin/env python3
"""
Chart Editor - Command-line Entry Point

Works on graph payload JSON files ({"data": [...], "layout", "config", "style"}).

Usage:
    python main.py validate graph.json
    python main.py render graph.json --out graph.html --theme dark
    python main.py remove-trace graph.json 1 --out trimmed.json
    python main.py --verbose ...        # Show debug logging on the console
"""

import argparse
import sys
from pathlib import Path


def _read_payload(path: str) -> dict:
    from editing.payload import parse_payload
    return parse_payload(Path(path).read_text(encoding="utf-8"))


def cmd_validate(args) -> int:
    from editing.trace_editor import build_trace_label, get_trace_type

    payload = _read_payload(args.file)
    print(f"Valid payload: {len(payload['data'])} trace(s)")
    for index, trace in enumerate(payload["data"]):
        editor = get_trace_type(trace) or "read-only"
        print(f"  {build_trace_label(trace, index)} [{editor}]")
    return 0


def cmd_render(args) -> int:
    from rendering.chart import render_chart
    from rendering.engine import ChartHost, load_engine
    from rendering.theme import resolve_graph_height, resolve_themed_graph_layout

    payload = _read_payload(args.file)
    engine = load_engine().result()
    host = ChartHost(name=Path(args.file).stem,
                     style={"height": resolve_graph_height(payload["style"])})
    layout = resolve_themed_graph_layout(payload["layout"], payload["style"], args.theme)
    render_chart(engine, host, payload["data"], layout, payload["config"], args.theme)

    out = Path(args.out).resolve()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(engine.to_html(host), encoding="utf-8")
    print(f"Wrote {out}")
    return 0


def cmd_remove_trace(args) -> int:
    from editing.payload import serialize_payload
    from rendering.engine import load_engine
    from rendering.trace_removal import remove_trace

    payload = _read_payload(args.file)
    next_data = remove_trace(load_engine().result(), payload, args.index)
    text = serialize_payload({**payload, "data": next_data})
    if args.out:
        Path(args.out).write_text(text + "\n", encoding="utf-8")
        print(f"Removed trace {args.index}; wrote {args.out}")
    else:
        print(text)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Chart Editor")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging on the console",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate", help="Check a payload file and list its traces")
    p_validate.add_argument("file", help="Payload JSON file")
    p_validate.set_defaults(func=cmd_validate)

    p_render = sub.add_parser("render", help="Theme and render a payload to standalone HTML")
    p_render.add_argument("file", help="Payload JSON file")
    p_render.add_argument("--out", "-o", required=True, help="Output HTML file")
    p_render.add_argument("--theme", choices=["light", "dark"], default=None,
                          help="Theme (default: stored preference)")
    p_render.set_defaults(func=cmd_render)

    p_remove = sub.add_parser("remove-trace", help="Remove one trace through the engine")
    p_remove.add_argument("file", help="Payload JSON file")
    p_remove.add_argument("index", type=int, help="0-based trace index")
    p_remove.add_argument("--out", "-o", default=None, help="Output payload file (default: stdout)")
    p_remove.set_defaults(func=cmd_remove_trace)

    args = parser.parse_args()

    from editing.errors import GraphEditError
    from editing.logging import get_current_log_path, setup_logging

    setup_logging(verbose=args.verbose)

    if getattr(args, "theme", "unset") is None:
        from rendering.theme_preference import get_theme_store
        args.theme = get_theme_store().get()

    try:
        return args.func(args)
    except (GraphEditError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"Details: {get_current_log_path()}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
