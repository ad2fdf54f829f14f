"""
Editable graph payload codec.

A payload is the working copy of one graph's editable fields:

    {"data": [trace, ...], "layout": {...} | None,
     "config": {...} | None, "style": {...} | None}

``layout``/``config``/``style`` are always present (``None`` when absent)
so that two payloads can be compared through their canonical signature.

Retrieved graphs may come in two shapes:
    flat:   {"id", "name", "data": [...], "layout", "config", "style", ...}
    legacy: {"id", "name", "data": {"data": [...], "layout", ...}, ...}
Both are normalized to the flat shape by parse_location_graph().
"""

from __future__ import annotations

import json
from typing import Any

from plotly.utils import PlotlyJSONEncoder

from .errors import ValidationError

OPTIONAL_FIELDS = ("layout", "config", "style")


def is_record(value: Any) -> bool:
    return isinstance(value, dict)


def clone_json(value: Any) -> Any:
    """Deep clone through a JSON round-trip (numpy arrays become lists)."""
    return json.loads(json.dumps(value, cls=PlotlyJSONEncoder))


def normalize_payload(payload: dict) -> dict:
    """Return the payload with every optional field materialized."""
    return {
        "data": payload.get("data"),
        "layout": payload.get("layout"),
        "config": payload.get("config"),
        "style": payload.get("style"),
    }


def payload_signature(payload: dict) -> str:
    """Canonical, key-order independent JSON of the normalized payload."""
    return json.dumps(normalize_payload(payload), cls=PlotlyJSONEncoder, sort_keys=True)


def create_from_graph(graph: dict) -> dict:
    """Build an independent payload from a graph's current fields."""
    return clone_json({
        "data": graph.get("data") or [],
        "layout": graph.get("layout"),
        "config": graph.get("config"),
        "style": graph.get("style"),
    })


def serialize_payload(payload: dict) -> str:
    """Pretty-printed JSON text for the raw payload editor."""
    return json.dumps(normalize_payload(payload), cls=PlotlyJSONEncoder, indent=2)


def _parse_data_entries(value: Any, field: str = "data") -> list[dict]:
    if not isinstance(value, list) or any(not is_record(entry) for entry in value):
        raise ValidationError(
            f'Graph payload field "{field}" must be an array of objects.', field=field,
        )
    return value


def _parse_optional_object(value: Any, field: str) -> dict | None:
    if value is None:
        return None
    if not is_record(value):
        raise ValidationError(
            f'Graph payload field "{field}" must be an object or null.', field=field,
        )
    return value


def parse_payload(raw: str) -> dict:
    """Parse raw JSON text into a normalized payload.

    Raises:
        ValidationError: malformed JSON, a non-object document, a ``data``
            field that is not a list of objects, or a non-object
            ``layout``/``config``/``style``.
    """
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ValidationError("Graph JSON is invalid.") from e

    if not is_record(parsed):
        raise ValidationError("Graph JSON must be an object.")

    payload = {"data": _parse_data_entries(parsed.get("data"))}
    for field in OPTIONAL_FIELDS:
        payload[field] = _parse_optional_object(parsed.get(field), field)
    return payload


def _parse_graph_columns(value: dict) -> dict:
    top_level = {
        field: _parse_optional_object(value.get(field), field)
        for field in OPTIONAL_FIELDS
    }

    # Preferred shape: data/layout/config/style are independent fields
    if isinstance(value.get("data"), list):
        return {"data": _parse_data_entries(value["data"]), **top_level}

    # Legacy shape: data wraps {data, layout, config, style}
    nested = value.get("data")
    if not is_record(nested):
        raise ValidationError(
            'Graph field "data" must be an array or a nested payload object.', field="data",
        )

    columns = {"data": _parse_data_entries(nested.get("data"), "data.data")}
    for field in OPTIONAL_FIELDS:
        # Top-level fields win whenever the key is present at all
        if field in value:
            columns[field] = top_level[field]
        else:
            columns[field] = _parse_optional_object(nested.get(field), f"data.{field}")
    return columns


def parse_location_graph(value: Any) -> dict:
    """Validate one retrieved graph record and flatten its payload fields.

    Raises:
        ValidationError: if the record or its payload fields are malformed.
    """
    if not is_record(value):
        raise ValidationError("Graph response must be an object.")

    if isinstance(value.get("id"), bool) or not isinstance(value.get("id"), int):
        raise ValidationError('Graph field "id" must be an integer.', field="id")
    for field in ("name", "createdAt", "updatedAt"):
        if not isinstance(value.get(field), str):
            raise ValidationError(f'Graph field "{field}" must be a string.', field=field)

    return {
        "id": value["id"],
        "name": value["name"],
        **_parse_graph_columns(value),
        "createdAt": value["createdAt"],
        "updatedAt": value["updatedAt"],
    }


def parse_location_graph_list(value: Any) -> list[dict]:
    if not isinstance(value, list):
        raise ValidationError("Graph list response must be an array.")
    return [parse_location_graph(entry) for entry in value]


def clone_graphs(graphs: list[dict]) -> list[dict]:
    return clone_json(graphs)
