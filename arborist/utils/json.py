"""JSON helpers for free-form TEXT columns."""

import json
from typing import Any


def parse_json_field(raw: str | dict | None) -> dict[str, Any]:
    """Parse a JSON object column, returning {} on failure or empty.

    Returns {} for: None, empty string, invalid JSON, non-dict JSON.
    Dicts pass through unchanged.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return {}
        if isinstance(parsed, dict):
            return parsed
    return {}
