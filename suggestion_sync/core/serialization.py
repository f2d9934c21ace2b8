from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


def safe_stringify(data: Any, max_items: int = 10) -> str:
    """Render ``data`` as JSON for log output.

    Lists longer than ``max_items`` are replaced by a summary object holding the
    first ``max_items`` entries. Never raises.
    """

    try:
        if isinstance(data, (list, tuple)) and len(data) > max_items:
            return json.dumps(
                {
                    "truncated": True,
                    "total_length": len(data),
                    "items": list(data[:max_items]),
                    "message": f"Showing first {max_items} of {len(data)} items",
                },
                indent=2,
                default=_encode,
            )
        return json.dumps(data, indent=2, default=_encode)
    except (TypeError, ValueError) as exc:
        total = len(data) if isinstance(data, (list, tuple)) else "N/A"
        return f"[Unable to stringify: {exc}. Total items: {total}]"


def _encode(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
