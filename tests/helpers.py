from __future__ import annotations

from typing import Any

SITE_ID = "site-1"
OPPORTUNITY_ID = "oppty-1"


def build_key(data: dict[str, Any]) -> str:
    return f"{data.get('url')}|{data.get('imageUrl')}"


def map_new_suggestion(data: dict[str, Any]) -> dict[str, Any]:
    return {"type": "CONTENT_UPDATE", "rank": 1, "data": data}


def finding(url: str, image: str, **extra: Any) -> dict[str, Any]:
    return {"url": url, "imageUrl": image, **extra}


class ConcurrencyProbe:
    """Counts how many probed coroutines are running at once."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self.calls = 0

    def __enter__(self) -> "ConcurrencyProbe":
        self.active += 1
        self.calls += 1
        self.peak = max(self.peak, self.active)
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.active -= 1
