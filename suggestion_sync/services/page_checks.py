from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from urllib.parse import urlparse

import httpx

from suggestion_sync.core.config import Settings, get_settings
from suggestion_sync.schemas.suggestions import Suggestion

logger = logging.getLogger(__name__)

PagePredicate = Callable[[Suggestion, str], bool]


def build_page_check(
    predicate: PagePredicate,
    *,
    client: httpx.AsyncClient | None = None,
    url_field: str = "url",
    timeout_seconds: float | None = None,
    user_agent: str | None = None,
    settings: Settings | None = None,
) -> Callable[[Suggestion], Awaitable[bool]]:
    """Build a production check that fetches the suggestion's page and tests its body.

    The returned callback resolves ``True`` only when the page was fetched with a
    2xx status and ``predicate(suggestion, body)`` holds. Timeout and user agent
    default to ``settings``, usually the one carried by the run's ``SyncContext``.
    """

    settings = settings or get_settings()
    timeout = timeout_seconds if timeout_seconds is not None else settings.verification_timeout_seconds
    headers = {"User-Agent": user_agent or settings.verification_user_agent}

    async def check(suggestion: Suggestion) -> bool:
        url = _as_http_url(suggestion.data.get(url_field))
        if url is None:
            logger.debug("suggestion %s has no checkable url in field=%s", suggestion.id, url_field)
            return False

        try:
            if client is not None:
                response = await client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as temp_client:
                    response = await temp_client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("production check request failed for suggestion %s url=%s: %s", suggestion.id, url, exc)
            return False

        if not response.is_success:
            logger.info(
                "production check got status=%s for suggestion %s url=%s",
                response.status_code,
                suggestion.id,
                url,
            )
            return False
        return bool(predicate(suggestion, response.text))

    return check


def _as_http_url(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if urlparse(stripped).scheme.lower() not in {"http", "https"}:
        return None
    return stripped
