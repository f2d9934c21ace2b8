from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from suggestion_sync.schemas.suggestions import Suggestion, SuggestionStatus

if TYPE_CHECKING:
    from suggestion_sync.jobs.context import SyncContext

logger = logging.getLogger(__name__)

FindingData = dict[str, Any]
BuildKey = Callable[[FindingData], str]
MergeData = Callable[[FindingData, FindingData], FindingData]
MergeStatus = Callable[[Suggestion, FindingData, "SyncContext"], SuggestionStatus | None]
MapNewSuggestion = Callable[[FindingData], dict[str, Any]]


def default_merge_data(existing_data: FindingData, new_data: FindingData) -> FindingData:
    return {**existing_data, **new_data}


def keep_same_data(existing_data: FindingData, new_data: FindingData | None = None) -> FindingData:
    return dict(existing_data)


def keep_latest_merge_data(existing_data: FindingData, new_data: FindingData) -> FindingData:
    return dict(new_data)


def initial_status(context: SyncContext) -> SuggestionStatus:
    return SuggestionStatus.PENDING_VALIDATION if context.requires_validation else SuggestionStatus.NEW


def default_merge_status(
    existing: Suggestion,
    new_data: FindingData,
    context: SyncContext,
) -> SuggestionStatus | None:
    """Status for a suggestion whose finding showed up again; ``None`` keeps the current one.

    REJECTED stays REJECTED whatever the new data says. OUTDATED means the issue
    came back, so it re-enters review the same way a fresh finding would.
    """

    if existing.status == SuggestionStatus.REJECTED:
        logger.debug("rejected suggestion %s found in audit; keeping REJECTED", existing.id)
        return None

    if existing.status == SuggestionStatus.OUTDATED:
        logger.warning("outdated suggestion %s found in audit; possible regression", existing.id)
        return initial_status(context)

    return None
