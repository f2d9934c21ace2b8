from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SuggestionStatus(StrEnum):
    NEW = "NEW"
    PENDING_VALIDATION = "PENDING_VALIDATION"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    SKIPPED = "SKIPPED"
    FIXED = "FIXED"
    ERROR = "ERROR"
    OUTDATED = "OUTDATED"
    REJECTED = "REJECTED"


class OpportunityStatus(StrEnum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    IGNORED = "IGNORED"
    RESOLVED = "RESOLVED"


# Statuses the outdating pass never touches: already settled, or owned by a human decision.
OUTDATE_PROTECTED_STATUSES = frozenset(
    {
        SuggestionStatus.OUTDATED,
        SuggestionStatus.FIXED,
        SuggestionStatus.ERROR,
        SuggestionStatus.SKIPPED,
        SuggestionStatus.REJECTED,
        SuggestionStatus.APPROVED,
        SuggestionStatus.IN_PROGRESS,
        SuggestionStatus.PENDING_VALIDATION,
    }
)

DEPLOYED_DATA_FLAGS = ("tokowakaDeployed", "edgeDeployed")


class Opportunity(BaseModel):
    id: str
    site_id: str
    type: str
    status: OpportunityStatus = OpportunityStatus.NEW
    title: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class Suggestion(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    opportunity_id: str
    type: str = "CONTENT_UPDATE"
    rank: int = 0
    status: SuggestionStatus = SuggestionStatus.NEW
    data: dict[str, Any] = Field(default_factory=dict)
    updated_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_deployed(self) -> bool:
        return any(self.data.get(flag) for flag in DEPLOYED_DATA_FLAGS)


class NewSuggestion(BaseModel):
    """Record submitted to a batch create; ids and timestamps are assigned by the store."""

    model_config = ConfigDict(extra="forbid")

    type: str = "CONTENT_UPDATE"
    rank: int = 0
    status: SuggestionStatus = SuggestionStatus.NEW
    data: dict[str, Any] = Field(default_factory=dict)


class SuggestionErrorItem(BaseModel):
    item: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class AddSuggestionsResult(BaseModel):
    created_items: list[Suggestion] = Field(default_factory=list)
    error_items: list[SuggestionErrorItem] = Field(default_factory=list)
