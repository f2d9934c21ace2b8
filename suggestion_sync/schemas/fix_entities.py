from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FixEntityStatus(StrEnum):
    PENDING = "PENDING"
    DEPLOYED = "DEPLOYED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
    ROLLED_BACK = "ROLLED_BACK"


class FixEntity(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    opportunity_id: str
    type: str = "CONTENT_UPDATE"
    status: FixEntityStatus = FixEntityStatus.DEPLOYED
    suggestion_ids: list[str] = Field(default_factory=list)
    change_details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NewFixEntity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: str = "CONTENT_UPDATE"
    status: FixEntityStatus = FixEntityStatus.DEPLOYED
    suggestion_ids: list[str] = Field(default_factory=list)
    change_details: dict[str, Any] = Field(default_factory=dict)
