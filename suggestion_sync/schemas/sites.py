from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Site(BaseModel):
    id: str
    base_url: str
    organization_id: str | None = None
    requires_validation: bool = False
    delivery_type: str | None = None


class Organization(BaseModel):
    id: str
    name: str
    ims_org_id: str | None = None


class Audit(BaseModel):
    id: str
    site_id: str
    audit_type: str
    audited_at: datetime
    audit_result: dict[str, Any] = Field(default_factory=dict)


class SiteTopPage(BaseModel):
    site_id: str
    url: str
    source: str = "ahrefs"
    geo: str = "global"
    traffic: int = 0
