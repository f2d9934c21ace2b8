from __future__ import annotations

from typing import Any, Protocol

from suggestion_sync.schemas.fix_entities import FixEntity, FixEntityStatus
from suggestion_sync.schemas.sites import Audit, Organization, Site, SiteTopPage
from suggestion_sync.schemas.suggestions import AddSuggestionsResult, Suggestion, SuggestionStatus


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the backing store cannot be reached."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


class SuggestionRepository(Protocol):
    """Store operations the sync engine depends on."""

    async def get_suggestions(self, opportunity_id: str) -> list[Suggestion]: ...

    async def add_suggestions(self, opportunity_id: str, records: list[dict[str, Any]]) -> AddSuggestionsResult: ...

    async def bulk_update_suggestion_status(self, suggestions: list[Suggestion], status: SuggestionStatus) -> None: ...

    async def save_suggestion(self, suggestion: Suggestion) -> Suggestion: ...

    async def get_suggestion(self, suggestion_id: str) -> Suggestion | None: ...

    async def add_fix_entities(self, opportunity_id: str, records: list[dict[str, Any]]) -> list[FixEntity]: ...

    async def list_fix_entities_by_status(self, opportunity_id: str, status: FixEntityStatus) -> list[FixEntity]: ...

    async def save_fix_entity(self, fix_entity: FixEntity) -> FixEntity: ...

    async def get_site(self, site_id: str) -> Site | None: ...

    async def get_audit(self, audit_id: str) -> Audit | None: ...

    async def get_organization(self, organization_id: str) -> Organization | None: ...

    async def list_top_pages(self, site_id: str, source: str, geo: str) -> list[SiteTopPage]: ...
