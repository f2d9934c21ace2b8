from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from suggestion_sync.schemas.fix_entities import FixEntity, FixEntityStatus, NewFixEntity
from suggestion_sync.schemas.sites import Audit, Organization, Site, SiteTopPage
from suggestion_sync.schemas.suggestions import (
    AddSuggestionsResult,
    NewSuggestion,
    Opportunity,
    Suggestion,
    SuggestionErrorItem,
    SuggestionStatus,
)
from suggestion_sync.services.repository import RepositoryNotFoundError, RepositoryValidationError


class InMemoryStore:
    """Process-local store implementing the suggestion repository contract.

    Reads hand out copies, so callers only change stored state through the save
    and bulk-update operations, the same as with a database-backed store.
    """

    def __init__(self) -> None:
        self.sites: dict[str, Site] = {}
        self.organizations: dict[str, Organization] = {}
        self.audits: dict[str, Audit] = {}
        self.top_pages: list[SiteTopPage] = []
        self.opportunities: dict[str, Opportunity] = {}
        self.suggestions: dict[str, Suggestion] = {}
        self.fix_entities: dict[str, FixEntity] = {}

    def add_opportunity(self, opportunity: Opportunity) -> Opportunity:
        self.opportunities[opportunity.id] = opportunity
        return opportunity

    def seed_suggestion(
        self,
        opportunity_id: str,
        *,
        data: dict[str, Any],
        status: SuggestionStatus = SuggestionStatus.NEW,
        suggestion_id: str | None = None,
    ) -> Suggestion:
        suggestion = Suggestion(
            id=suggestion_id or str(uuid4()),
            opportunity_id=opportunity_id,
            status=status,
            data=data,
        )
        self.suggestions[suggestion.id] = suggestion
        return suggestion.model_copy(deep=True)

    def seed_fix_entity(
        self,
        opportunity_id: str,
        *,
        suggestion_ids: list[str],
        status: FixEntityStatus = FixEntityStatus.DEPLOYED,
        fix_entity_id: str | None = None,
    ) -> FixEntity:
        fix_entity = FixEntity(
            id=fix_entity_id or str(uuid4()),
            opportunity_id=opportunity_id,
            status=status,
            suggestion_ids=suggestion_ids,
        )
        self.fix_entities[fix_entity.id] = fix_entity
        return fix_entity.model_copy(deep=True)

    async def get_suggestions(self, opportunity_id: str) -> list[Suggestion]:
        return [
            suggestion.model_copy(deep=True)
            for suggestion in self.suggestions.values()
            if suggestion.opportunity_id == opportunity_id
        ]

    async def add_suggestions(self, opportunity_id: str, records: list[dict[str, Any]]) -> AddSuggestionsResult:
        if opportunity_id not in self.opportunities:
            raise RepositoryNotFoundError(f"opportunity not found: {opportunity_id}")

        result = AddSuggestionsResult()
        for record in records:
            try:
                payload = NewSuggestion.model_validate(record)
            except ValidationError as exc:
                result.error_items.append(SuggestionErrorItem(item=dict(record), error=_first_error(exc)))
                continue
            suggestion = Suggestion(id=str(uuid4()), opportunity_id=opportunity_id, **payload.model_dump())
            self.suggestions[suggestion.id] = suggestion
            result.created_items.append(suggestion.model_copy(deep=True))
        return result

    async def bulk_update_suggestion_status(self, suggestions: list[Suggestion], status: SuggestionStatus) -> None:
        now = datetime.now(timezone.utc)
        for suggestion in suggestions:
            stored = self._require_suggestion(suggestion.id)
            stored.status = status
            stored.updated_at = now
            suggestion.status = status
            suggestion.updated_at = now

    async def save_suggestion(self, suggestion: Suggestion) -> Suggestion:
        self._require_suggestion(suggestion.id)
        suggestion.updated_at = datetime.now(timezone.utc)
        self.suggestions[suggestion.id] = suggestion.model_copy(deep=True)
        return suggestion

    async def get_suggestion(self, suggestion_id: str) -> Suggestion | None:
        suggestion = self.suggestions.get(suggestion_id)
        return suggestion.model_copy(deep=True) if suggestion is not None else None

    async def add_fix_entities(self, opportunity_id: str, records: list[dict[str, Any]]) -> list[FixEntity]:
        if opportunity_id not in self.opportunities:
            raise RepositoryNotFoundError(f"opportunity not found: {opportunity_id}")
        try:
            payloads = [NewFixEntity.model_validate(record) for record in records]
        except ValidationError as exc:
            raise RepositoryValidationError(f"invalid fix entity payload: {_first_error(exc)}") from exc

        created: list[FixEntity] = []
        for payload in payloads:
            fix_entity = FixEntity(id=str(uuid4()), opportunity_id=opportunity_id, **payload.model_dump())
            self.fix_entities[fix_entity.id] = fix_entity
            created.append(fix_entity.model_copy(deep=True))
        return created

    async def list_fix_entities_by_status(self, opportunity_id: str, status: FixEntityStatus) -> list[FixEntity]:
        return [
            fix_entity.model_copy(deep=True)
            for fix_entity in self.fix_entities.values()
            if fix_entity.opportunity_id == opportunity_id and fix_entity.status == status
        ]

    async def save_fix_entity(self, fix_entity: FixEntity) -> FixEntity:
        if fix_entity.id not in self.fix_entities:
            raise RepositoryNotFoundError(f"fix entity not found: {fix_entity.id}")
        fix_entity.updated_at = datetime.now(timezone.utc)
        self.fix_entities[fix_entity.id] = fix_entity.model_copy(deep=True)
        return fix_entity

    async def get_site(self, site_id: str) -> Site | None:
        return self.sites.get(site_id)

    async def get_audit(self, audit_id: str) -> Audit | None:
        return self.audits.get(audit_id)

    async def get_organization(self, organization_id: str) -> Organization | None:
        return self.organizations.get(organization_id)

    async def list_top_pages(self, site_id: str, source: str, geo: str) -> list[SiteTopPage]:
        return [
            page
            for page in self.top_pages
            if page.site_id == site_id and page.source == source and page.geo == geo
        ]

    def _require_suggestion(self, suggestion_id: str) -> Suggestion:
        stored = self.suggestions.get(suggestion_id)
        if stored is None:
            raise RepositoryNotFoundError(f"suggestion not found: {suggestion_id}")
        return stored


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
