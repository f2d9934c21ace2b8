from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.publisher import publish_deployed_fix_entities
from suggestion_sync.schemas.fix_entities import FixEntity, FixEntityStatus
from suggestion_sync.schemas.suggestions import Suggestion, SuggestionStatus
from suggestion_sync.services.store import InMemoryStore
from tests.helpers import OPPORTUNITY_ID, build_key, finding

PAGE = "https://example.com/a"


class ProductionCheck:
    def __init__(self, resolved: bool = True) -> None:
        self.resolved = resolved
        self.checked: list[str] = []

    async def __call__(self, suggestion: Suggestion) -> bool:
        self.checked.append(suggestion.id)
        return self.resolved


def _publish(context: SyncContext, check: Any, **kwargs: Any):
    return asyncio.run(
        publish_deployed_fix_entities(context, OPPORTUNITY_ID, is_issue_resolved_on_production=check, **kwargs)
    )


def test_publish_promotes_fix_entity_when_all_suggestions_resolved(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    first = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"), status=SuggestionStatus.FIXED)
    second = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "b.png"), status=SuggestionStatus.FIXED)
    fix_entity = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[first.id, second.id])
    check = ProductionCheck()

    report = _publish(context, check)

    assert report.published_ids == [fix_entity.id]
    assert sorted(check.checked) == sorted([first.id, second.id])
    assert store.fix_entities[fix_entity.id].status == FixEntityStatus.PUBLISHED


def test_publish_requires_every_linked_suggestion_resolved(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    first = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    second = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "b.png"))
    fix_entity = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[first.id, second.id])

    async def only_first(suggestion: Suggestion) -> bool:
        return suggestion.id == first.id

    report = _publish(context, only_first)

    assert report.published_ids == []
    assert store.fix_entities[fix_entity.id].status == FixEntityStatus.DEPLOYED


def test_publish_skips_production_check_for_issue_still_found(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    suggestion = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    fix_entity = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[suggestion.id])
    check = ProductionCheck()

    report = _publish(context, check, current_audit_data=[finding(PAGE, "a.png")], build_key=build_key)

    assert check.checked == []
    assert report.published_ids == []
    assert store.fix_entities[fix_entity.id].status == FixEntityStatus.DEPLOYED


def test_publish_verifies_when_current_audit_data_is_omitted(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    suggestion = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    fix_entity = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[suggestion.id])
    check = ProductionCheck()

    report = _publish(context, check, build_key=build_key)

    assert check.checked == [suggestion.id]
    assert report.published_ids == [fix_entity.id]


def test_publish_does_nothing_without_deployed_fix_entities(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    suggestion = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[suggestion.id], status=FixEntityStatus.PUBLISHED)
    check = ProductionCheck()

    report = _publish(context, check)

    assert report.checked_ids == []
    assert check.checked == []


def test_publish_skips_fix_entity_without_suggestions(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    fix_entity = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[])
    check = ProductionCheck()

    report = _publish(context, check)

    assert report.checked_ids == [fix_entity.id]
    assert report.published_ids == []
    assert check.checked == []


def test_publish_skips_fix_entity_with_missing_suggestion(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    suggestion = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[suggestion.id, "deleted-suggestion"])
    check = ProductionCheck()

    report = _publish(context, check)

    assert report.published_ids == []
    assert check.checked == []


def test_publish_treats_failed_check_as_unresolved(
    store: InMemoryStore,
    context: SyncContext,
) -> None:
    suggestion = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[suggestion.id])

    async def exploding_check(candidate: Suggestion) -> bool:
        raise ConnectionError("connection reset")

    report = _publish(context, exploding_check)

    assert report.published_ids == []
    assert report.error is None


def test_publish_logs_save_failure_and_continues(
    store: InMemoryStore,
    context: SyncContext,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    first = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "a.png"))
    second = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "b.png"))
    broken = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[first.id])
    healthy = store.seed_fix_entity(OPPORTUNITY_ID, suggestion_ids=[second.id])
    original_save = store.save_fix_entity

    async def flaky_save(fix_entity: FixEntity) -> FixEntity:
        if fix_entity.id == broken.id:
            raise RuntimeError("conditional check failed")
        return await original_save(fix_entity)

    monkeypatch.setattr(store, "save_fix_entity", flaky_save)
    caplog.set_level(logging.WARNING, logger="suggestion_sync")

    report = _publish(context, ProductionCheck())

    assert report.published_ids == [healthy.id]
    assert report.failures[0].entity_id == broken.id
    assert f"failed to save fix entity {broken.id}: conditional check failed" in caplog.text


def test_publish_catches_unexpected_errors(
    store: InMemoryStore,
    context: SyncContext,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    async def failing_list(opportunity_id: str, status: FixEntityStatus) -> list[FixEntity]:
        raise RuntimeError("index missing")

    monkeypatch.setattr(store, "list_fix_entities_by_status", failing_list)
    caplog.set_level(logging.WARNING, logger="suggestion_sync")

    report = _publish(context, ProductionCheck())

    assert report.error == "index missing"
    assert "failed to publish deployed fix entities: index missing" in caplog.text
