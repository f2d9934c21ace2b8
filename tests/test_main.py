from __future__ import annotations

import asyncio
from typing import Any

import pytest

from suggestion_sync import main
from suggestion_sync.core.telemetry import TelemetryRuntime
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.schemas.suggestions import Opportunity, SuggestionStatus
from suggestion_sync.services.store import InMemoryStore
from tests.helpers import OPPORTUNITY_ID, build_key, finding, map_new_suggestion

PAGE = "https://example.com/a"


def _record_telemetry(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    runtime = TelemetryRuntime(enabled=False, provider=None)

    def fake_setup(settings: Any) -> TelemetryRuntime:
        calls.append("setup")
        return runtime

    def fake_shutdown(value: TelemetryRuntime) -> None:
        assert value is runtime
        calls.append("shutdown")

    monkeypatch.setattr(main, "configure_logging", lambda settings: calls.append("logging"))
    monkeypatch.setattr(main, "setup_telemetry", fake_setup)
    monkeypatch.setattr(main, "shutdown_telemetry", fake_shutdown)
    return calls


def test_run_sync_wraps_orchestrator_with_telemetry(
    store: InMemoryStore,
    context: SyncContext,
    opportunity: Opportunity,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _record_telemetry(monkeypatch)
    gone = store.seed_suggestion(OPPORTUNITY_ID, data=finding(PAGE, "gone.png"))

    report = asyncio.run(main.run_sync(context, opportunity, [finding(PAGE, "new.png")], build_key, map_new_suggestion))

    assert calls == ["logging", "setup", "shutdown"]
    assert report.sync.outdated_ids == [gone.id]
    assert store.suggestions[gone.id].status == SuggestionStatus.OUTDATED
    assert len(report.sync.created_ids) == 1


def test_run_sync_shuts_down_telemetry_when_sync_fails(
    store: InMemoryStore,
    context: SyncContext,
    opportunity: Opportunity,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _record_telemetry(monkeypatch)

    async def failing_get(opportunity_id: str) -> list[Any]:
        raise RuntimeError("store offline")

    monkeypatch.setattr(store, "get_suggestions", failing_get)

    with pytest.raises(RuntimeError, match="store offline"):
        asyncio.run(main.run_sync(context, opportunity, [], build_key, map_new_suggestion))

    assert calls == ["logging", "setup", "shutdown"]
