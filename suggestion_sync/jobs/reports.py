from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class StageFailure:
    entity_id: str | None
    message: str


@dataclass(slots=True)
class SyncReport:
    outdated_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    update_failures: list[StageFailure] = field(default_factory=list)
    create_failures: list[StageFailure] = field(default_factory=list)


@dataclass(slots=True)
class ReconciliationReport:
    checked_ids: list[str] = field(default_factory=list)
    fixed_ids: list[str] = field(default_factory=list)
    fix_entities_created: int = 0
    failures: list[StageFailure] = field(default_factory=list)
    error: str | None = None


@dataclass(slots=True)
class PublicationReport:
    checked_ids: list[str] = field(default_factory=list)
    published_ids: list[str] = field(default_factory=list)
    failures: list[StageFailure] = field(default_factory=list)
    skipped_reason: str | None = None
    error: str | None = None


@dataclass(slots=True)
class SyncRunReport:
    author_only: bool
    sync: SyncReport
    reconciliation: ReconciliationReport | None = None
    publication: PublicationReport | None = None
