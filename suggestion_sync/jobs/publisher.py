from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from suggestion_sync.jobs.concurrency import TaskFailure, limit_concurrency_all_settled
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.merge_policy import BuildKey, FindingData
from suggestion_sync.jobs.reports import PublicationReport, StageFailure
from suggestion_sync.schemas.fix_entities import FixEntity, FixEntityStatus
from suggestion_sync.schemas.suggestions import Suggestion

logger = logging.getLogger(__name__)

IsIssueResolvedOnProduction = Callable[[Suggestion], Awaitable[bool]]


@dataclass(slots=True)
class FixEntityCheck:
    fix_entity: FixEntity
    all_resolved: bool
    reason: str


async def publish_deployed_fix_entities(
    context: SyncContext,
    opportunity_id: str,
    *,
    is_issue_resolved_on_production: IsIssueResolvedOnProduction,
    current_audit_data: Sequence[FindingData] | None = None,
    build_key: BuildKey | None = None,
) -> PublicationReport:
    """Promote DEPLOYED fix entities to PUBLISHED once every linked suggestion checks out.

    When ``current_audit_data`` and ``build_key`` are both given, a fix entity whose
    suggestion is still found by this run is left alone without a production check.
    Best effort: failures are logged and collected in the report, never raised.
    """

    report = PublicationReport()
    try:
        await _publish(
            context,
            opportunity_id,
            is_issue_resolved_on_production,
            current_audit_data,
            build_key,
            report,
        )
    except Exception as exc:
        logger.warning("failed to publish deployed fix entities: %s", exc)
        report.error = str(exc)
    return report


async def _publish(
    context: SyncContext,
    opportunity_id: str,
    is_resolved: IsIssueResolvedOnProduction,
    current_audit_data: Sequence[FindingData] | None,
    build_key: BuildKey | None,
    report: PublicationReport,
) -> None:
    deployed = await context.repository.list_fix_entities_by_status(opportunity_id, FixEntityStatus.DEPLOYED)
    if not deployed:
        return
    report.checked_ids = [fix_entity.id for fix_entity in deployed]

    current_keys: set[str] | None = None
    if current_audit_data is not None and build_key is not None:
        current_keys = {build_key(item) for item in current_audit_data}

    def check_task(fix_entity: FixEntity) -> Callable[[], Awaitable[FixEntityCheck]]:
        async def run() -> FixEntityCheck:
            return await _check_fix_entity(context, fix_entity, is_resolved, current_keys, build_key)

        return run

    limit = context.settings.max_concurrent_checks
    results = await limit_concurrency_all_settled([check_task(fix_entity) for fix_entity in deployed], limit)

    for fix_entity, result in zip(deployed, results):
        if isinstance(result, TaskFailure):
            logger.warning("publish check failed for fix entity %s: %s", fix_entity.id, result.message)
            report.failures.append(StageFailure(entity_id=fix_entity.id, message=result.message))
            continue
        if not result.all_resolved:
            logger.debug("fix entity %s not published: %s", fix_entity.id, result.reason)
            continue
        try:
            fix_entity.status = FixEntityStatus.PUBLISHED
            await context.repository.save_fix_entity(fix_entity)
        except Exception as exc:
            logger.warning("failed to save fix entity %s: %s", fix_entity.id, exc)
            report.failures.append(StageFailure(entity_id=fix_entity.id, message=str(exc)))
            continue
        report.published_ids.append(fix_entity.id)
        logger.info("published fix entity %s", fix_entity.id)


async def _check_fix_entity(
    context: SyncContext,
    fix_entity: FixEntity,
    is_resolved: IsIssueResolvedOnProduction,
    current_keys: set[str] | None,
    build_key: BuildKey | None,
) -> FixEntityCheck:
    if not fix_entity.suggestion_ids:
        return FixEntityCheck(fix_entity, False, "no linked suggestions")

    suggestions = await asyncio.gather(
        *(context.repository.get_suggestion(suggestion_id) for suggestion_id in fix_entity.suggestion_ids)
    )
    for suggestion_id, suggestion in zip(fix_entity.suggestion_ids, suggestions):
        if suggestion is None:
            return FixEntityCheck(fix_entity, False, f"suggestion {suggestion_id} not found")
        if current_keys is not None and build_key is not None and build_key(suggestion.data) in current_keys:
            return FixEntityCheck(fix_entity, False, f"suggestion {suggestion_id} still present in current run")

    def verify_task(suggestion: Suggestion) -> Callable[[], Awaitable[bool]]:
        async def run() -> bool:
            return await is_resolved(suggestion)

        return run

    verdicts = await limit_concurrency_all_settled(
        [verify_task(suggestion) for suggestion in suggestions if suggestion is not None],
        context.settings.max_concurrent_checks,
    )
    if all(verdict is True for verdict in verdicts):
        return FixEntityCheck(fix_entity, True, "verified on production")
    return FixEntityCheck(fix_entity, False, "not verified on production")
