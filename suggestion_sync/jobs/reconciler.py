from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Collection, Sequence
from typing import Any

from suggestion_sync.jobs.concurrency import TaskFailure, limit_concurrency_all_settled
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.merge_policy import BuildKey
from suggestion_sync.jobs.reports import ReconciliationReport, StageFailure
from suggestion_sync.schemas.suggestions import Opportunity, Suggestion, SuggestionStatus

logger = logging.getLogger(__name__)

IsIssueFixed = Callable[[Suggestion], Awaitable[bool]]
BuildFixEntityPayload = Callable[[Suggestion, Opportunity, bool], dict[str, Any] | None]


def get_disappeared_suggestions(
    existing_suggestions: Sequence[Suggestion],
    new_data_keys: Collection[str],
    build_key: BuildKey,
) -> list[Suggestion]:
    return [suggestion for suggestion in existing_suggestions if build_key(suggestion.data) not in new_data_keys]


async def reconcile_disappeared_suggestions(
    context: SyncContext,
    opportunity: Opportunity,
    disappeared_suggestions: Sequence[Suggestion],
    *,
    is_issue_fixed_with_ai_suggestion: IsIssueFixed,
    build_fix_entity_payload: BuildFixEntityPayload,
    is_author_only: bool = False,
) -> ReconciliationReport:
    """Mark disappeared NEW suggestions as FIXED when the check confirms the fix.

    Best effort: failures are logged and collected in the report, never raised.
    """

    report = ReconciliationReport()
    try:
        await _reconcile(
            context,
            opportunity,
            disappeared_suggestions,
            is_issue_fixed_with_ai_suggestion,
            build_fix_entity_payload,
            is_author_only,
            report,
        )
    except Exception as exc:
        logger.warning("failed reconciliation for disappeared suggestions: %s", exc)
        report.error = str(exc)
    return report


async def _reconcile(
    context: SyncContext,
    opportunity: Opportunity,
    disappeared_suggestions: Sequence[Suggestion],
    is_issue_fixed: IsIssueFixed,
    build_fix_entity_payload: BuildFixEntityPayload,
    is_author_only: bool,
    report: ReconciliationReport,
) -> None:
    candidates = [suggestion for suggestion in disappeared_suggestions if suggestion.status == SuggestionStatus.NEW]
    if not candidates:
        return
    report.checked_ids = [suggestion.id for suggestion in candidates]

    def check_task(suggestion: Suggestion) -> Callable[[], Awaitable[bool]]:
        async def run() -> bool:
            return bool(await is_issue_fixed(suggestion))

        return run

    results = await limit_concurrency_all_settled(
        [check_task(suggestion) for suggestion in candidates],
        context.settings.max_concurrent_checks,
    )

    fixed: list[Suggestion] = []
    for suggestion, result in zip(candidates, results):
        if isinstance(result, TaskFailure):
            logger.warning("fix check failed for suggestion %s: %s", suggestion.id, result.message)
            report.failures.append(StageFailure(entity_id=suggestion.id, message=result.message))
        elif result:
            fixed.append(suggestion)

    fix_entity_payloads: list[dict[str, Any]] = []
    for suggestion in fixed:
        logger.debug("marking suggestion %s as FIXED", suggestion.id)
        previous_status, previous_actor = suggestion.status, suggestion.updated_by
        try:
            suggestion.status = SuggestionStatus.FIXED
            suggestion.updated_by = context.settings.system_actor
            await context.repository.save_suggestion(suggestion)
        except Exception as exc:
            # Later stages share this object, so it must match what the store holds.
            suggestion.status = previous_status
            suggestion.updated_by = previous_actor
            logger.warning("failed to mark suggestion %s as FIXED: %s", suggestion.id, exc)
            report.failures.append(StageFailure(entity_id=suggestion.id, message=str(exc)))
            continue
        report.fixed_ids.append(suggestion.id)

        try:
            payload = build_fix_entity_payload(suggestion, opportunity, is_author_only)
        except Exception as exc:
            logger.warning("failed building fix entity for suggestion %s: %s", suggestion.id, exc)
            report.failures.append(StageFailure(entity_id=suggestion.id, message=str(exc)))
            continue
        if payload:
            fix_entity_payloads.append(payload)

    if not fix_entity_payloads:
        return
    try:
        created = await context.repository.add_fix_entities(opportunity.id, fix_entity_payloads)
    except Exception as exc:
        logger.warning("failed to add fix entities on opportunity %s: %s", opportunity.id, exc)
        report.failures.append(StageFailure(entity_id=opportunity.id, message=str(exc)))
        return
    report.fix_entities_created = len(created)
    logger.info("added %s fix entities for opportunity %s", len(created), opportunity.id)
