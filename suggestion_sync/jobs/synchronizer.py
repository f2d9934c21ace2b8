from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection, Sequence

from suggestion_sync.core.serialization import safe_stringify
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.merge_policy import (
    BuildKey,
    FindingData,
    MapNewSuggestion,
    MergeData,
    MergeStatus,
    default_merge_data,
    default_merge_status,
    initial_status,
)
from suggestion_sync.jobs.reports import StageFailure, SyncReport
from suggestion_sync.schemas.suggestions import (
    OUTDATE_PROTECTED_STATUSES,
    Opportunity,
    Suggestion,
    SuggestionStatus,
)

logger = logging.getLogger(__name__)

# Field holding the page a suggestion is about; matched against the scraped-url filter.
SCRAPED_SUBJECT_FIELD = "url"


class SuggestionSyncError(RuntimeError):
    """Raised when a batch of new suggestions could not be created at all."""


def select_outdated_suggestions(
    existing_suggestions: Sequence[Suggestion],
    new_data_keys: Collection[str],
    build_key: BuildKey,
    scraped_urls: Collection[str] | None = None,
) -> list[Suggestion]:
    selected: list[Suggestion] = []
    for suggestion in existing_suggestions:
        if build_key(suggestion.data) in new_data_keys:
            continue
        if suggestion.status in OUTDATE_PROTECTED_STATUSES:
            continue
        if suggestion.is_deployed():
            continue
        if scraped_urls is not None:
            # Only pages re-examined in this run can confirm an issue is gone.
            subject = suggestion.data.get(SCRAPED_SUBJECT_FIELD)
            if not subject or subject not in scraped_urls:
                continue
        selected.append(suggestion)
    return selected


async def handle_outdated_suggestions(
    context: SyncContext,
    *,
    existing_suggestions: Sequence[Suggestion],
    new_data_keys: Collection[str],
    build_key: BuildKey,
    status_to_set_for_outdated: SuggestionStatus = SuggestionStatus.OUTDATED,
    scraped_urls: Collection[str] | None = None,
) -> list[Suggestion]:
    outdated = select_outdated_suggestions(existing_suggestions, new_data_keys, build_key, scraped_urls)

    logger.info("final count of suggestions to mark as %s: %s", status_to_set_for_outdated, len(outdated))
    if outdated:
        sample_size = context.settings.log_sample_size
        logger.debug("outdated suggestions sample: %s", safe_stringify(outdated[:sample_size]))
        await context.repository.bulk_update_suggestion_status(outdated, status_to_set_for_outdated)
    return outdated


async def sync_suggestions(
    context: SyncContext,
    opportunity: Opportunity,
    new_data: Sequence[FindingData],
    build_key: BuildKey,
    map_new_suggestion: MapNewSuggestion,
    *,
    merge_data_function: MergeData = default_merge_data,
    merge_status_function: MergeStatus = default_merge_status,
    status_to_set_for_outdated: SuggestionStatus = SuggestionStatus.OUTDATED,
    scraped_urls: Collection[str] | None = None,
    existing_suggestions: Sequence[Suggestion] | None = None,
) -> SyncReport:
    """Merge the findings of one audit run into the opportunity's suggestions.

    Suggestions whose key vanished are outdated (subject to status, deployment
    and scraped-url guards), matching ones are merged and saved, and findings
    without a match are created in one batch. Raises ``SuggestionSyncError``
    only when that batch created nothing and reported errors.
    """

    repository = context.repository
    sample_size = context.settings.log_sample_size
    report = SyncReport()

    new_data_by_key = {build_key(item): item for item in new_data}
    if existing_suggestions is None:
        existing_suggestions = await repository.get_suggestions(opportunity.id)
    existing_keys = [build_key(suggestion.data) for suggestion in existing_suggestions]

    outdated = await handle_outdated_suggestions(
        context,
        existing_suggestions=existing_suggestions,
        new_data_keys=new_data_by_key.keys(),
        build_key=build_key,
        status_to_set_for_outdated=status_to_set_for_outdated,
        scraped_urls=scraped_urls,
    )
    report.outdated_ids = [suggestion.id for suggestion in outdated]

    logger.debug(
        "existing suggestions = %s: %s",
        len(existing_suggestions),
        safe_stringify(list(existing_suggestions), max_items=sample_size),
    )

    matched = [
        (suggestion, new_data_by_key[key])
        for suggestion, key in zip(existing_suggestions, existing_keys)
        if key in new_data_by_key
    ]
    results = await asyncio.gather(
        *(
            _update_existing(context, suggestion, new_item, merge_data_function, merge_status_function)
            for suggestion, new_item in matched
        ),
        return_exceptions=True,
    )
    for (suggestion, _), result in zip(matched, results):
        if isinstance(result, BaseException):
            logger.warning("failed to update suggestion %s: %s", suggestion.id, result)
            report.update_failures.append(StageFailure(entity_id=suggestion.id, message=str(result)))
        else:
            report.updated_ids.append(suggestion.id)
    logger.debug(
        "updated existing suggestions = %s: %s",
        len(report.updated_ids),
        safe_stringify([suggestion for suggestion, _ in matched], max_items=sample_size),
    )

    known_keys = set(existing_keys)
    status = initial_status(context)
    new_records = [
        {**map_new_suggestion(item), "status": status}
        for key, item in new_data_by_key.items()
        if key not in known_keys
    ]
    if new_records:
        await _create_new_suggestions(context, opportunity, new_records, report)
    return report


async def _update_existing(
    context: SyncContext,
    suggestion: Suggestion,
    new_item: FindingData,
    merge_data_function: MergeData,
    merge_status_function: MergeStatus,
) -> Suggestion:
    suggestion.data = merge_data_function(suggestion.data, new_item)
    new_status = merge_status_function(suggestion, new_item, context)
    if new_status is not None:
        suggestion.status = new_status
    suggestion.updated_by = context.settings.system_actor
    return await context.repository.save_suggestion(suggestion)


async def _create_new_suggestions(
    context: SyncContext,
    opportunity: Opportunity,
    new_records: list[FindingData],
    report: SyncReport,
) -> None:
    site_id = opportunity.site_id or "unknown"
    logger.info("adding %s new suggestions for site_id=%s", len(new_records), site_id)

    result = await context.repository.add_suggestions(opportunity.id, new_records)
    report.created_ids = [suggestion.id for suggestion in result.created_items]
    report.create_failures = [StageFailure(entity_id=None, message=item.error or "") for item in result.error_items]
    logger.debug(
        "new suggestions = %s: %s",
        len(result.created_items),
        safe_stringify(result.created_items, max_items=context.settings.log_sample_size),
    )

    if not result.error_items:
        logger.debug("successfully created %s suggestions for site_id=%s", len(result.created_items), site_id)
        return

    total_errors = len(result.error_items)
    logger.error(
        "suggestions for site_id=%s contain %s items with errors out of %s total",
        site_id,
        total_errors,
        len(new_records),
    )
    detail_limit = context.settings.error_detail_limit
    for index, error_item in enumerate(result.error_items[:detail_limit], start=1):
        logger.error("error %s/%s: %s", index, total_errors, error_item.error)
        logger.error("failed item data: %s", safe_stringify(error_item.item, max_items=1))
    if total_errors > detail_limit:
        logger.error("... and %s more errors", total_errors - detail_limit)

    if not result.created_items:
        sample_error = result.error_items[0].error or "Unknown error"
        raise SuggestionSyncError(f"Failed to create suggestions for siteId {site_id}. Sample error: {sample_error}")

    logger.warning(
        "partial success: created %s suggestions, %s failed",
        len(result.created_items),
        total_errors,
    )
