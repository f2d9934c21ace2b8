from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from opentelemetry import trace

from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.merge_policy import (
    BuildKey,
    FindingData,
    MapNewSuggestion,
    MergeData,
    MergeStatus,
    default_merge_data,
    default_merge_status,
)
from suggestion_sync.jobs.publisher import IsIssueResolvedOnProduction, publish_deployed_fix_entities
from suggestion_sync.jobs.reconciler import (
    BuildFixEntityPayload,
    IsIssueFixed,
    get_disappeared_suggestions,
    reconcile_disappeared_suggestions,
)
from suggestion_sync.jobs.reports import PublicationReport, SyncRunReport
from suggestion_sync.jobs.synchronizer import sync_suggestions
from suggestion_sync.schemas.suggestions import Opportunity, SuggestionStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def sync_suggestions_with_publish_detection(
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
    is_issue_fixed_with_ai_suggestion: IsIssueFixed | None = None,
    build_fix_entity_payload: BuildFixEntityPayload | None = None,
    is_issue_resolved_on_production: IsIssueResolvedOnProduction | None = None,
) -> SyncRunReport:
    """Reconcile disappeared suggestions, publish verified fixes, then sync.

    Suggestions are read once and shared by every stage. Each optional callback
    switches its stage on; the publish stage never runs for author-only types.
    """

    is_author_only = context.settings.is_author_only(opportunity.type)
    new_data_keys = {build_key(item) for item in new_data}
    existing_suggestions = await context.repository.get_suggestions(opportunity.id)
    disappeared = get_disappeared_suggestions(existing_suggestions, new_data_keys, build_key)

    reconciliation = None
    if is_issue_fixed_with_ai_suggestion is not None and build_fix_entity_payload is not None:
        with tracer.start_as_current_span("suggestion_sync.reconcile") as span:
            span.set_attribute("opportunity.id", opportunity.id)
            span.set_attribute("suggestions.disappeared", len(disappeared))
            reconciliation = await reconcile_disappeared_suggestions(
                context,
                opportunity,
                disappeared,
                is_issue_fixed_with_ai_suggestion=is_issue_fixed_with_ai_suggestion,
                build_fix_entity_payload=build_fix_entity_payload,
                is_author_only=is_author_only,
            )

    publication = None
    if is_author_only:
        logger.debug("skipping publish for author-only opportunity type=%s", opportunity.type)
        publication = PublicationReport(skipped_reason="author-only opportunity type")
    elif is_issue_resolved_on_production is not None:
        with tracer.start_as_current_span("suggestion_sync.publish") as span:
            span.set_attribute("opportunity.id", opportunity.id)
            publication = await publish_deployed_fix_entities(
                context,
                opportunity.id,
                is_issue_resolved_on_production=is_issue_resolved_on_production,
                current_audit_data=new_data,
                build_key=build_key,
            )

    with tracer.start_as_current_span("suggestion_sync.sync") as span:
        span.set_attribute("opportunity.id", opportunity.id)
        span.set_attribute("findings.count", len(new_data))
        sync_report = await sync_suggestions(
            context,
            opportunity,
            new_data,
            build_key,
            map_new_suggestion,
            merge_data_function=merge_data_function,
            merge_status_function=merge_status_function,
            status_to_set_for_outdated=status_to_set_for_outdated,
            scraped_urls=scraped_urls,
            existing_suggestions=existing_suggestions,
        )

    return SyncRunReport(
        author_only=is_author_only,
        sync=sync_report,
        reconciliation=reconciliation,
        publication=publication,
    )
