from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from suggestion_sync.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from suggestion_sync.jobs.context import SyncContext
from suggestion_sync.jobs.merge_policy import BuildKey, FindingData, MapNewSuggestion
from suggestion_sync.jobs.orchestrator import sync_suggestions_with_publish_detection
from suggestion_sync.jobs.reports import SyncRunReport
from suggestion_sync.schemas.suggestions import Opportunity

logger = logging.getLogger(__name__)


async def run_sync(
    context: SyncContext,
    opportunity: Opportunity,
    new_data: Sequence[FindingData],
    build_key: BuildKey,
    map_new_suggestion: MapNewSuggestion,
    **options: Any,
) -> SyncRunReport:
    """Run one sync for an audit handler with logging and tracing set up around it.

    ``options`` are passed through to ``sync_suggestions_with_publish_detection``.
    Callers that manage telemetry themselves can call the orchestrator directly.
    """

    configure_logging(context.settings)
    telemetry_runtime = setup_telemetry(context.settings)
    try:
        report = await sync_suggestions_with_publish_detection(
            context,
            opportunity,
            new_data,
            build_key,
            map_new_suggestion,
            **options,
        )
        logger.info(
            "sync finished for opportunity=%s created=%s updated=%s outdated=%s",
            opportunity.id,
            len(report.sync.created_ids),
            len(report.sync.updated_ids),
            len(report.sync.outdated_ids),
        )
        return report
    finally:
        shutdown_telemetry(telemetry_runtime)
