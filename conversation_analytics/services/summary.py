"""
Summary aggregation service for the conversation analytics engine.

Computes headline engagement counts for a date range:

- total conversations
- finalized (converted into a booking, finalized is True)
- in progress (finalized is False; rows with a NULL flag count in neither)
- conversion rate = finalized / total as a percentage, 0 when total is 0
- exact-match count per follow-up stage (not cumulative, see funnel.py)

Only the agent filter applies; status and follow-up filters are ignored so
that the summary always describes the whole engagement population.
"""

import logging
from typing import Iterable, List, Optional

from conversation_analytics.models.enums import FollowUpStage, RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    ConversationRecord,
    MetricsSummary,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader


logger = logging.getLogger(__name__)

SUMMARY_COLUMNS: List[str] = ['finalized', 'follow_up']


def rate(part: float, total: float) -> float:
    """
    Percentage of part over total, 0 when total is 0.

    >>> rate(1, 4)
    25.0
    >>> rate(0, 0)
    0.0
    """
    return (part / total) * 100 if total > 0 else 0.0


def compute_summary(records: Iterable[ConversationRecord]) -> MetricsSummary:
    """
    Reduce conversation records to a MetricsSummary.

    Args:
        records: Conversation records in the requested range.

    Returns:
        MetricsSummary with every follow-up stage present in `follow_ups`,
        zero-valued when nothing matched.
    """
    total = 0
    finalized = 0
    in_progress = 0
    follow_ups = {stage.value: 0 for stage in FollowUpStage}

    for record in records:
        total += 1
        if record.finalized is True:
            finalized += 1
        elif record.finalized is False:
            in_progress += 1
        if record.follow_up in follow_ups:
            follow_ups[record.follow_up] += 1

    return MetricsSummary(
        total_conversations=total,
        finalized=finalized,
        in_progress=in_progress,
        conversion_rate=rate(finalized, total),
        follow_ups=follow_ups,
    )


async def get_metrics_summary(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> MetricsSummary:
    """
    Fetch conversations in range (optionally for one agent) and summarize them.

    Raises:
        TenantConfigurationError: If the tenant config is incomplete.
        StoreQueryError: If the conversations query fails.
    """
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.CONVERSATIONS,
        columns=SUMMARY_COLUMNS,
        filters=RecordFilters.for_range(filters, agent=filters.agent or None),
    )
    return compute_summary(ConversationRecord.model_validate(row) for row in rows)
