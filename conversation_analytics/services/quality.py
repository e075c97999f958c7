"""
Quality / per-agent aggregation service for the conversation analytics engine.

Two independent breakdowns of the conversations in range:

- by agent: total, finalized and conversion rate per handling agent, sorted
  by total descending. Records without an agent are grouped under
  UNASSIGNED_AGENT, never dropped.
- by follow-up stage: count and share of the total per stage value, sorted
  by count descending. Records without a stage use NO_FOLLOW_UP.

Both sorts are stable, so ties keep the order in which the groups were first
encountered in the fetched rows.
"""

from typing import Dict, List, Optional, Sequence

from conversation_analytics.models.enums import RecordStream
from conversation_analytics.models.schemas import (
    AgentQuality,
    AnalyticsFilter,
    ConversationRecord,
    QualityMetrics,
    StageQuality,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader
from conversation_analytics.services.summary import rate


UNASSIGNED_AGENT: str = "Unassigned"
NO_FOLLOW_UP: str = "No follow-up"


def build_quality_metrics(records: Sequence[ConversationRecord]) -> QualityMetrics:
    """
    Group records by agent and by follow-up stage.

    Args:
        records: Conversation records in range, in store order.

    Returns:
        QualityMetrics with by_agent and by_follow_up breakdowns.
    """
    total = len(records)

    # dicts keep first-encounter order, which the stable sorts below rely on
    agents: Dict[str, List[int]] = {}
    stages: Dict[str, int] = {}
    for record in records:
        counts = agents.setdefault(record.agent or UNASSIGNED_AGENT, [0, 0])
        counts[0] += 1
        if record.finalized:
            counts[1] += 1

        stage = record.follow_up or NO_FOLLOW_UP
        stages[stage] = stages.get(stage, 0) + 1

    by_agent = sorted(
        (
            AgentQuality(agent=agent, total=agent_total, finalized=finalized, rate=rate(finalized, agent_total))
            for agent, (agent_total, finalized) in agents.items()
        ),
        key=lambda item: item.total,
        reverse=True,
    )
    by_follow_up = sorted(
        (
            StageQuality(follow_up=stage, count=count, percentage=rate(count, total))
            for stage, count in stages.items()
        ),
        key=lambda item: item.count,
        reverse=True,
    )
    return QualityMetrics(by_agent=by_agent, by_follow_up=by_follow_up)


async def get_quality_metrics(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> QualityMetrics:
    """Per-agent and per-stage quality breakdown for the date range."""
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.CONVERSATIONS,
        columns=['agent', 'finalized', 'follow_up'],
        filters=RecordFilters.for_range(filters),
    )
    return build_quality_metrics([ConversationRecord.model_validate(row) for row in rows])
