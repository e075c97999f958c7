"""
Conversion funnel service for the conversation analytics engine.

Steps, in order:
1. Conversations Started - every record in range (100%)
2. Follow-up 1 .. Follow-up 4 - cumulative-inclusive: stage k counts records
   whose stage is k or any later stage, so counts never increase along the
   stage sequence
3. Finalized - records with finalized = True

Percentages are relative to the number of records in range. An empty range
still yields all six steps with value 0 and percentage 0.
"""

from typing import List, Optional, Sequence

from conversation_analytics.models.enums import FollowUpStage, RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    ConversationRecord,
    FunnelStep,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader
from conversation_analytics.services.summary import rate


ENTERED_STEP: str = "Conversations Started"
FINALIZED_STEP: str = "Finalized"


def build_funnel(records: Sequence[ConversationRecord]) -> List[FunnelStep]:
    """
    Build the ordered funnel for a set of conversation records.

    Args:
        records: Conversation records in range.

    Returns:
        Six FunnelStep entries: entered, four follow-up stages, finalized.
    """
    total = len(records)
    ranks = [record.stage.rank if record.stage else 0 for record in records]
    finalized = sum(1 for record in records if record.finalized is True)

    steps = [FunnelStep(name=ENTERED_STEP, value=total, percentage=100.0 if total else 0.0)]
    for stage in FollowUpStage:
        reached = sum(1 for r in ranks if r >= stage.rank)
        steps.append(FunnelStep(name=stage.label, value=reached, percentage=rate(reached, total)))
    steps.append(FunnelStep(name=FINALIZED_STEP, value=finalized, percentage=rate(finalized, total)))
    return steps


async def get_conversion_funnel(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> List[FunnelStep]:
    """Conversion funnel for conversations in the date range."""
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.CONVERSATIONS,
        columns=['finalized', 'follow_up'],
        filters=RecordFilters.for_range(filters),
    )
    return build_funnel([ConversationRecord.model_validate(row) for row in rows])
