"""
Heatmap and trend aggregation service for the conversation analytics engine.

Key Functions:
- build_heatmap: weekday x hour engagement counts (sparse)
- build_daily_trend: one point per observed calendar date (dense over observed dates)
- build_hourly_trend: exactly 24 points, zero-filled
- get_hourly_day_heatmap / get_daily_trends: fetch + reduce for a tenant

Time Handling:
    Hour, weekday and date are read from each timestamp as the store returned
    it. No timezone normalisation is performed, so a timestamptz column
    (returned in UTC by asyncpg) buckets in UTC while a naive timestamp column
    buckets in whatever local time was written.

Weekday Convention:
    0 = Sunday through 6 = Saturday.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from conversation_analytics.models.enums import RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    ConversationRecord,
    HeatmapCell,
    TenantConnectionConfig,
    TrendPoint,
    TrendSeries,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader


logger = logging.getLogger(__name__)

HOURS_PER_DAY: int = 24


# =============================================================================
# Pure reductions
# =============================================================================

def sunday_first_weekday(ts: datetime) -> int:
    """Weekday with 0 = Sunday (datetime.weekday() uses 0 = Monday)."""
    return (ts.weekday() + 1) % 7


def build_heatmap(timestamps: Iterable[Optional[datetime]]) -> List[HeatmapCell]:
    """
    Count events per (weekday, hour) bucket.

    Output is sparse: only buckets with at least one event are emitted,
    ordered by weekday then hour. The sum of all cell values equals the
    number of non-null timestamps.

    Args:
        timestamps: Event timestamps; None entries are skipped.

    Returns:
        List of HeatmapCell(x=hour, y=weekday, value=count).
    """
    stamps = [ts for ts in timestamps if ts is not None]
    if not stamps:
        return []

    frame = pd.DataFrame({
        'weekday': [sunday_first_weekday(ts) for ts in stamps],
        'hour': [ts.hour for ts in stamps],
    })
    counts = frame.groupby(['weekday', 'hour']).size()

    return [
        HeatmapCell(x=int(hour), y=int(weekday), value=int(value))
        for (weekday, hour), value in counts.items()
    ]


def build_daily_trend(timestamps: Iterable[Optional[datetime]]) -> List[TrendPoint]:
    """
    Count events per ISO calendar date, ascending.

    Only observed dates are emitted; days without activity between two
    observed dates are not synthesized.
    """
    days = [ts.date().isoformat() for ts in timestamps if ts is not None]
    if not days:
        return []

    counts = pd.Series(days).value_counts().sort_index()
    return [TrendPoint(label=str(day), value=int(value)) for day, value in counts.items()]


def build_hourly_trend(timestamps: Iterable[Optional[datetime]]) -> List[TrendPoint]:
    """
    Count events per hour of day.

    Always returns 24 points labelled "0h" .. "23h", zero-filled.
    """
    hours = pd.Series([ts.hour for ts in timestamps if ts is not None], dtype='int64')
    counts = hours.value_counts().reindex(range(HOURS_PER_DAY), fill_value=0)
    return [TrendPoint(label=f"{hour}h", value=int(counts.loc[hour])) for hour in range(HOURS_PER_DAY)]


# =============================================================================
# Tenant aggregators
# =============================================================================

async def _fetch_timestamps(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader],
) -> List[Optional[datetime]]:
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.CONVERSATIONS,
        columns=['timestamp'],
        filters=RecordFilters.for_range(filters),
        order_by=[('timestamp', False)],
    )
    return [ConversationRecord.model_validate(row).timestamp for row in rows]


async def get_hourly_day_heatmap(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> List[HeatmapCell]:
    """
    Weekday x hour heatmap of conversations in the date range.

    Only the date range of `filters` is applied.
    """
    return build_heatmap(await _fetch_timestamps(config, filters, reader))


async def get_daily_trends(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> TrendSeries:
    """
    Daily and hourly conversation trends for the date range.

    Both series come from a single fetch; only the date range is applied.
    """
    timestamps = await _fetch_timestamps(config, filters, reader)
    return TrendSeries(
        daily=build_daily_trend(timestamps),
        hourly=build_hourly_trend(timestamps),
    )
