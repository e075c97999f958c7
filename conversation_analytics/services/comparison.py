"""
Month comparison and tenant health check for the conversation analytics engine.

Key Functions:
- calc_variation: percentage change between two values
- month_bounds / previous_month: true calendar month arithmetic
- get_month_comparison: summary of a month and the month before, side by side
- check_connection: probe both tenant tables and report ok / partial / failed

The messages table is optional for a tenant: when only it fails, the check is
reported as partial and still counts as a success.
"""

import asyncio
import calendar
import logging
from datetime import date
from typing import Dict, Optional, Tuple, Union

from conversation_analytics.core.database import TenantClientRegistry
from conversation_analytics.core.exceptions import StoreQueryError, TenantConfigurationError
from conversation_analytics.models.enums import HealthStatus, RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    HealthCheckResult,
    MetricsSummary,
    MonthComparison,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordReader
from conversation_analytics.services.summary import get_metrics_summary


logger = logging.getLogger(__name__)

VARIATION_METRICS = ('total_conversations', 'finalized', 'in_progress', 'conversion_rate')


# =============================================================================
# Month arithmetic
# =============================================================================

def calc_variation(current: float, previous: float) -> float:
    """
    Percentage change from previous to current.

    >>> calc_variation(15, 10)
    50.0
    >>> calc_variation(3, 0)
    100.0
    >>> calc_variation(0, 0)
    0.0
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / previous) * 100


def parse_month(month: Union[str, date]) -> date:
    """First day of the month given as 'YYYY-MM' or any date inside it."""
    if isinstance(month, date):
        return month.replace(day=1)
    try:
        year, number = (int(part) for part in month.split('-'))
        return date(year, number, 1)
    except ValueError as exc:
        raise ValueError(f"Invalid month '{month}', expected YYYY-MM") from exc


def month_bounds(first_day: date) -> Tuple[date, date]:
    """First and last calendar day of the month containing first_day."""
    last = calendar.monthrange(first_day.year, first_day.month)[1]
    return first_day.replace(day=1), first_day.replace(day=last)


def previous_month(first_day: date) -> date:
    if first_day.month == 1:
        return date(first_day.year - 1, 12, 1)
    return date(first_day.year, first_day.month - 1, 1)


def _month_filter(first_day: date, agent: Optional[str]) -> AnalyticsFilter:
    start, end = month_bounds(first_day)
    return AnalyticsFilter(start_date=start, end_date=end, agent=agent)


def _variation(current: MetricsSummary, previous: MetricsSummary) -> Dict[str, float]:
    return {
        metric: round(calc_variation(getattr(current, metric), getattr(previous, metric)), 2)
        for metric in VARIATION_METRICS
    }


# =============================================================================
# Operations
# =============================================================================

async def get_month_comparison(
    config: TenantConnectionConfig,
    month: Union[str, date],
    agent: Optional[str] = None,
    reader: Optional[RecordReader] = None,
) -> MonthComparison:
    """
    Compare the summary of a month against the preceding month.

    Both summaries are fetched concurrently.

    Args:
        config: Tenant connection config.
        month: Current month as 'YYYY-MM' (or a date inside it).
        agent: Optional agent filter applied to both months.
        reader: Record reader to use (one is created when omitted).

    Returns:
        MonthComparison with both summaries and the variation per metric.

    Raises:
        ValueError: If month is not a valid YYYY-MM value.
        TenantConfigurationError: If the tenant config is incomplete.
        StoreQueryError: If either summary query fails.
    """
    current_first = parse_month(month)
    previous_first = previous_month(current_first)
    reader = reader or RecordReader(config)

    current, previous = await asyncio.gather(
        get_metrics_summary(config, _month_filter(current_first, agent), reader=reader),
        get_metrics_summary(config, _month_filter(previous_first, agent), reader=reader),
    )

    return MonthComparison(
        current_month=current_first.strftime('%Y-%m'),
        previous_month=previous_first.strftime('%Y-%m'),
        current=current,
        previous=previous,
        variation=_variation(current, previous),
    )


async def check_connection(
    config: TenantConnectionConfig,
    registry: Optional[TenantClientRegistry] = None,
) -> HealthCheckResult:
    """
    Probe the tenant's conversations and messages tables.

    Never raises for configuration or store errors; they are reported in the
    result instead.

    Returns:
        HealthCheckResult with status ok, partial (messages table failing) or
        failed (bad config or conversations table failing).
    """
    try:
        reader = RecordReader(config, registry=registry)
    except TenantConfigurationError as e:
        logger.warning(f"Health check failed, tenant config incomplete: {e}")
        return HealthCheckResult(status=HealthStatus.FAILED, success=False, message=str(e))

    tables = reader.tables
    try:
        await reader.probe(RecordStream.CONVERSATIONS)
    except StoreQueryError as e:
        logger.warning(f"Health check failed for {reader.client.key}: {e}")
        return HealthCheckResult(
            status=HealthStatus.FAILED,
            success=False,
            message=str(e),
            conversations_table=tables.conversations,
            messages_table=tables.messages,
        )

    try:
        await reader.probe(RecordStream.MESSAGES)
    except StoreQueryError as e:
        logger.info(f"Messages table unavailable for {reader.client.key}: {e}")
        return HealthCheckResult(
            status=HealthStatus.PARTIAL,
            success=True,
            message=f"Connected; messages table '{tables.messages}' unavailable: {e.detail}",
            conversations_table=tables.conversations,
            messages_table=tables.messages,
        )

    return HealthCheckResult(
        status=HealthStatus.OK,
        success=True,
        message="Connection established successfully",
        conversations_table=tables.conversations,
        messages_table=tables.messages,
    )
