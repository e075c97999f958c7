"""
Dashboard fan-out for the conversation analytics engine.

Loads every metric of a dashboard view concurrently for one tenant and date
range. One failing metric never cancels or blanks the others: engine errors
(AnalyticsError) are collected per metric in DashboardSnapshot.errors.
Anything else is a bug and is re-raised once all metrics have finished.
"""

import asyncio
import logging
from typing import Optional

from conversation_analytics.core.exceptions import AnalyticsError
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    DashboardSnapshot,
    TenantConnectionConfig,
)
from conversation_analytics.services.funnel import get_conversion_funnel
from conversation_analytics.services.quality import get_quality_metrics
from conversation_analytics.services.record_reader import RecordReader
from conversation_analytics.services.response_time import get_average_response_time
from conversation_analytics.services.summary import get_metrics_summary
from conversation_analytics.services.trends import get_daily_trends, get_hourly_day_heatmap


logger = logging.getLogger(__name__)

DASHBOARD_METRICS = {
    'summary': get_metrics_summary,
    'heatmap': get_hourly_day_heatmap,
    'trends': get_daily_trends,
    'funnel': get_conversion_funnel,
    'quality': get_quality_metrics,
    'response_time': get_average_response_time,
}


async def load_dashboard(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> DashboardSnapshot:
    """
    Run every dashboard aggregator concurrently.

    Args:
        config: Tenant connection config.
        filters: Date range and filters shared by all aggregators.
        reader: Record reader to use (one is created when omitted).

    Returns:
        DashboardSnapshot with each metric, or None plus an entry in `errors`.

    Raises:
        TenantConfigurationError: If the tenant config is incomplete (raised
            before any aggregator runs).
    """
    reader = reader or RecordReader(config)

    names = list(DASHBOARD_METRICS)
    results = await asyncio.gather(
        *(DASHBOARD_METRICS[name](config, filters, reader=reader) for name in names),
        return_exceptions=True,
    )

    snapshot = DashboardSnapshot()
    unexpected: Optional[BaseException] = None
    for name, result in zip(names, results):
        if isinstance(result, AnalyticsError):
            logger.warning(f"Dashboard metric '{name}' failed: {result}")
            snapshot.errors[name] = str(result)
        elif isinstance(result, BaseException):
            logger.error(f"Dashboard metric '{name}' raised unexpectedly: {result!r}")
            unexpected = unexpected or result
        else:
            setattr(snapshot, name, result)

    if unexpected is not None:
        raise unexpected

    if snapshot.errors:
        logger.info(f"Dashboard loaded with {len(snapshot.errors)} failed metric(s)")
    return snapshot
