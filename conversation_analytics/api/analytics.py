"""
FastAPI router module for conversation analytics endpoints.

Every endpoint is a POST whose body carries the tenant connection config next
to the request parameters, since tenant configs are supplied per request and
never stored by this service.

Key Endpoints:
- POST /analytics/summary: headline counts and conversion rate
- POST /analytics/heatmap: weekday x hour engagement counts
- POST /analytics/trends: daily and hourly series
- POST /analytics/funnel: follow-up conversion funnel
- POST /analytics/quality: per-agent and per-stage breakdowns
- POST /analytics/conversations: paginated conversation listing
- POST /analytics/filter-options: distinct agents and follow-up stages
- POST /analytics/response-time: estimated AI response time
- POST /analytics/messages: paginated recent messages
- POST /analytics/message-stats: message volume and contacts
- POST /analytics/history: all messages of one contact
- POST /analytics/month-comparison: a month against the one before
- POST /analytics/health-check: tenant connectivity probe
- POST /analytics/dashboard: every dashboard metric in one call

Error Mapping:
- TenantConfigurationError, ValueError -> 400
- TableNotFoundError -> 404
- StoreUnavailableError -> 503
- other StoreQueryError -> 502
- anything else -> 500
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from conversation_analytics.core.database import TenantClientRegistry
from conversation_analytics.core.dependencies import RegistryDep
from conversation_analytics.core.exceptions import (
    StoreQueryError,
    StoreUnavailableError,
    TableNotFoundError,
    TenantConfigurationError,
)
from conversation_analytics.models.schemas import (
    AnalyticsRequest,
    ConversationHistoryRequest,
    ConversationRecord,
    DashboardSnapshot,
    FilterOptions,
    FunnelStep,
    HealthCheckResult,
    HeatmapCell,
    MessageRecord,
    MessageStats,
    MetricsSummary,
    MonthComparison,
    MonthComparisonRequest,
    PagedAnalyticsRequest,
    PagedResult,
    QualityMetrics,
    ResponseTimeStats,
    TenantConnectionConfig,
    TenantRequest,
    TrendSeries,
)
from conversation_analytics.services.comparison import check_connection, get_month_comparison
from conversation_analytics.services.dashboard import load_dashboard
from conversation_analytics.services.funnel import get_conversion_funnel
from conversation_analytics.services.listing import (
    get_conversation_history,
    get_filter_options,
    get_message_stats,
    list_conversations,
    list_recent_messages,
)
from conversation_analytics.services.quality import get_quality_metrics
from conversation_analytics.services.record_reader import RecordReader
from conversation_analytics.services.response_time import get_average_response_time
from conversation_analytics.services.summary import get_metrics_summary
from conversation_analytics.services.trends import get_daily_trends, get_hourly_day_heatmap


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _reader(tenant: TenantConnectionConfig, registry: TenantClientRegistry) -> RecordReader:
    return RecordReader(tenant, registry=registry)


def _http_error(e: Exception, action: str) -> HTTPException:
    """
    Translate an engine error into the matching HTTPException.

    Args:
        e: Exception raised while serving the request.
        action: Short description used in logs and the error detail.

    Returns:
        HTTPException with the status code for the error category.
    """
    if isinstance(e, (TenantConfigurationError, ValueError)):
        status_code = 400
    elif isinstance(e, TableNotFoundError):
        status_code = 404
    elif isinstance(e, StoreUnavailableError):
        status_code = 503
    elif isinstance(e, StoreQueryError):
        status_code = 502
    else:
        status_code = 500

    if status_code >= 500:
        logger.error(f"Error {action}: {str(e)}")
    else:
        logger.warning(f"Rejected request {action}: {str(e)}")
    return HTTPException(status_code=status_code, detail=f"Failed {action}: {str(e)}")


# =============================================================================
# Aggregation Endpoints
# =============================================================================

@router.post('/summary', response_model=MetricsSummary, summary="Get Metrics Summary")
async def summary_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> MetricsSummary:
    """
    Headline counts for the date range.

    Only the agent filter applies; status and follow-up filters are ignored.
    """
    try:
        reader = _reader(request.tenant, registry)
        return await get_metrics_summary(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing metrics summary")


@router.post('/heatmap', response_model=List[HeatmapCell], summary="Get Hourly Day Heatmap")
async def heatmap_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> List[HeatmapCell]:
    """Sparse weekday x hour counts (x = hour 0-23, y = weekday 0 = Sunday)."""
    try:
        reader = _reader(request.tenant, registry)
        return await get_hourly_day_heatmap(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing heatmap")


@router.post('/trends', response_model=TrendSeries, summary="Get Daily Trends")
async def trends_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> TrendSeries:
    try:
        reader = _reader(request.tenant, registry)
        return await get_daily_trends(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing trends")


@router.post('/funnel', response_model=List[FunnelStep], summary="Get Conversion Funnel")
async def funnel_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> List[FunnelStep]:
    try:
        reader = _reader(request.tenant, registry)
        return await get_conversion_funnel(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing conversion funnel")


@router.post('/quality', response_model=QualityMetrics, summary="Get Quality Metrics")
async def quality_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> QualityMetrics:
    try:
        reader = _reader(request.tenant, registry)
        return await get_quality_metrics(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing quality metrics")


@router.post('/response-time', response_model=ResponseTimeStats, summary="Get Average Response Time")
async def response_time_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> ResponseTimeStats:
    """
    Estimated AI response time from consecutive user -> assistant messages.

    Pairs more than an hour apart are discarded as session resets.
    """
    try:
        reader = _reader(request.tenant, registry)
        return await get_average_response_time(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "estimating response time")


# =============================================================================
# Listing Endpoints
# =============================================================================

@router.post(
    '/conversations',
    response_model=PagedResult[ConversationRecord],
    summary="List Conversations",
)
async def conversations_endpoint(
    request: PagedAnalyticsRequest,
    registry: RegistryDep,
) -> PagedResult[ConversationRecord]:
    """
    One page of conversations, newest first, with every filter applied.

    `total` is the store-computed match count, not the page length.
    """
    logger.info(f"Listing conversations page={request.page} page_size={request.page_size}")
    try:
        reader = _reader(request.tenant, registry)
        return await list_conversations(
            request.tenant,
            request.filters,
            page=request.page,
            page_size=request.page_size,
            reader=reader,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "listing conversations")


@router.post('/filter-options', response_model=FilterOptions, summary="Get Filter Options")
async def filter_options_endpoint(request: TenantRequest, registry: RegistryDep) -> FilterOptions:
    """Distinct agents and follow-up stages across the whole table."""
    try:
        reader = _reader(request.tenant, registry)
        return await get_filter_options(request.tenant, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "fetching filter options")


@router.post('/messages', response_model=PagedResult[MessageRecord], summary="List Recent Messages")
async def messages_endpoint(
    request: PagedAnalyticsRequest,
    registry: RegistryDep,
) -> PagedResult[MessageRecord]:
    try:
        reader = _reader(request.tenant, registry)
        return await list_recent_messages(
            request.tenant,
            request.filters,
            page=request.page,
            page_size=request.page_size,
            reader=reader,
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "listing messages")


@router.post('/message-stats', response_model=MessageStats, summary="Get Message Stats")
async def message_stats_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> MessageStats:
    try:
        reader = _reader(request.tenant, registry)
        return await get_message_stats(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "computing message stats")


@router.post('/history', response_model=List[MessageRecord], summary="Get Conversation History")
async def history_endpoint(request: ConversationHistoryRequest, registry: RegistryDep) -> List[MessageRecord]:
    """Every message of one contact address, oldest first."""
    try:
        reader = _reader(request.tenant, registry)
        return await get_conversation_history(request.tenant, request.address, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "fetching conversation history")


# =============================================================================
# Comparison, Health and Dashboard Endpoints
# =============================================================================

@router.post('/month-comparison', response_model=MonthComparison, summary="Compare Months")
async def month_comparison_endpoint(request: MonthComparisonRequest, registry: RegistryDep) -> MonthComparison:
    """Summary of `month` (YYYY-MM) against the previous calendar month."""
    try:
        reader = _reader(request.tenant, registry)
        return await get_month_comparison(request.tenant, request.month, agent=request.agent, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "comparing months")


@router.post('/health-check', response_model=HealthCheckResult, summary="Check Tenant Connection")
async def health_check_endpoint(request: TenantRequest, registry: RegistryDep) -> HealthCheckResult:
    """
    Probe the tenant tables.

    Store and config failures are reported in the body with status "failed"
    rather than as an HTTP error.
    """
    try:
        return await check_connection(request.tenant, registry=registry)
    except Exception as e:
        raise _http_error(e, "checking tenant connection")


@router.post('/dashboard', response_model=DashboardSnapshot, summary="Load Dashboard")
async def dashboard_endpoint(request: AnalyticsRequest, registry: RegistryDep) -> DashboardSnapshot:
    """
    Every dashboard metric, loaded concurrently.

    A failing metric is returned as null with its message under `errors`;
    the other metrics are still returned.
    """
    try:
        reader = _reader(request.tenant, registry)
        return await load_dashboard(request.tenant, request.filters, reader=reader)
    except HTTPException:
        raise
    except Exception as e:
        raise _http_error(e, "loading dashboard")
