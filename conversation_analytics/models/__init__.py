"""
Package initialization file for the engine's models.

Exports all Pydantic schemas and enumerations from schemas.py and enums.py so
that other modules can import them from conversation_analytics.models directly.

Usage:
    from conversation_analytics.models import (
        TenantConnectionConfig,
        AnalyticsFilter,
        MetricsSummary,
        FollowUpStage,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from conversation_analytics.models.enums import (
    RecordStream,
    FollowUpStage,
    ConversationStatus,
    MessageRole,
    HealthStatus,
)

# =============================================================================
# Schemas
# =============================================================================

from conversation_analytics.models.schemas import (
    # Inputs
    TenantConnectionConfig,
    AnalyticsFilter,
    # Store records
    ConversationRecord,
    MessageRecord,
    # Derived metrics
    MetricsSummary,
    HeatmapCell,
    TrendPoint,
    TrendSeries,
    FunnelStep,
    AgentQuality,
    StageQuality,
    QualityMetrics,
    ResponseTimeStats,
    PagedResult,
    FilterOptions,
    MessageStats,
    MonthComparison,
    HealthCheckResult,
    DashboardSnapshot,
    # Request bodies
    TenantRequest,
    AnalyticsRequest,
    PagedAnalyticsRequest,
    MonthComparisonRequest,
    ConversationHistoryRequest,
)

__all__ = [
    'RecordStream',
    'FollowUpStage',
    'ConversationStatus',
    'MessageRole',
    'HealthStatus',
    'TenantConnectionConfig',
    'AnalyticsFilter',
    'ConversationRecord',
    'MessageRecord',
    'MetricsSummary',
    'HeatmapCell',
    'TrendPoint',
    'TrendSeries',
    'FunnelStep',
    'AgentQuality',
    'StageQuality',
    'QualityMetrics',
    'ResponseTimeStats',
    'PagedResult',
    'FilterOptions',
    'MessageStats',
    'MonthComparison',
    'HealthCheckResult',
    'DashboardSnapshot',
    'TenantRequest',
    'AnalyticsRequest',
    'PagedAnalyticsRequest',
    'MonthComparisonRequest',
    'ConversationHistoryRequest',
]
