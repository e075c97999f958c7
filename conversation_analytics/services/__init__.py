"""
Analytics services for the conversation analytics engine.

Each aggregator is a stateless async function taking a tenant connection
config and an AnalyticsFilter, plus an optional RecordReader for tests. The
pure reductions they wrap (compute_summary, build_funnel, ...) work on
already-fetched records and are exported for direct use.

Services:
- record_reader: range / filter / paginate access to tenant tables
- summary: headline counts and conversion rate
- trends: weekday x hour heatmap, daily and hourly series
- funnel: cumulative follow-up funnel
- quality: per-agent and per-stage breakdowns
- listing: paginated listings, filter options, message stats
- response_time: AI response-time estimation
- comparison: month-over-month comparison and health check
- dashboard: concurrent fan-out of every dashboard metric
"""

# =============================================================================
# Record Reader
# =============================================================================

from conversation_analytics.services.record_reader import (
    RecordFilters,
    RecordReader,
    ResolvedTables,
    resolve_tables,
)

# =============================================================================
# Aggregators
# =============================================================================

from conversation_analytics.services.summary import (
    compute_summary,
    get_metrics_summary,
    rate,
)
from conversation_analytics.services.trends import (
    build_daily_trend,
    build_heatmap,
    build_hourly_trend,
    get_daily_trends,
    get_hourly_day_heatmap,
)
from conversation_analytics.services.funnel import (
    build_funnel,
    get_conversion_funnel,
)
from conversation_analytics.services.quality import (
    NO_FOLLOW_UP,
    UNASSIGNED_AGENT,
    build_quality_metrics,
    get_quality_metrics,
)
from conversation_analytics.services.response_time import (
    estimate_response_times,
    format_duration,
    get_average_response_time,
    parse_role,
)

# =============================================================================
# Listings, comparison and dashboard
# =============================================================================

from conversation_analytics.services.listing import (
    get_conversation_history,
    get_filter_options,
    get_message_stats,
    list_conversations,
    list_recent_messages,
)
from conversation_analytics.services.comparison import (
    calc_variation,
    check_connection,
    get_month_comparison,
)
from conversation_analytics.services.dashboard import load_dashboard


__all__ = [
    # ----- Record Reader -----
    'RecordFilters',
    'RecordReader',
    'ResolvedTables',
    'resolve_tables',
    # ----- Summary -----
    'compute_summary',
    'get_metrics_summary',
    'rate',
    # ----- Trends -----
    'build_daily_trend',
    'build_heatmap',
    'build_hourly_trend',
    'get_daily_trends',
    'get_hourly_day_heatmap',
    # ----- Funnel -----
    'build_funnel',
    'get_conversion_funnel',
    # ----- Quality -----
    'NO_FOLLOW_UP',
    'UNASSIGNED_AGENT',
    'build_quality_metrics',
    'get_quality_metrics',
    # ----- Response Time -----
    'estimate_response_times',
    'format_duration',
    'get_average_response_time',
    'parse_role',
    # ----- Listing -----
    'get_conversation_history',
    'get_filter_options',
    'get_message_stats',
    'list_conversations',
    'list_recent_messages',
    # ----- Comparison / Health -----
    'calc_variation',
    'check_connection',
    'get_month_comparison',
    # ----- Dashboard -----
    'load_dashboard',
]
