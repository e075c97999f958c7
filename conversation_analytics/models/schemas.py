"""
Pydantic models for the conversation analytics engine.

This module provides type-safe data validation and serialization for:
- Tenant connection configuration and analytics filters (engine inputs)
- Conversation and message records read from the tenant store
- Derived, per-request metric entities (summary, heatmap, trends, funnel,
  quality, response time, paging, comparison, health, dashboard)
- Request bodies accepted by the HTTP caller surface

Derived entities are never persisted; they are pure functions of the tenant
config, the filter and the current contents of the tenant store.

All models use Pydantic v2 syntax.
"""

import json
from datetime import date as DateType, datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conversation_analytics.models.enums import (
    ConversationStatus,
    FollowUpStage,
    HealthStatus,
)


T = TypeVar("T")


# =============================================================================
# Engine Inputs
# =============================================================================


class TenantConnectionConfig(BaseModel):
    """
    Connection details for one tenant's external store.

    Supplied per request by the tenant configuration collaborator and never
    persisted by the engine. Fields are optional at the model level so that a
    partially provisioned tenant can still be described; completeness is
    checked by the connection registry, which raises TenantConfigurationError
    before any store call.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "endpoint": "db.abcdefgh.supabase.co",
                "database": "postgres",
                "credential": "********",
                "conversations_table": "atendimentos",
                "messages_table": "mensagens",
            }
        },
    )

    endpoint: Optional[str] = Field(
        default=None,
        description="Store host, host:port, or postgresql:// / https:// URL"
    )
    database: Optional[str] = Field(
        default=None,
        description="Database name (project identifier) inside the store"
    )
    credential: Optional[str] = Field(
        default=None,
        description="Access credential (database password)"
    )
    user: Optional[str] = Field(
        default=None,
        description="Login role; falls back to the system default"
    )
    conversations_table: Optional[str] = Field(
        default=None,
        description="Override for the conversation-summary table name"
    )
    messages_table: Optional[str] = Field(
        default=None,
        description="Override for the raw message table name"
    )

    def missing_fields(self) -> List[str]:
        """Names of the required connection fields that are empty."""
        return [
            name for name in ("endpoint", "database", "credential")
            if not (getattr(self, name) or "").strip()
        ]


class AnalyticsFilter(BaseModel):
    """
    Date range plus optional equality filters for an analytics request.

    Both dates are inclusive calendar days. Aggregators that do not support a
    given filter ignore it (e.g. the heatmap only uses the date range).
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "start_date": "2025-03-01",
                "end_date": "2025-03-31",
                "agent": "Sofia",
                "status": "all",
                "follow_up": None,
            }
        }
    )

    start_date: DateType = Field(..., description="First day of the range (inclusive)")
    end_date: DateType = Field(..., description="Last day of the range (inclusive)")
    agent: Optional[str] = Field(default=None, description="Handling agent name")
    status: ConversationStatus = Field(
        default=ConversationStatus.ALL,
        description="finalized, in_progress or all"
    )
    follow_up: Optional[str] = Field(
        default=None,
        description="Exact follow-up stage value, e.g. follow_up_02"
    )

    @model_validator(mode="after")
    def _check_range(self) -> "AnalyticsFilter":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    @property
    def finalized_flag(self) -> Optional[bool]:
        """Equality value for the finalized column implied by `status`."""
        if self.status == ConversationStatus.FINALIZED:
            return True
        if self.status == ConversationStatus.IN_PROGRESS:
            return False
        return None


# =============================================================================
# Store Records
# =============================================================================


class ConversationRecord(BaseModel):
    """
    One customer engagement logged by the automation system.

    Column names in the store differ (remotejid, agente_atual, ...); the SQL
    layer aliases them to these logical names.
    """
    id: Optional[str] = None
    address: Optional[str] = Field(default=None, description="Counterpart address (phone)")
    display_name: Optional[str] = None
    timestamp: Optional[datetime] = None
    agent: Optional[str] = Field(default=None, description="Current handling agent")
    finalized: Optional[bool] = Field(
        default=None,
        description="True once the engagement converted into a booking"
    )
    follow_up: Optional[str] = Field(default=None, description="Follow-up stage value")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @property
    def stage(self) -> Optional[FollowUpStage]:
        return FollowUpStage.parse(self.follow_up)


class MessageRecord(BaseModel):
    """
    One raw turn of a conversation, joined to conversations by address.

    `payload` is opaque text; only the response-time estimator looks inside it.
    """
    id: Optional[str] = None
    address: Optional[str] = None
    payload: Optional[str] = Field(
        default=None,
        description="Raw JSON payload with a role tag and message parts"
    )
    timestamp: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("payload", mode="before")
    @classmethod
    def _stringify_payload(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)


# =============================================================================
# Derived Metrics
# =============================================================================


class MetricsSummary(BaseModel):
    """Headline counts for a date range."""
    total_conversations: int = Field(..., ge=0)
    finalized: int = Field(..., ge=0)
    in_progress: int = Field(..., ge=0)
    conversion_rate: float = Field(
        ...,
        ge=0.0,
        description="finalized / total as a percentage; 0 when total is 0"
    )
    follow_ups: Dict[str, int] = Field(
        ...,
        description="Exact-match count per follow-up stage value"
    )


class HeatmapCell(BaseModel):
    """Event count for one (hour, weekday) bucket."""
    x: int = Field(..., ge=0, le=23, description="Hour of day")
    y: int = Field(..., ge=0, le=6, description="Weekday, 0 = Sunday")
    value: int = Field(..., gt=0)


class TrendPoint(BaseModel):
    label: str
    value: int = Field(..., ge=0)


class TrendSeries(BaseModel):
    """Daily series (observed dates only) and 24-point hourly series."""
    daily: List[TrendPoint]
    hourly: List[TrendPoint]


class FunnelStep(BaseModel):
    name: str
    value: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0)


class AgentQuality(BaseModel):
    agent: str
    total: int = Field(..., ge=0)
    finalized: int = Field(..., ge=0)
    rate: float = Field(..., ge=0.0, description="finalized / total as a percentage")


class StageQuality(BaseModel):
    follow_up: str
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0)


class QualityMetrics(BaseModel):
    """Per-agent and per-follow-up-stage breakdowns."""
    by_agent: List[AgentQuality]
    by_follow_up: List[StageQuality]


class ResponseTimeStats(BaseModel):
    """
    Estimated AI reply latency over consecutive user -> assistant pairs.

    All values are zero (and `formatted` is "0s") when no pair survives the
    outlier window.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "average_seconds": 42.5,
                "formatted": "43s",
                "sample_count": 118,
                "median_seconds": 31.0,
                "p90_seconds": 95.2,
            }
        }
    )

    average_seconds: float = Field(..., ge=0.0)
    formatted: str
    sample_count: int = Field(..., ge=0)
    median_seconds: float = Field(default=0.0, ge=0.0)
    p90_seconds: float = Field(default=0.0, ge=0.0)


class PagedResult(BaseModel, Generic[T]):
    items: List[T]
    total: int = Field(..., ge=0, description="Matching rows, counted by the store")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)


class FilterOptions(BaseModel):
    """Distinct filter values over the whole table, ignoring any date range."""
    agents: List[str]
    follow_ups: List[str]


class MessageStats(BaseModel):
    total_messages: int = Field(..., ge=0)
    unique_contacts: int = Field(..., ge=0)
    avg_messages_per_contact: float = Field(..., ge=0.0)


class MonthComparison(BaseModel):
    """Summary of a month and the one before it, with percentage variation."""
    current_month: str
    previous_month: str
    current: MetricsSummary
    previous: MetricsSummary
    variation: Dict[str, float]


class HealthCheckResult(BaseModel):
    status: HealthStatus
    success: bool
    message: str
    conversations_table: Optional[str] = None
    messages_table: Optional[str] = None


class DashboardSnapshot(BaseModel):
    """
    Metrics loaded concurrently for one dashboard view.

    A metric whose aggregator failed is None and its error message is listed
    under the same key in `errors`.
    """
    summary: Optional[MetricsSummary] = None
    heatmap: Optional[List[HeatmapCell]] = None
    trends: Optional[TrendSeries] = None
    funnel: Optional[List[FunnelStep]] = None
    quality: Optional[QualityMetrics] = None
    response_time: Optional[ResponseTimeStats] = None
    errors: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# HTTP Request Bodies
# =============================================================================


class TenantRequest(BaseModel):
    tenant: TenantConnectionConfig


class AnalyticsRequest(BaseModel):
    tenant: TenantConnectionConfig
    filters: AnalyticsFilter


class PagedAnalyticsRequest(AnalyticsRequest):
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)


class MonthComparisonRequest(BaseModel):
    tenant: TenantConnectionConfig
    month: str = Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Current month as YYYY-MM"
    )
    agent: Optional[str] = None


class ConversationHistoryRequest(BaseModel):
    tenant: TenantConnectionConfig
    address: str = Field(..., min_length=1)
