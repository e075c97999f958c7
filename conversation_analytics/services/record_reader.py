"""
Record Reader service for the conversation analytics engine.

Generic range / filter / paginate access to the two logical record streams of
a tenant store. Aggregators never talk to the registry or build SQL directly;
they create a RecordReader for the request and ask it for rows.

Key Components:
- ResolvedTables: Physical table names, resolved once per request
- resolve_tables(): Tenant override, else the system default from settings
- RecordFilters: Date range plus optional equality filters
- RecordReader: fetch_all, fetch_page, fetch_distinct, fetch_message_counts, probe

Error Handling:
    Driver errors are re-raised by store_errors() as StoreQueryError
    subclasses carrying the failing table name. Nothing is retried or swallowed
    here. A TenantConfigurationError surfaces from the constructor, before any
    store call is attempted.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from conversation_analytics.core.config import Settings
from conversation_analytics.core.database import (
    TenantClientRegistry,
    TenantStoreClient,
    get_registry,
    store_errors,
)
from conversation_analytics.core.exceptions import TenantConfigurationError
from conversation_analytics.models.enums import RecordStream
from conversation_analytics.models.schemas import AnalyticsFilter, TenantConnectionConfig
from conversation_analytics.sql.record_queries import (
    STREAM_COLUMNS,
    get_count_query,
    get_distinct_values_query,
    get_message_counts_query,
    get_probe_query,
    get_select_query,
    quote_identifier,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Table Resolution
# =============================================================================

@dataclass(frozen=True)
class ResolvedTables:
    """Physical table names for one tenant request."""
    conversations: str
    messages: str

    def for_stream(self, stream: RecordStream) -> str:
        if stream == RecordStream.CONVERSATIONS:
            return self.conversations
        return self.messages


def resolve_tables(config: TenantConnectionConfig, settings: Settings) -> ResolvedTables:
    """
    Resolve table names: explicit tenant override, else system default.

    Blank overrides count as absent.

    Raises:
        TenantConfigurationError: If a resolved name is not a valid identifier.
    """
    tables = ResolvedTables(
        conversations=(config.conversations_table or '').strip() or settings.default_conversations_table,
        messages=(config.messages_table or '').strip() or settings.default_messages_table,
    )
    for field_name, name in (('conversations_table', tables.conversations), ('messages_table', tables.messages)):
        try:
            quote_identifier(name)
        except ValueError as exc:
            raise TenantConfigurationError(str(exc), missing=[field_name]) from exc
    return tables


# =============================================================================
# Filters
# =============================================================================

@dataclass(frozen=True)
class RecordFilters:
    """
    Date range and equality filters for one record query.

    Dates are inclusive calendar days; None means unbounded. Equality filters
    left as None are not applied.
    """
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    agent: Optional[str] = None
    finalized: Optional[bool] = None
    follow_up: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def for_range(cls, filters: AnalyticsFilter, **equals: Any) -> "RecordFilters":
        """Only the date range of `filters`, plus explicit equality filters."""
        return cls(start_date=filters.start_date, end_date=filters.end_date, **equals)

    @classmethod
    def from_analytics(cls, filters: AnalyticsFilter) -> "RecordFilters":
        """Date range plus every equality filter an AnalyticsFilter carries."""
        return cls(
            start_date=filters.start_date,
            end_date=filters.end_date,
            agent=filters.agent or None,
            finalized=filters.finalized_flag,
            follow_up=filters.follow_up or None,
        )

    def bounds(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Half-open datetime bounds: [start 00:00, day after end 00:00)."""
        start = datetime.combine(self.start_date, time.min) if self.start_date else None
        end = (
            datetime.combine(self.end_date + timedelta(days=1), time.min)
            if self.end_date else None
        )
        return start, end

    def equalities(self) -> Dict[str, Any]:
        values = {
            'agent': self.agent,
            'finalized': self.finalized,
            'follow_up': self.follow_up,
            'address': self.address,
        }
        return {column: value for column, value in values.items() if value is not None}


# =============================================================================
# Reader
# =============================================================================

class RecordReader:
    """
    Per-request reader over a tenant's conversation and message tables.

    Args:
        config: Tenant connection config.
        registry: Client registry; defaults to the process-wide one.

    Raises:
        TenantConfigurationError: If the config lacks endpoint, database or credential.
    """

    def __init__(
        self,
        config: TenantConnectionConfig,
        registry: Optional[TenantClientRegistry] = None,
    ):
        registry = registry or get_registry()
        self.config = config
        self.settings = registry.settings
        self.client: TenantStoreClient = registry.get_client(config)
        self.tables = resolve_tables(config, self.settings)

    def table(self, stream: RecordStream) -> str:
        return self.tables.for_stream(stream)

    async def fetch_all(
        self,
        stream: RecordStream,
        columns: Optional[Sequence[str]] = None,
        filters: Optional[RecordFilters] = None,
        order_by: Sequence[Tuple[str, bool]] = (),
    ) -> List[Dict[str, Any]]:
        """
        Fetch every matching row, unpaginated.

        Args:
            stream: Logical stream to read.
            columns: Logical columns to return; all columns when omitted.
            filters: Date range and equality filters.
            order_by: (logical column, descending) pairs.

        Returns:
            List of dicts keyed by logical column name.

        Raises:
            StoreQueryError: If the query fails (tagged with the table name).
        """
        filters = filters or RecordFilters()
        table = self.table(stream)
        start, end = filters.bounds()
        query, args = get_select_query(
            table,
            stream,
            list(columns or STREAM_COLUMNS[stream]),
            start=start,
            end=end,
            equals=filters.equalities(),
            order_by=order_by,
        )
        with store_errors(table):
            rows = await self.client.fetch(query, *args)
        logger.debug(f"Fetched {len(rows)} rows from {table}")
        return [dict(row) for row in rows]

    async def fetch_page(
        self,
        stream: RecordStream,
        page: int,
        page_size: int,
        columns: Optional[Sequence[str]] = None,
        filters: Optional[RecordFilters] = None,
        order_by: Sequence[Tuple[str, bool]] = (),
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Fetch one page of matching rows plus the total match count.

        Uses offset addressing: offset = (page - 1) * page_size. The total is an
        exact COUNT(*) computed by the store, issued concurrently with the page
        query, so it stays correct for pages past the end.

        Returns:
            Tuple of (rows, total).

        Raises:
            ValueError: If page or page_size is below 1.
            StoreQueryError: If either query fails.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        filters = filters or RecordFilters()
        table = self.table(stream)
        start, end = filters.bounds()
        equals = filters.equalities()

        page_query, page_args = get_select_query(
            table,
            stream,
            list(columns or STREAM_COLUMNS[stream]),
            start=start,
            end=end,
            equals=equals,
            order_by=order_by,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        count_query, count_args = get_count_query(table, stream, start=start, end=end, equals=equals)

        with store_errors(table):
            # both queries settle before either failure surfaces
            results = await asyncio.gather(
                self.client.fetch(page_query, *page_args),
                self.client.fetchrow(count_query, *count_args),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
        rows, count_row = results
        total = int(count_row['total']) if count_row is not None else 0
        return [dict(row) for row in rows], total

    async def fetch_distinct(self, stream: RecordStream, column: str) -> List[Any]:
        """
        Distinct non-empty values of one column across the entire table.

        The date range is deliberately not applied, so this scans the whole
        table and has no bounded cost.
        """
        table = self.table(stream)
        query = get_distinct_values_query(table, stream, column)
        with store_errors(table):
            rows = await self.client.fetch(query)
        return [row['value'] for row in rows]

    async def fetch_message_counts(self, filters: Optional[RecordFilters] = None) -> Dict[str, int]:
        """Total messages and distinct contacts in range, counted by the store."""
        filters = filters or RecordFilters()
        table = self.table(RecordStream.MESSAGES)
        start, end = filters.bounds()
        query, args = get_message_counts_query(table, start=start, end=end)
        with store_errors(table):
            row = await self.client.fetchrow(query, *args)
        if row is None:
            return {'total_messages': 0, 'unique_contacts': 0}
        return {
            'total_messages': int(row['total_messages'] or 0),
            'unique_contacts': int(row['unique_contacts'] or 0),
        }

    async def probe(self, stream: RecordStream) -> None:
        """
        Issue a minimal existence query against the stream's table.

        Raises:
            StoreQueryError: If the table is missing or the store unreachable.
        """
        table = self.table(stream)
        with store_errors(table):
            await self.client.fetch(get_probe_query(table))
