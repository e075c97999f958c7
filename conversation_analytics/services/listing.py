"""
Listing and discovery service for the conversation analytics engine.

Key Functions:
- list_conversations: Paginated conversations with every filter applied
- get_filter_options: Distinct agents and follow-up stages across the whole table
- get_conversation_history: All messages of one contact, oldest first
- list_recent_messages: Paginated messages in range, newest first
- get_message_stats: Message volume and contacts in range

Pagination:
    Offset based (offset = (page - 1) * page_size). Totals are exact counts
    computed by the store, never by fetching every row.

Scaling Note:
    get_filter_options deliberately ignores the date range so filter dropdowns
    can offer values outside the current window. It is the one operation whose
    cost grows with the full table size.
"""

import asyncio
import logging
from typing import List, Optional

from conversation_analytics.models.enums import RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    ConversationRecord,
    FilterOptions,
    MessageRecord,
    MessageStats,
    PagedResult,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader


logger = logging.getLogger(__name__)


def _page_size(reader: RecordReader, page_size: Optional[int]) -> int:
    size = page_size or reader.settings.default_page_size
    if size > reader.settings.max_page_size:
        raise ValueError(f"page_size must be <= {reader.settings.max_page_size}")
    return size


async def list_conversations(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    page: int = 1,
    page_size: Optional[int] = None,
    reader: Optional[RecordReader] = None,
) -> PagedResult[ConversationRecord]:
    """
    One page of conversations, newest first.

    Applies the date range plus the agent, status (finalized / in progress)
    and follow-up filters.

    Args:
        config: Tenant connection config.
        filters: Date range and optional equality filters.
        page: 1-based page number.
        page_size: Rows per page; settings.default_page_size when omitted.
        reader: Record reader to use (one is created when omitted).

    Returns:
        PagedResult with the page items and the store-computed total.

    Raises:
        ValueError: If page < 1 or page_size is outside 1..max_page_size.
        StoreQueryError: If the page or count query fails.
    """
    reader = reader or RecordReader(config)
    size = _page_size(reader, page_size)
    rows, total = await reader.fetch_page(
        RecordStream.CONVERSATIONS,
        page=page,
        page_size=size,
        filters=RecordFilters.from_analytics(filters),
        order_by=[('timestamp', True)],
    )
    return PagedResult[ConversationRecord](
        items=[ConversationRecord.model_validate(row) for row in rows],
        total=total,
        page=page,
        page_size=size,
    )


async def get_filter_options(
    config: TenantConnectionConfig,
    reader: Optional[RecordReader] = None,
) -> FilterOptions:
    """
    Distinct agent names and follow-up stages observed anywhere in the table.

    Returns:
        FilterOptions with both lists sorted ascending, empty values excluded.
    """
    reader = reader or RecordReader(config)
    agents, follow_ups = await asyncio.gather(
        reader.fetch_distinct(RecordStream.CONVERSATIONS, 'agent'),
        reader.fetch_distinct(RecordStream.CONVERSATIONS, 'follow_up'),
    )
    return FilterOptions(
        agents=sorted(str(agent) for agent in agents if agent),
        follow_ups=sorted(str(stage) for stage in follow_ups if stage),
    )


async def get_conversation_history(
    config: TenantConnectionConfig,
    address: str,
    reader: Optional[RecordReader] = None,
) -> List[MessageRecord]:
    """
    Every message exchanged with one contact, oldest first.

    Messages join conversations by address, not by conversation id.
    """
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.MESSAGES,
        filters=RecordFilters(address=address),
        order_by=[('timestamp', False)],
    )
    return [MessageRecord.model_validate(row) for row in rows]


async def list_recent_messages(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    page: int = 1,
    page_size: Optional[int] = None,
    reader: Optional[RecordReader] = None,
) -> PagedResult[MessageRecord]:
    """One page of messages in the date range, newest first."""
    reader = reader or RecordReader(config)
    size = _page_size(reader, page_size)
    rows, total = await reader.fetch_page(
        RecordStream.MESSAGES,
        page=page,
        page_size=size,
        filters=RecordFilters.for_range(filters),
        order_by=[('timestamp', True)],
    )
    return PagedResult[MessageRecord](
        items=[MessageRecord.model_validate(row) for row in rows],
        total=total,
        page=page,
        page_size=size,
    )


async def get_message_stats(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> MessageStats:
    """
    Message volume for the date range.

    The average messages per contact is rounded to one decimal and is 0 when
    no contact wrote in the range.
    """
    reader = reader or RecordReader(config)
    counts = await reader.fetch_message_counts(RecordFilters.for_range(filters))
    total = counts['total_messages']
    contacts = counts['unique_contacts']
    average = round(total / contacts, 1) if contacts > 0 else 0.0
    return MessageStats(total_messages=total, unique_contacts=contacts, avg_messages_per_contact=average)
