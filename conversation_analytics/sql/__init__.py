"""
SQL Query Module for the conversation analytics engine.

Provides parameterized PostgreSQL queries over the tenant record streams.
Follows the Repository Pattern for clean separation between aggregation logic
and data access: services never assemble SQL themselves, they ask the record
reader, which asks this module.

Example usage:
    from conversation_analytics.sql import get_select_query
    from conversation_analytics.models import RecordStream

    query, args = get_select_query(
        'atendimentos',
        RecordStream.CONVERSATIONS,
        ['timestamp', 'finalized'],
        start=datetime(2025, 3, 1),
        end=datetime(2025, 4, 1),
        order_by=[('timestamp', False)],
    )
"""

from conversation_analytics.sql.record_queries import (
    build_where_clause,
    get_select_query,
    get_count_query,
    get_message_counts_query,
    get_distinct_values_query,
    get_probe_query,
    quote_identifier,
    CONVERSATION_COLUMNS,
    MESSAGE_COLUMNS,
    STREAM_COLUMNS,
    TIMESTAMP_COLUMN,
)

__all__ = [
    'build_where_clause',
    'get_select_query',
    'get_count_query',
    'get_message_counts_query',
    'get_distinct_values_query',
    'get_probe_query',
    'quote_identifier',
    'CONVERSATION_COLUMNS',
    'MESSAGE_COLUMNS',
    'STREAM_COLUMNS',
    'TIMESTAMP_COLUMN',
]
