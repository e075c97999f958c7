"""
Record Queries Module for the conversation analytics engine.

Provides parameterized PostgreSQL queries over the two logical record streams
kept in every tenant store:

- conversations: one row per customer engagement (default table `atendimentos`)
- messages: one row per conversation turn (default table `mensagens`)

Physical column names are fixed by the external automation system and differ
from the engine's logical names; every query aliases them so rows come back
keyed by logical name (address, agent, finalized, ...).

Table names are tenant configurable and therefore quoted as identifiers.
Filter values are always bound as $n parameters, never interpolated.

Date ranges are half-open: timestamp >= start AND timestamp < end, where the
caller passes end = (last day + 1) at midnight.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from conversation_analytics.models.enums import RecordStream


# =============================================================================
# COLUMN CONTRACT
# =============================================================================

# Logical name -> physical column in the conversations table
CONVERSATION_COLUMNS: Dict[str, str] = {
    'id': 'id',
    'address': 'remotejid',
    'display_name': 'nome',
    'timestamp': 'timestamp',
    'agent': 'agente_atual',
    'finalized': 'atendimento_finalizado',
    'follow_up': 'follow_up',
}

# Logical name -> physical column in the messages table
MESSAGE_COLUMNS: Dict[str, str] = {
    'id': 'id',
    'address': 'remotejid',
    'payload': 'conversation_history',
    'timestamp': 'timestamp',
}

STREAM_COLUMNS: Dict[RecordStream, Dict[str, str]] = {
    RecordStream.CONVERSATIONS: CONVERSATION_COLUMNS,
    RecordStream.MESSAGES: MESSAGE_COLUMNS,
}

# Both streams are range-filtered and ordered on this logical column
TIMESTAMP_COLUMN: str = 'timestamp'

OrderBy = Sequence[Tuple[str, bool]]


# =============================================================================
# IDENTIFIER HELPERS
# =============================================================================

def quote_identifier(name: str) -> str:
    """
    Quote a (possibly schema-qualified) identifier for PostgreSQL.

    >>> quote_identifier('atendimentos')
    '"atendimentos"'
    >>> quote_identifier('crm.atendimentos')
    '"crm"."atendimentos"'
    """
    parts = name.split('.')
    if not name or any(not part for part in parts):
        raise ValueError(f"Invalid identifier: {name!r}")
    return '.'.join('"' + part.replace('"', '""') + '"' for part in parts)


def _physical(stream: RecordStream, column: str) -> str:
    try:
        return STREAM_COLUMNS[stream][column]
    except KeyError:
        raise ValueError(f"Unknown column '{column}' for stream '{stream.value}'") from None


def _select_list(stream: RecordStream, columns: Sequence[str]) -> str:
    return ', '.join(
        f"{quote_identifier(_physical(stream, column))} AS {quote_identifier(column)}"
        for column in columns
    )


# =============================================================================
# WHERE CLAUSE
# =============================================================================

def build_where_clause(
    stream: RecordStream,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    equals: Optional[Mapping[str, Any]] = None,
) -> Tuple[str, List[Any]]:
    """
    Build a WHERE clause for a range plus equality filters.

    Args:
        stream: Record stream the filters refer to.
        start: Inclusive lower bound on the timestamp column.
        end: Exclusive upper bound on the timestamp column.
        equals: Logical column -> value equality filters.

    Returns:
        Tuple of (clause, args). The clause is empty when there are no filters,
        otherwise it starts with "WHERE". Placeholders are numbered from $1.
    """
    conditions: List[str] = []
    args: List[Any] = []
    timestamp = quote_identifier(_physical(stream, TIMESTAMP_COLUMN))

    if start is not None:
        args.append(start)
        conditions.append(f"{timestamp} >= ${len(args)}::timestamp")
    if end is not None:
        args.append(end)
        conditions.append(f"{timestamp} < ${len(args)}::timestamp")

    for column, value in (equals or {}).items():
        args.append(value)
        conditions.append(f"{quote_identifier(_physical(stream, column))} = ${len(args)}")

    if not conditions:
        return '', args
    return 'WHERE ' + ' AND '.join(conditions), args


def _order_clause(stream: RecordStream, order_by: OrderBy) -> str:
    if not order_by:
        return ''
    terms = [
        f"{quote_identifier(_physical(stream, column))} {'DESC' if descending else 'ASC'}"
        for column, descending in order_by
    ]
    return 'ORDER BY ' + ', '.join(terms)


# =============================================================================
# SELECT / COUNT QUERIES
# =============================================================================

def get_select_query(
    table: str,
    stream: RecordStream,
    columns: Sequence[str],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    equals: Optional[Mapping[str, Any]] = None,
    order_by: OrderBy = (),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Tuple[str, List[Any]]:
    """
    Generate a SELECT over one record stream.

    Args:
        table: Physical table name (quoted here).
        stream: Logical stream, selects the column contract.
        columns: Logical columns to return, aliased to their logical names.
        start: Inclusive timestamp lower bound.
        end: Exclusive timestamp upper bound.
        equals: Logical column -> value equality filters.
        order_by: (logical column, descending) pairs.
        limit: Maximum rows (LIMIT).
        offset: Rows to skip (OFFSET).

    Returns:
        Tuple of (query, args) ready for asyncpg.

    Example:
        >>> query, args = get_select_query(
        ...     'atendimentos', RecordStream.CONVERSATIONS, ['agent'],
        ...     equals={'agent': 'Sofia'},
        ... )
        >>> query
        'SELECT "agente_atual" AS "agent" FROM "atendimentos" WHERE "agente_atual" = $1'
    """
    where, args = build_where_clause(stream, start, end, equals)
    parts = [f"SELECT {_select_list(stream, columns)}", f"FROM {quote_identifier(table)}"]
    if where:
        parts.append(where)
    order = _order_clause(stream, order_by)
    if order:
        parts.append(order)
    if limit is not None:
        args.append(limit)
        parts.append(f"LIMIT ${len(args)}")
    if offset is not None:
        args.append(offset)
        parts.append(f"OFFSET ${len(args)}")
    return ' '.join(parts), args


def get_count_query(
    table: str,
    stream: RecordStream,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    equals: Optional[Mapping[str, Any]] = None,
) -> Tuple[str, List[Any]]:
    """
    Generate an exact COUNT(*) with the same filters as get_select_query.

    Returns:
        Tuple of (query, args); the single result column is named total.
    """
    where, args = build_where_clause(stream, start, end, equals)
    query = f"SELECT COUNT(*) AS total FROM {quote_identifier(table)}"
    if where:
        query += ' ' + where
    return query, args


def get_message_counts_query(
    table: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[str, List[Any]]:
    """
    Generate message volume counts for a range.

    Result columns: total_messages, unique_contacts.
    """
    where, args = build_where_clause(RecordStream.MESSAGES, start, end)
    address = quote_identifier(MESSAGE_COLUMNS['address'])
    query = (
        f"SELECT COUNT(*) AS total_messages, COUNT(DISTINCT {address}) AS unique_contacts "
        f"FROM {quote_identifier(table)}"
    )
    if where:
        query += ' ' + where
    return query, args


def get_distinct_values_query(table: str, stream: RecordStream, column: str) -> str:
    """
    Generate a DISTINCT scan of one column over the whole table.

    No date filter is applied, so cost grows with the table.
    NULL and empty values are excluded; results are sorted ascending.
    """
    physical = quote_identifier(_physical(stream, column))
    return (
        f"SELECT DISTINCT {physical} AS value FROM {quote_identifier(table)} "
        f"WHERE {physical} IS NOT NULL AND {physical}::text <> '' "
        f"ORDER BY value"
    )


def get_probe_query(table: str) -> str:
    """Minimal existence probe: fetch at most one id."""
    return f"SELECT {quote_identifier('id')} FROM {quote_identifier(table)} LIMIT 1"
