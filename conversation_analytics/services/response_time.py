"""
AI response-time estimation service for the conversation analytics engine.

Estimates how long the automated agent takes to answer a customer by pairing
consecutive raw message records of the same contact.

Algorithm:
1. Fetch all messages in range ordered by contact address, then timestamp.
2. Parse each payload for its role tag. A malformed payload does not abort
   the computation; the message gets the UNKNOWN role.
3. Group (role, timestamp) turns by address, keeping chronological order.
4. Walk consecutive pairs (previous, current) within each group. A pair is a
   response event only when previous is a user turn and current is an
   assistant/model turn. There is no alternation state machine: a user turn
   followed by two assistant turns yields one event, and the assistant ->
   assistant pair is simply rejected by the role check.
5. delta = current - previous in seconds; keep only 0 < delta < 3600.
6. Average the surviving deltas; with none, return zeros and "0s".
7. Format the average (see format_duration).
8. Report the average rounded to 2 decimals, the formatted string, the sample
   count, and the median / 90th percentile of the surviving deltas.

Malformed payloads are the only error category the engine never propagates:
one corrupt historical message must not blank out a tenant's analytics.
"""

import json
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from conversation_analytics.models.enums import MessageRole, RecordStream
from conversation_analytics.models.schemas import (
    AnalyticsFilter,
    MessageRecord,
    ResponseTimeStats,
    TenantConnectionConfig,
)
from conversation_analytics.services.record_reader import RecordFilters, RecordReader


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Replies slower than this are treated as a session reset, not a response
RESPONSE_WINDOW_SECONDS: float = 3600.0

# Role tags the store writes for automated replies
ASSISTANT_ROLE_TAGS = frozenset({"assistant", "model"})

EMPTY_STATS = ResponseTimeStats(average_seconds=0.0, formatted="0s", sample_count=0)


@dataclass(frozen=True)
class MessageTurn:
    """Role and time of one message, as used by the pairing walk."""
    role: MessageRole
    timestamp: datetime


# =============================================================================
# Payload parsing
# =============================================================================

def parse_role(payload: Any) -> MessageRole:
    """
    Extract the role tag from a raw message payload.

    Never raises: anything that is not a JSON object with a recognised
    "role" value maps to MessageRole.UNKNOWN, which the pairing walk treats as
    a non-matching role.

    >>> parse_role('{"role": "model", "parts": [{"text": "Hi"}]}')
    <MessageRole.ASSISTANT: 'assistant'>
    >>> parse_role('not json')
    <MessageRole.UNKNOWN: 'unknown'>
    """
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            payload = json.loads(payload)
        except (ValueError, TypeError):
            logger.debug("Unparseable message payload, role set to unknown")
            return MessageRole.UNKNOWN

    if not isinstance(payload, dict):
        return MessageRole.UNKNOWN

    role = payload.get("role")
    if role == MessageRole.USER.value:
        return MessageRole.USER
    if role in ASSISTANT_ROLE_TAGS:
        return MessageRole.ASSISTANT
    return MessageRole.UNKNOWN


# =============================================================================
# Pairing
# =============================================================================

def _as_aware(ts: datetime) -> datetime:
    # naive timestamps are compared as UTC so mixed rows never raise
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def group_turns(messages: Iterable[MessageRecord]) -> Dict[str, List[MessageTurn]]:
    """
    Group parsed turns by contact address, preserving input order.

    Messages without a timestamp cannot be paired and are skipped.
    """
    groups: Dict[str, List[MessageTurn]] = defaultdict(list)
    for message in messages:
        if message.timestamp is None:
            continue
        groups[message.address or ""].append(MessageTurn(parse_role(message.payload), message.timestamp))
    return dict(groups)


def pair_response_deltas(turns: Sequence[MessageTurn]) -> List[float]:
    """
    Response delays (seconds) for one contact's chronological turns.

    Args:
        turns: Turns of a single contact in chronological order.

    Returns:
        Delays of every user -> assistant consecutive pair with
        0 < delay < RESPONSE_WINDOW_SECONDS.
    """
    deltas: List[float] = []
    for previous, current in zip(turns, turns[1:]):
        if previous.role is not MessageRole.USER or current.role is not MessageRole.ASSISTANT:
            continue
        delta = (_as_aware(current.timestamp) - _as_aware(previous.timestamp)).total_seconds()
        if 0 < delta < RESPONSE_WINDOW_SECONDS:
            deltas.append(delta)
    return deltas


# =============================================================================
# Formatting and summary
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_cents(value: float) -> float:
    """Two decimals, ties away from zero for the non-negative delays seen here."""
    return math.floor(value * 100 + 0.5) / 100


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds for display.

    - under 60s: "{n}s"
    - under 1h: "{m}m", or "{m}m {s}s" when seconds remain
    - 1h and over: "{h}h", or "{h}h {m}m" when minutes remain

    Rounding happens before the unit is chosen, so 59.5 is "1m" and
    3599.5 is "1h".

    >>> [format_duration(s) for s in (59, 60, 61, 3599, 3600, 3661)]
    ['59s', '1m', '1m 1s', '59m 59s', '1h', '1h 1m']
    """
    total = _round_half_up(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        minutes, secs = divmod(total, 60)
        return f"{minutes}m" if secs == 0 else f"{minutes}m {secs}s"
    hours, minutes = divmod(_round_half_up(seconds / 60), 60)
    return f"{hours}h" if minutes == 0 else f"{hours}h {minutes}m"


def summarize_response_times(deltas: Sequence[float]) -> ResponseTimeStats:
    """
    Summarize surviving response delays.

    Returns EMPTY_STATS (zeros, "0s") when there are no samples.
    """
    if not deltas:
        return EMPTY_STATS.model_copy()

    values = np.asarray(deltas, dtype=float)
    average = float(values.mean())
    return ResponseTimeStats(
        average_seconds=_round_cents(average),
        formatted=format_duration(average),
        sample_count=int(values.size),
        median_seconds=_round_cents(float(np.median(values))),
        p90_seconds=_round_cents(float(np.percentile(values, 90))),
    )


def estimate_response_times(messages: Iterable[MessageRecord]) -> ResponseTimeStats:
    """
    Run grouping, pairing and summary over messages.

    Messages must be ordered by address and then timestamp ascending.
    """
    deltas: List[float] = []
    for turns in group_turns(messages).values():
        deltas.extend(pair_response_deltas(turns))
    return summarize_response_times(deltas)


async def get_average_response_time(
    config: TenantConnectionConfig,
    filters: AnalyticsFilter,
    reader: Optional[RecordReader] = None,
) -> ResponseTimeStats:
    """
    Estimated AI response-time distribution for messages in the date range.

    Raises:
        TenantConfigurationError: If the tenant config is incomplete.
        StoreQueryError: If the messages query fails. Malformed payloads never raise.
    """
    reader = reader or RecordReader(config)
    rows = await reader.fetch_all(
        RecordStream.MESSAGES,
        columns=['address', 'payload', 'timestamp'],
        filters=RecordFilters.for_range(filters),
        order_by=[('address', False), ('timestamp', False)],
    )
    stats = estimate_response_times(MessageRecord.model_validate(row) for row in rows)
    logger.debug(f"Response time over {len(rows)} messages: {stats.sample_count} samples")
    return stats
