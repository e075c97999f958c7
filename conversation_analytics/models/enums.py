"""
Enumeration definitions for the conversation analytics engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization
compatibility with Pydantic models, enabling automatic serialization and
deserialization in API responses.

Stored values (follow-up stage strings) match what the external automation
system writes into the tenant tables, so they can be compared directly with
column values.
"""

from enum import Enum
from typing import Optional


class RecordStream(str, Enum):
    """
    Logical record streams read from a tenant store.

    - conversations: one row per customer engagement (summary records)
    - messages: one row per conversation turn (raw message records)
    """
    CONVERSATIONS = "conversations"
    MESSAGES = "messages"


class FollowUpStage(str, Enum):
    """
    Ordered follow-up milestones written by the automation system.

    A conversation with no follow-up has a NULL/empty stage in the store, so
    there is no member for the "none" stage. Use `rank` to compare stages.
    """
    STAGE_1 = "follow_up_01"
    STAGE_2 = "follow_up_02"
    STAGE_3 = "follow_up_03"
    STAGE_4 = "follow_up_04"

    @property
    def rank(self) -> int:
        """1-based position of the stage in the follow-up sequence."""
        return list(FollowUpStage).index(self) + 1

    @property
    def label(self) -> str:
        return f"Follow-up {self.rank}"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["FollowUpStage"]:
        """Return the matching stage, or None for empty and unrecognised values."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ConversationStatus(str, Enum):
    """
    Status filter accepted by the paginated conversation list.

    - finalized: conversations that converted into a booking
    - in_progress: conversations not yet finalized
    - all: no status filtering
    """
    FINALIZED = "finalized"
    IN_PROGRESS = "in_progress"
    ALL = "all"


class MessageRole(str, Enum):
    """
    Role tag embedded in a raw message payload.

    The store writes either "model" or "assistant" for automated replies;
    both normalise to ASSISTANT. Anything unparseable becomes UNKNOWN.
    """
    USER = "user"
    ASSISTANT = "assistant"
    UNKNOWN = "unknown"


class HealthStatus(str, Enum):
    """
    Outcome of a tenant connectivity probe.

    - ok: both tables reachable
    - partial: conversations table reachable, messages table failing (optional)
    - failed: configuration error or conversations table unreachable
    """
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"
