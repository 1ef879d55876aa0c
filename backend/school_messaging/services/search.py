from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from school_messaging.schemas.messaging import MessageFilter


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    # Mongo hands back naive UTC datetimes unless the client is tz-aware
    return value.replace(tzinfo=timezone.utc)


def _in_range(timestamp: Optional[datetime], date_from: Optional[datetime], date_to: Optional[datetime]) -> bool:
    ts = _as_utc(timestamp)
    if ts is None:
        return False
    if date_from is not None and ts < _as_utc(date_from):
        return False
    if date_to is not None and ts > _as_utc(date_to):
        return False
    return True


def conversation_matches(conversation: Dict[str, Any], message_filter: MessageFilter, current_user_id: str) -> bool:
    messages = conversation.get("messages", [])

    if message_filter.participant_id and message_filter.participant_id not in conversation.get("participants", []):
        return False

    if message_filter.type and conversation.get("type") != message_filter.type:
        return False

    if message_filter.date_from or message_filter.date_to:
        if not any(_in_range(m.get("timestamp"), message_filter.date_from, message_filter.date_to) for m in messages):
            return False

    keyword = (message_filter.keyword or "").strip().lower()
    # deletion placeholders are not searchable text
    if keyword and not any(
        keyword in (m.get("content") or "").lower()
        for m in messages
        if not m.get("is_system_message")
    ):
        return False

    if message_filter.unread_only and conversation.get("unread_count", {}).get(current_user_id, 0) <= 0:
        return False

    return True


def search_conversations(
    conversations: List[Dict[str, Any]],
    message_filter: MessageFilter,
    current_user_id: str,
) -> List[Dict[str, Any]]:
    """Conversations matching every field set on ``message_filter``.

    An empty filter means no search was requested and yields nothing.
    """
    if message_filter.is_empty():
        return []
    return [c for c in conversations if conversation_matches(c, message_filter, current_user_id)]
