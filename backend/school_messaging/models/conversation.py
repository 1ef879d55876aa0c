from datetime import datetime
from typing import Dict, List, Literal, Optional, TypedDict

from school_messaging.models.message import MessageDocument


ConversationType = Literal["direct", "group", "class", "announcement"]


class LastMessage(TypedDict):
    message_id: str
    content: str
    timestamp: datetime
    sender_id: str


class ConversationDocument(TypedDict, total=False):
    _id: str
    school_id: str
    participants: List[str]
    participant_roles: Dict[str, str]
    is_group: bool
    group_name: Optional[str]
    type: ConversationType
    # per-user unread counters (user_id -> count), missing entries mean 0
    unread_count: Dict[str, int]
    last_message: Optional[LastMessage]
    message_seq: int
    created_at: datetime
    updated_at: datetime
    # attached on read, never stored on the conversation document
    messages: List[MessageDocument]
