from datetime import datetime
from typing import List, Literal, Optional, TypedDict


MessageStatus = Literal["sent", "delivered", "read"]

TOMBSTONE_TEXT = "This message was deleted"


class MessageDocument(TypedDict, total=False):
    _id: str
    school_id: str
    conversation_id: str
    # append position inside the conversation
    seq: int
    sender_id: str
    content: str
    timestamp: datetime
    # delivery states
    status: MessageStatus
    read_by: List[str]
    reply_to: Optional[str]
    is_system_message: bool
