from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from school_messaging.models.conversation import ConversationType
from school_messaging.models.user import Role


class MessageFilter(BaseModel):

    participant_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    keyword: Optional[str] = None
    type: Optional[ConversationType] = None
    unread_only: bool = False

    def is_empty(self) -> bool:
        return not any(
            [
                self.participant_id,
                self.date_from,
                self.date_to,
                self.keyword and self.keyword.strip(),
                self.type,
                self.unread_only,
            ]
        )


class ConversationCreate(BaseModel):

    participant_ids: List[str] = Field(min_length=1)
    is_group: bool = False
    group_name: Optional[str] = None


class MessageCreate(BaseModel):

    content: str = Field(min_length=1)
    reply_to: Optional[str] = None


class AnnouncementCreate(BaseModel):

    content: str = Field(min_length=1)
    target_roles: List[Role] = Field(min_length=1)


class ClassMessageCreate(BaseModel):

    content: str = Field(min_length=1)


class MessagePublic(BaseModel):

    id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: datetime
    status: str
    read_by: List[str] = []
    reply_to: Optional[str] = None
    reply_preview: Optional[str] = None
    is_system_message: bool = False


class LastMessagePublic(BaseModel):

    message_id: str
    content: str
    timestamp: datetime
    sender_id: str


class ConversationPublic(BaseModel):

    id: str
    type: ConversationType
    participants: List[str]
    is_group: bool
    group_name: Optional[str] = None
    title: str
    unread_count: int = 0
    last_message: Optional[LastMessagePublic] = None
    created_at: datetime
    updated_at: datetime
    messages: List[MessagePublic] = []


class PermissionsPublic(BaseModel):

    can_send_announcement: bool
    can_send_to_class: bool
    can_moderate_messages: bool
    announcement_roles: List[Role] = []
