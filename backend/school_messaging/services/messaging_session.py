from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from school_messaging.repositories.conversation_repository import ConversationRepository
from school_messaging.repositories.directory_repository import DirectoryRepository
from school_messaging.repositories.message_repository import MessageRepository
from school_messaging.schemas.messaging import MessageFilter
from school_messaging.services.broadcast_service import BroadcastService
from school_messaging.services.chat_service import ChatService
from school_messaging.services.conversation_service import ConversationService
from school_messaging.services.directory_service import DirectoryService
from school_messaging.services.permissions import ContactPolicy, Permissions, permissions_for
from school_messaging.services.search import search_conversations


class MessagingSession:
    """Everything one signed-in user can do with their inbox.

    Built once per authenticated user and handed to whoever needs it; it
    holds the open-conversation pointer and a directory cache, nothing is
    shared between users.
    """

    def __init__(
        self,
        user: Dict[str, Any],
        conversation_service: ConversationService,
        chat_service: ChatService,
        broadcast_service: BroadcastService,
        directory: DirectoryService,
        contact_policy: ContactPolicy,
    ) -> None:
        self.user = user
        self._conversations = conversation_service
        self._chat = chat_service
        self._broadcasts = broadcast_service
        self._directory = directory
        self._contact_policy = contact_policy
        self.current_conversation_id: Optional[str] = None

    @classmethod
    def for_user(
        cls,
        db: AsyncIOMotorDatabase,
        school_id: str,
        user: Dict[str, Any],
        directory: Optional[DirectoryService] = None,
        use_transactions: bool = False,
    ) -> "MessagingSession":
        directory = directory or DirectoryService(DirectoryRepository(db, school_id))
        convo_repo = ConversationRepository(db, school_id)
        msg_repo = MessageRepository(db, school_id)
        conversations = ConversationService(convo_repo, msg_repo, directory)
        chat = ChatService(db, msg_repo, convo_repo, directory, use_transactions=use_transactions)
        broadcasts = BroadcastService(conversations, chat, directory)
        return cls(user, conversations, chat, broadcasts, directory, ContactPolicy(directory))

    @property
    def user_id(self) -> str:
        return self.user["_id"]

    @property
    def permissions(self) -> Permissions:
        # recomputed on every access so a role change takes effect at once
        return permissions_for(self.user.get("role"))

    async def list_conversations(self) -> List[Dict[str, Any]]:
        return await self._conversations.list_for_user(self.user_id)

    async def create_conversation(
        self,
        participant_ids: List[str],
        is_group: bool = False,
        group_name: Optional[str] = None,
    ) -> str:
        others = [p for p in dict.fromkeys(participant_ids) if p and p != self.user_id]
        if not others:
            raise ValueError("Cannot start a conversation with yourself")
        for other in others:
            if not await self._contact_policy.can_message(self.user, other):
                raise PermissionError(f"Not allowed to message user {other}")
        return await self._conversations.create_conversation(self.user_id, others, is_group, group_name)

    async def send_message(self, conversation_id: str, content: str, reply_to: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return await self._chat.send(conversation_id, self.user_id, content, reply_to)

    async def delete_message(self, conversation_id: str, message_id: str) -> Optional[bool]:
        convo = await self._get_own(conversation_id)
        if not convo or not await self._chat.get_message(conversation_id, message_id):
            return None
        return await self._chat.delete_message(conversation_id, message_id, self.user_id)

    async def mark_read(self, conversation_id: str) -> Optional[int]:
        convo = await self._get_own(conversation_id)
        if not convo:
            return None
        return await self._chat.mark_read(conversation_id, self.user_id)

    async def send_announcement(self, content: str, roles: List[str]) -> bool:
        return await self._broadcasts.send_announcement(self.user, content, roles)

    async def send_class_message(self, class_id: str, content: str) -> bool:
        return await self._broadcasts.send_class_message(self.user, class_id, content)

    async def search_messages(self, message_filter: MessageFilter) -> List[Dict[str, Any]]:
        if message_filter.is_empty():
            return []
        return search_conversations(await self.list_conversations(), message_filter, self.user_id)

    async def set_current_conversation(self, conversation_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if conversation_id is None:
            self.current_conversation_id = None
            return None
        convo = await self._get_own(conversation_id)
        if not convo:
            return None
        self.current_conversation_id = conversation_id
        await self._chat.mark_delivered(conversation_id, self.user_id)
        await self._conversations.clear_unread(conversation_id, self.user_id)
        return await self._conversations.get_with_messages(conversation_id)

    async def fetch_users_by_role(self, role: str) -> List[Dict[str, Any]]:
        users = await self._directory.list_users_by_role(role)
        return [u for u in users if u["_id"] != self.user_id]

    async def fetch_classes(self) -> List[Dict[str, Any]]:
        if not self.permissions.can_send_to_class:
            return []
        return await self._directory.list_classes()

    async def display_name(self, user_id: str) -> str:
        return await self._directory.display_name(user_id)

    async def _get_own(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        convo = await self._conversations.get(conversation_id)
        if not convo or self.user_id not in convo.get("participants", []):
            return None
        return convo
