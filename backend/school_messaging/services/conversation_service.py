import logging
from typing import Any, Dict, List, Optional

from school_messaging.repositories.conversation_repository import ConversationRepository
from school_messaging.repositories.message_repository import MessageRepository
from school_messaging.services.directory_service import DirectoryService


logger = logging.getLogger(__name__)

DEFAULT_GROUP_NAME = "Group conversation"


class ConversationService:

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        message_repo: MessageRepository,
        directory: DirectoryService,
    ) -> None:
        self._conversation_repo = conversation_repo
        self._message_repo = message_repo
        self._directory = directory

    async def find_or_create_direct(self, user_a: str, user_b: str) -> str:
        if not user_a or not user_b:
            raise ValueError("Both participants are required")
        if user_a == user_b:
            raise ValueError("Cannot start a conversation with yourself")
        roles = await self._directory.roles_of([user_a, user_b])
        convo = await self._conversation_repo.get_or_create_direct(user_a, user_b, participant_roles=roles)
        return convo["_id"]

    async def create_group(
        self,
        participant_ids: List[str],
        group_name: Optional[str] = None,
        conversation_type: str = "group",
    ) -> str:
        participants = list(dict.fromkeys(p for p in participant_ids if p))
        if len(participants) < 2:
            raise ValueError("A conversation needs at least two participants")
        roles = await self._directory.roles_of(participants)
        convo = await self._conversation_repo.create(
            participants,
            conversation_type,
            is_group=True,
            group_name=group_name,
            participant_roles=roles,
        )
        logger.info(
            "Created %s conversation %s with %d participants",
            conversation_type, convo["_id"], len(participants),
        )
        return convo["_id"]

    async def create_conversation(
        self,
        creator_id: str,
        participant_ids: List[str],
        is_group: bool = False,
        group_name: Optional[str] = None,
    ) -> str:
        participants = list(dict.fromkeys([creator_id, *participant_ids]))
        if len(participants) == 2 and not is_group:
            return await self.find_or_create_direct(participants[0], participants[1])
        return await self.create_group(participants, group_name or DEFAULT_GROUP_NAME)

    async def get(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        return await self._conversation_repo.get(conversation_id)

    async def get_with_messages(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        convo = await self._conversation_repo.get(conversation_id)
        if not convo:
            return None
        convo["messages"] = await self._message_repo.get_messages_by_conversation(conversation_id)
        return convo

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        conversations = await self._conversation_repo.list_for_user(user_id)
        messages = await self._message_repo.get_messages_for_conversations([c["_id"] for c in conversations])
        for convo in conversations:
            convo["messages"] = messages.get(convo["_id"], [])
        return conversations

    async def increment_unread(self, conversation_id: str, exclude_user_id: str) -> bool:
        return await self._conversation_repo.increment_unread(conversation_id, exclude_user_id)

    async def clear_unread(self, conversation_id: str, user_id: str) -> bool:
        return await self._conversation_repo.reset_unread(conversation_id, user_id)
