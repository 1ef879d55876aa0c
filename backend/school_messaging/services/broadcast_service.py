import logging
from typing import Any, Dict, List

from school_messaging.services.chat_service import ChatService
from school_messaging.services.conversation_service import ConversationService
from school_messaging.services.directory_service import DirectoryService
from school_messaging.services.permissions import announcement_roles_for, permissions_for


logger = logging.getLogger(__name__)

ANNOUNCEMENT_GROUP_NAME = "Announcement"


class BroadcastService:

    def __init__(
        self,
        conversation_service: ConversationService,
        chat_service: ChatService,
        directory: DirectoryService,
    ) -> None:
        self._conversation_service = conversation_service
        self._chat_service = chat_service
        self._directory = directory

    async def send_announcement(self, sender: Dict[str, Any], content: str, target_roles: List[str]) -> bool:
        if not content or not content.strip():
            raise ValueError("Message content cannot be empty")
        role = sender.get("role")
        if not permissions_for(role).can_send_announcement:
            logger.warning("User %s (%s) may not send announcements", sender.get("_id"), role)
            return False
        allowed = announcement_roles_for(role)
        roles = list(dict.fromkeys(target_roles))
        if not roles or any(r not in allowed for r in roles):
            logger.warning("User %s (%s) may not announce to %s", sender.get("_id"), role, roles)
            return False

        recipients: List[str] = []
        for target_role in roles:
            for user in await self._directory.list_users_by_role(target_role):
                recipients.append(user["_id"])
        return await self._broadcast(sender, recipients, content, "announcement", ANNOUNCEMENT_GROUP_NAME)

    async def send_class_message(self, sender: Dict[str, Any], class_id: str, content: str) -> bool:
        if not content or not content.strip():
            raise ValueError("Message content cannot be empty")
        role = sender.get("role")
        if not permissions_for(role).can_send_to_class:
            logger.warning("User %s (%s) may not message classes", sender.get("_id"), role)
            return False
        klass = await self._directory.get_class(class_id)
        if not klass:
            return False
        students = await self._directory.list_class_students(class_id)
        return await self._broadcast(
            sender, [s["_id"] for s in students], content, "class", klass.get("name") or class_id
        )

    async def _broadcast(
        self,
        sender: Dict[str, Any],
        recipient_ids: List[str],
        content: str,
        conversation_type: str,
        group_name: str,
    ) -> bool:
        sender_id = sender["_id"]
        recipients = [r for r in dict.fromkeys(recipient_ids) if r != sender_id]
        if not recipients:
            logger.info("No recipients for %s broadcast from %s", conversation_type, sender_id)
            return False
        conversation_id = await self._conversation_service.create_group(
            [sender_id, *recipients], group_name, conversation_type=conversation_type
        )
        message = await self._chat_service.send(conversation_id, sender_id, content)
        logger.info(
            "%s broadcast %s from %s reached %d recipients",
            conversation_type.capitalize(), conversation_id, sender_id, len(recipients),
        )
        return message is not None
