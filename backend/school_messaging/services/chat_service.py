import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from school_messaging.database.transactions import optional_transaction
from school_messaging.models.conversation import LastMessage
from school_messaging.models.message import TOMBSTONE_TEXT, MessageDocument
from school_messaging.repositories.conversation_repository import ConversationRepository
from school_messaging.repositories.message_repository import MessageRepository
from school_messaging.services.directory_service import DirectoryService
from school_messaging.services.permissions import permissions_for


logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50
MISSING_REPLY_TEXT = "Original message unavailable"


def resolve_reply(message: MessageDocument, messages: List[MessageDocument]) -> Optional[MessageDocument]:
    reply_to = message.get("reply_to")
    if not reply_to:
        return None
    for candidate in messages:
        if candidate["_id"] == reply_to:
            return candidate
    return None


def reply_preview(message: MessageDocument, messages: List[MessageDocument]) -> Optional[str]:
    if not message.get("reply_to"):
        return None
    target = resolve_reply(message, messages)
    if target is None:
        return MISSING_REPLY_TEXT
    return target.get("content", "")[:PREVIEW_LENGTH]


class ChatService:

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        directory: DirectoryService,
        use_transactions: bool = False,
    ) -> None:
        self._db = db
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._directory = directory
        self._use_transactions = use_transactions

    async def send(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        reply_to: Optional[str] = None,
    ) -> Optional[MessageDocument]:
        if not content or not content.strip():
            raise ValueError("Message content cannot be empty")
        content = content.strip()

        convo = await self._conversation_repo.get(conversation_id)
        if not convo:
            return None
        if sender_id not in convo.get("participants", []):
            raise PermissionError("Sender is not a participant of this conversation")

        if reply_to and not await self._message_repo.get_message(conversation_id, reply_to):
            logger.warning("Reply target %s not found in conversation %s", reply_to, conversation_id)

        async with optional_transaction(self._db, self._use_transactions) as session:
            seq = await self._conversation_repo.next_sequence(conversation_id, session=session)
            if seq is None:
                return None
            saved = await self._message_repo.save_message(
                conversation_id=conversation_id,
                seq=seq,
                sender_id=sender_id,
                content=content,
                reply_to=reply_to,
                session=session,
            )
            last_message: LastMessage = {
                "message_id": saved["_id"],
                "content": content[:PREVIEW_LENGTH],
                "timestamp": saved["timestamp"],
                "sender_id": sender_id,
            }
            await self._conversation_repo.update_on_new_message(conversation_id, last_message, session=session)
            await self._conversation_repo.increment_unread(conversation_id, exclude_user_id=sender_id, session=session)
        return saved

    async def mark_delivered(self, conversation_id: str, user_id: str) -> int:
        return await self._message_repo.mark_delivered(conversation_id, user_id)

    async def mark_read(self, conversation_id: str, user_id: str) -> int:
        modified = await self._message_repo.mark_read(conversation_id, user_id)
        await self._conversation_repo.reset_unread(conversation_id, user_id)
        return modified

    async def get_message(self, conversation_id: str, message_id: str) -> Optional[MessageDocument]:
        return await self._message_repo.get_message(conversation_id, message_id)

    async def delete_message(self, conversation_id: str, message_id: str, requester_id: str) -> bool:
        message = await self._message_repo.get_message(conversation_id, message_id)
        if not message:
            return False
        if message.get("sender_id") != requester_id:
            requester = await self._directory.get_user(requester_id)
            role = requester.get("role") if requester else None
            if not permissions_for(role).can_moderate_messages:
                logger.warning(
                    "User %s may not delete message %s in conversation %s",
                    requester_id, message_id, conversation_id,
                )
                return False
        ok = await self._message_repo.tombstone(conversation_id, message_id)
        if ok:
            await self._conversation_repo.redact_last_message(conversation_id, message_id, TOMBSTONE_TEXT)
            logger.info("Message %s in conversation %s deleted by %s", message_id, conversation_id, requester_id)
        return ok
