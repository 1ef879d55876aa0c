from datetime import datetime, timezone
from typing import Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from school_messaging.models.conversation import ConversationDocument, LastMessage


def direct_pair_key(user_a: str, user_b: str) -> str:
    low, high = sorted([user_a, user_b])
    # length prefix keeps ids that contain ":" from colliding
    return f"direct:{len(low)}:{low}:{high}"


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase, school_id: str) -> None:
        self._db = db
        self._school_id = school_id

    @property
    def collection(self):
        return self._db["conversations"]

    @staticmethod
    async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
        await db["conversations"].create_index([("school_id", ASCENDING), ("participants", ASCENDING)])
        await db["conversations"].create_index([("updated_at", DESCENDING)])

    def _new_document(
        self,
        participants: List[str],
        conversation_type: str,
        is_group: bool,
        group_name: Optional[str],
        participant_roles: Optional[Dict[str, str]],
    ) -> ConversationDocument:
        now = datetime.now(timezone.utc)
        return {
            "school_id": self._school_id,
            "participants": participants,
            "participant_roles": dict(participant_roles or {}),
            "is_group": is_group,
            "group_name": group_name,
            "type": conversation_type,
            "unread_count": {},
            "last_message": None,
            "message_seq": 0,
            "created_at": now,
            "updated_at": now,
        }

    async def get_or_create_direct(
        self,
        user_a: str,
        user_b: str,
        participant_roles: Optional[Dict[str, str]] = None,
    ) -> ConversationDocument:
        # The pair key is the document _id, so the unique _id index decides
        # which of two concurrent creators wins.
        key = direct_pair_key(user_a, user_b)
        pair = sorted([user_a, user_b])
        existing = await self.get(key)
        if existing:
            if sorted(existing.get("participants", [])) != pair:
                raise ValueError(f"Conversation {key} does not belong to {pair}")
            return existing
        doc = self._new_document(pair, "direct", False, None, participant_roles)
        doc["_id"] = key
        try:
            await self.collection.insert_one(doc)
        except DuplicateKeyError:
            winner = await self.get(key)
            if winner is None:
                raise
            return winner
        return doc

    async def create(
        self,
        participants: List[str],
        conversation_type: str,
        is_group: bool,
        group_name: Optional[str] = None,
        participant_roles: Optional[Dict[str, str]] = None,
    ) -> ConversationDocument:
        doc = self._new_document(participants, conversation_type, is_group, group_name, participant_roles)
        doc["_id"] = str(ObjectId())
        await self.collection.insert_one(doc)
        return doc

    async def get(self, conversation_id: str, session=None) -> Optional[ConversationDocument]:
        doc = await self.collection.find_one(
            {"_id": conversation_id, "school_id": self._school_id}, session=session
        )
        if doc:
            doc["_id"] = str(doc["_id"])
        return doc

    async def list_for_user(self, user_id: str) -> List[ConversationDocument]:
        query = {"school_id": self._school_id, "participants": user_id}
        cursor = self.collection.find(query).sort([("updated_at", DESCENDING), ("_id", DESCENDING)])
        items = await cursor.to_list(length=None)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def next_sequence(self, conversation_id: str, session=None) -> Optional[int]:
        doc = await self.collection.find_one_and_update(
            {"_id": conversation_id, "school_id": self._school_id},
            {"$inc": {"message_seq": 1}},
            projection={"message_seq": 1},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return doc["message_seq"] if doc else None

    async def update_on_new_message(self, conversation_id: str, last_message: LastMessage, session=None) -> None:
        await self.collection.update_one(
            {"_id": conversation_id, "school_id": self._school_id},
            {"$set": {"last_message": last_message, "updated_at": last_message["timestamp"]}},
            session=session,
        )

    async def increment_unread(self, conversation_id: str, exclude_user_id: str, session=None) -> bool:
        doc = await self.get(conversation_id, session=session)
        if not doc:
            return False
        increments = {
            f"unread_count.{p}": 1 for p in doc.get("participants", []) if p != exclude_user_id
        }
        if increments:
            await self.collection.update_one(
                {"_id": conversation_id, "school_id": self._school_id},
                {"$inc": increments},
                session=session,
            )
        return True

    async def reset_unread(self, conversation_id: str, user_id: str) -> bool:
        result = await self.collection.update_one(
            {"_id": conversation_id, "school_id": self._school_id},
            {"$set": {f"unread_count.{user_id}": 0}},
        )
        return result.matched_count > 0

    async def redact_last_message(self, conversation_id: str, message_id: str, placeholder: str) -> None:
        await self.collection.update_one(
            {"_id": conversation_id, "school_id": self._school_id, "last_message.message_id": message_id},
            {"$set": {"last_message.content": placeholder}},
        )
