from datetime import datetime, timezone
from typing import Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from school_messaging.models.message import TOMBSTONE_TEXT, MessageDocument


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase, school_id: str) -> None:
        self._db = db
        self._school_id = school_id

    @property
    def collection(self):
        return self._db["messages"]

    @staticmethod
    async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
        await db["messages"].create_index(
            [("school_id", ASCENDING), ("conversation_id", ASCENDING), ("seq", ASCENDING)]
        )

    async def save_message(
        self,
        conversation_id: str,
        seq: int,
        sender_id: str,
        content: str,
        reply_to: Optional[str] = None,
        session=None,
    ) -> MessageDocument:
        doc: MessageDocument = {
            "_id": str(ObjectId()),
            "school_id": self._school_id,
            "conversation_id": conversation_id,
            "seq": seq,
            "sender_id": sender_id,
            "content": content,
            "timestamp": datetime.now(timezone.utc),
            "status": "sent",
            "read_by": [sender_id],
            "reply_to": reply_to,
            "is_system_message": False,
        }
        await self.collection.insert_one(doc, session=session)
        return doc

    async def get_message(self, conversation_id: str, message_id: str) -> Optional[MessageDocument]:
        return await self.collection.find_one(
            {"_id": message_id, "conversation_id": conversation_id, "school_id": self._school_id}
        )

    async def get_messages_by_conversation(self, conversation_id: str) -> List[MessageDocument]:
        query = {"school_id": self._school_id, "conversation_id": conversation_id}
        cursor = self.collection.find(query).sort([("seq", ASCENDING), ("_id", ASCENDING)])
        items = await cursor.to_list(length=None)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def get_messages_for_conversations(self, conversation_ids: List[str]) -> Dict[str, List[MessageDocument]]:
        grouped: Dict[str, List[MessageDocument]] = {cid: [] for cid in conversation_ids}
        if not conversation_ids:
            return grouped
        query = {"school_id": self._school_id, "conversation_id": {"$in": conversation_ids}}
        cursor = self.collection.find(query).sort([("seq", ASCENDING), ("_id", ASCENDING)])
        async for doc in cursor:
            doc["_id"] = str(doc.get("_id"))
            grouped.setdefault(doc["conversation_id"], []).append(doc)
        return grouped

    async def mark_delivered(self, conversation_id: str, receiver_id: str) -> int:
        result = await self.collection.update_many(
            {
                "school_id": self._school_id,
                "conversation_id": conversation_id,
                "sender_id": {"$ne": receiver_id},
                "status": "sent",
            },
            {"$set": {"status": "delivered"}},
        )
        return result.modified_count or 0

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        result = await self.collection.update_many(
            {
                "school_id": self._school_id,
                "conversation_id": conversation_id,
                "sender_id": {"$ne": reader_id},
                "read_by": {"$ne": reader_id},
            },
            {"$set": {"status": "read"}, "$addToSet": {"read_by": reader_id}},
        )
        return result.modified_count or 0

    async def tombstone(self, conversation_id: str, message_id: str) -> bool:
        result = await self.collection.update_one(
            {"_id": message_id, "conversation_id": conversation_id, "school_id": self._school_id},
            {"$set": {"content": TOMBSTONE_TEXT, "is_system_message": True}},
        )
        return bool(result.matched_count)
