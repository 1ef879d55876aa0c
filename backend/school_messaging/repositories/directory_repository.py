from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from school_messaging.models.user import ClassDocument, UserDocument


class DirectoryRepository:
    """Read-only access to the school's users, classes and timetable."""

    def __init__(self, db: AsyncIOMotorDatabase, school_id: str) -> None:
        self._users = db.get_collection("users")
        self._classes = db.get_collection("classes")
        self._timetable = db.get_collection("timetable")
        self._school_id = school_id

    @staticmethod
    async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
        await db["users"].create_index([("school_id", ASCENDING), ("role", ASCENDING)])
        await db["users"].create_index([("school_id", ASCENDING), ("homeroom_class_id", ASCENDING)])
        await db["timetable"].create_index([("school_id", ASCENDING), ("teacher_id", ASCENDING)])

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        user = await self._users.find_one({"_id": user_id, "school_id": self._school_id})
        if user:
            user["_id"] = str(user["_id"])
        return user

    async def list_users_by_role(self, role: str) -> List[UserDocument]:
        return await self._list(self._users, {"role": role})

    async def list_students_in_class(self, class_id: str) -> List[UserDocument]:
        return await self._list(self._users, {"role": "student", "homeroom_class_id": class_id})

    async def get_class(self, class_id: str) -> Optional[ClassDocument]:
        klass = await self._classes.find_one({"_id": class_id, "school_id": self._school_id})
        if klass:
            klass["_id"] = str(klass["_id"])
        return klass

    async def list_classes(self) -> List[ClassDocument]:
        return await self._list(self._classes, {})

    async def list_class_ids_taught_by(self, teacher_id: str) -> List[str]:
        entries = await self._list(self._timetable, {"teacher_id": teacher_id})
        return sorted({e["class_id"] for e in entries if e.get("class_id")})

    async def _list(self, collection, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        cursor = collection.find({"school_id": self._school_id, **query}).sort("_id", ASCENDING)
        items = await cursor.to_list(length=None)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items
