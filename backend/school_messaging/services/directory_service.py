from typing import Any, Dict, List, Optional

from school_messaging.repositories.directory_repository import DirectoryRepository


class DirectoryService:
    """Read-through cache over the school directory.

    One instance lives for one session, so cached records never outlive the
    request that loaded them.
    """

    def __init__(self, directory_repo: DirectoryRepository) -> None:
        self._repo = directory_repo
        self._users: Dict[str, Optional[Dict[str, Any]]] = {}
        self._classes: Dict[str, Optional[Dict[str, Any]]] = {}
        self._taught: Dict[str, List[str]] = {}

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        if user_id not in self._users:
            self._users[user_id] = await self._repo.get_user(user_id)
        return self._users[user_id]

    async def get_class(self, class_id: str) -> Optional[Dict[str, Any]]:
        if class_id not in self._classes:
            self._classes[class_id] = await self._repo.get_class(class_id)
        return self._classes[class_id]

    async def list_users_by_role(self, role: str) -> List[Dict[str, Any]]:
        users = await self._repo.list_users_by_role(role)
        for u in users:
            self._users[u["_id"]] = u
        return users

    async def list_classes(self) -> List[Dict[str, Any]]:
        classes = await self._repo.list_classes()
        for c in classes:
            self._classes[c["_id"]] = c
        return classes

    async def list_class_students(self, class_id: str) -> List[Dict[str, Any]]:
        students = await self._repo.list_students_in_class(class_id)
        for s in students:
            self._users[s["_id"]] = s
        return students

    async def classes_taught_by(self, teacher_id: str) -> List[str]:
        if teacher_id not in self._taught:
            self._taught[teacher_id] = await self._repo.list_class_ids_taught_by(teacher_id)
        return self._taught[teacher_id]

    async def display_name(self, user_id: str) -> str:
        user = await self.get_user(user_id)
        if not user:
            return "Unknown"
        name = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
        return name or "Unknown"

    async def roles_of(self, user_ids: List[str]) -> Dict[str, str]:
        roles: Dict[str, str] = {}
        for uid in user_ids:
            user = await self.get_user(uid)
            if user and user.get("role"):
                roles[uid] = user["role"]
        return roles
