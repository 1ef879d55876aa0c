import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from school_messaging.services.directory_service import DirectoryService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Permissions:
    can_send_announcement: bool = False
    can_send_to_class: bool = False
    can_moderate_messages: bool = False


_CAPABILITIES = {
    "admin": Permissions(can_send_announcement=True, can_send_to_class=True, can_moderate_messages=True),
    "teacher": Permissions(can_send_announcement=True, can_send_to_class=True),
    "student": Permissions(),
    "parent": Permissions(),
}

_ANNOUNCEMENT_AUDIENCE = {
    "admin": frozenset({"admin", "teacher", "student", "parent"}),
    "teacher": frozenset({"student", "parent"}),
}


def permissions_for(role: Optional[str]) -> Permissions:
    return _CAPABILITIES.get(role or "", Permissions())


def announcement_roles_for(role: Optional[str]) -> FrozenSet[str]:
    """Roles a sender with ``role`` may address in an announcement."""
    if not permissions_for(role).can_send_announcement:
        return frozenset()
    return _ANNOUNCEMENT_AUDIENCE.get(role or "", frozenset())


class ContactPolicy:

    def __init__(self, directory: DirectoryService) -> None:
        self._directory = directory

    async def can_message(self, sender: dict, recipient_id: str) -> bool:
        if not sender or not recipient_id:
            return False
        recipient = await self._directory.get_user(recipient_id)
        if not recipient:
            return False

        sender_id = sender["_id"]
        sender_role = sender.get("role")
        recipient_role = recipient.get("role")

        if sender_role == "admin":
            return True
        if recipient_role == "admin":
            return sender_role in ("teacher", "student", "parent")

        if sender_role == "teacher":
            taught = set(await self._directory.classes_taught_by(sender_id))
            if recipient_role == "student":
                return recipient.get("homeroom_class_id") in taught
            if recipient_role == "parent":
                return await self._any_child_in(recipient.get("children_ids") or [], taught)
            return False

        if sender_role == "student":
            if recipient_role == "parent":
                return sender_id in (recipient.get("children_ids") or [])
            if recipient_role == "teacher":
                homeroom = sender.get("homeroom_class_id")
                if not homeroom:
                    return False
                return homeroom in await self._directory.classes_taught_by(recipient_id)
            return False

        if sender_role == "parent":
            children = sender.get("children_ids") or []
            if recipient_role == "student":
                return recipient_id in children
            if recipient_role == "teacher":
                taught = set(await self._directory.classes_taught_by(recipient_id))
                return await self._any_child_in(children, taught)
            return False

        logger.warning("Unknown sender role %r for user %s", sender_role, sender_id)
        return False

    async def _any_child_in(self, children_ids, class_ids) -> bool:
        if not class_ids:
            return False
        for child_id in children_ids:
            child = await self._directory.get_user(child_id)
            if child and child.get("homeroom_class_id") in class_ids:
                return True
        return False
