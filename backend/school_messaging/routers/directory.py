from fastapi import APIRouter, Depends, HTTPException

from school_messaging.models.user import ROLES
from school_messaging.services.messaging_session import MessagingSession
from school_messaging.utils.dependencies import get_messaging_session


router = APIRouter(prefix="/directory", tags=["directory"])


@router.get("/users/{role}")
async def users_by_role(role: str, session: MessagingSession = Depends(get_messaging_session)):
    if role not in ROLES:
        raise HTTPException(status_code=400, detail="Unknown role.")
    users = await session.fetch_users_by_role(role)
    return {
        "users": [
            {"id": u["_id"], "first_name": u.get("first_name"), "last_name": u.get("last_name"), "role": u.get("role")}
            for u in users
        ]
    }
