from fastapi import APIRouter, Depends, HTTPException

from school_messaging.schemas.messaging import AnnouncementCreate, ClassMessageCreate, PermissionsPublic
from school_messaging.services.messaging_session import MessagingSession
from school_messaging.services.permissions import announcement_roles_for
from school_messaging.utils.dependencies import get_messaging_session


router = APIRouter(prefix="/broadcasts", tags=["broadcast"])


@router.get("/permissions", response_model=PermissionsPublic)
async def my_permissions(session: MessagingSession = Depends(get_messaging_session)):
    perms = session.permissions
    return PermissionsPublic(
        can_send_announcement=perms.can_send_announcement,
        can_send_to_class=perms.can_send_to_class,
        can_moderate_messages=perms.can_moderate_messages,
        announcement_roles=sorted(announcement_roles_for(session.user.get("role"))),
    )


@router.get("/classes")
async def list_classes(session: MessagingSession = Depends(get_messaging_session)):
    classes = await session.fetch_classes()
    return {"classes": [{"id": c["_id"], "name": c.get("name")} for c in classes]}


@router.post("/announcements")
async def send_announcement(body: AnnouncementCreate, session: MessagingSession = Depends(get_messaging_session)):
    try:
        ok = await session.send_announcement(body.content, list(body.target_roles))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=403, detail="Announcement was not sent.")
    return {"sent": True}


@router.post("/classes/{class_id}")
async def send_class_message(class_id: str, body: ClassMessageCreate, session: MessagingSession = Depends(get_messaging_session)):
    try:
        ok = await session.send_class_message(class_id, body.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not ok:
        raise HTTPException(status_code=403, detail="Class message was not sent.")
    return {"sent": True}
