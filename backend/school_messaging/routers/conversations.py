from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from school_messaging.schemas.messaging import (
    ConversationCreate,
    ConversationPublic,
    MessageCreate,
    MessageFilter,
    MessagePublic,
)
from school_messaging.services.chat_service import reply_preview
from school_messaging.services.messaging_session import MessagingSession
from school_messaging.utils.dependencies import get_messaging_session


router = APIRouter(prefix="/conversations", tags=["chat"])


async def _message_public(message: Dict[str, Any], messages: List[Dict[str, Any]], session: MessagingSession) -> MessagePublic:
    return MessagePublic(
        id=message["_id"],
        sender_id=message["sender_id"],
        sender_name=await session.display_name(message["sender_id"]),
        content=message["content"],
        timestamp=message["timestamp"],
        status=message.get("status", "sent"),
        read_by=message.get("read_by", []),
        reply_to=message.get("reply_to"),
        reply_preview=reply_preview(message, messages),
        is_system_message=message.get("is_system_message", False),
    )


async def _conversation_public(convo: Dict[str, Any], session: MessagingSession) -> ConversationPublic:
    messages = convo.get("messages", [])
    title = convo.get("group_name")
    if not title:
        others = [p for p in convo["participants"] if p != session.user_id]
        title = ", ".join([await session.display_name(p) for p in others]) or "Conversation"
    return ConversationPublic(
        id=convo["_id"],
        type=convo["type"],
        participants=convo["participants"],
        is_group=convo.get("is_group", False),
        group_name=convo.get("group_name"),
        title=title,
        unread_count=convo.get("unread_count", {}).get(session.user_id, 0),
        last_message=convo.get("last_message"),
        created_at=convo["created_at"],
        updated_at=convo["updated_at"],
        messages=[await _message_public(m, messages, session) for m in messages],
    )


@router.get("", response_model=List[ConversationPublic])
async def list_conversations(session: MessagingSession = Depends(get_messaging_session)):
    conversations = await session.list_conversations()
    return [await _conversation_public(c, session) for c in conversations]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_conversation(body: ConversationCreate, session: MessagingSession = Depends(get_messaging_session)):
    try:
        conversation_id = await session.create_conversation(body.participant_ids, body.is_group, body.group_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"conversation_id": conversation_id}


@router.post("/search", response_model=List[ConversationPublic])
async def search_conversations(body: MessageFilter, session: MessagingSession = Depends(get_messaging_session)):
    results = await session.search_messages(body)
    return [await _conversation_public(c, session) for c in results]


@router.get("/{conversation_id}", response_model=ConversationPublic)
async def open_conversation(conversation_id: str, session: MessagingSession = Depends(get_messaging_session)):
    convo = await session.set_current_conversation(conversation_id)
    if not convo:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return await _conversation_public(convo, session)


@router.post("/{conversation_id}/read")
async def mark_read(conversation_id: str, session: MessagingSession = Depends(get_messaging_session)):
    count = await session.mark_read(conversation_id)
    if count is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"updated": count}


@router.post("/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(conversation_id: str, body: MessageCreate, session: MessagingSession = Depends(get_messaging_session)):
    try:
        saved = await session.send_message(conversation_id, body.content, body.reply_to)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if saved is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"message_id": saved["_id"], "conversation_id": conversation_id, "seq": saved["seq"]}


@router.delete("/{conversation_id}/messages/{message_id}")
async def delete_message(conversation_id: str, message_id: str, session: MessagingSession = Depends(get_messaging_session)):
    ok = await session.delete_message(conversation_id, message_id)
    if ok is None:
        raise HTTPException(status_code=404, detail="Message not found")
    if not ok:
        raise HTTPException(status_code=403, detail="Message could not be deleted. Check your permissions.")
    return {"deleted": True}
