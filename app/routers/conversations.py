import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.core.config import Settings, get_settings
from app.core.errors import ChatError, StorageError
from app.database.connection import mongo_db_dependency
from app.repositories.conversation_repository import ConversationRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.user_repository import UserRepository
from app.schemas.message import CreateConversationRequest, SendMessageRequest
from app.services.chat_service import ChatService
from app.utils.cache import SimpleCache
from app.utils.dependencies import get_current_user_id, get_realtime_bus, get_user_cache


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["chat"])


def get_chat_service(
    db=Depends(mongo_db_dependency),
    bus=Depends(get_realtime_bus),
    cache: SimpleCache = Depends(get_user_cache),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    convo_repo = ConversationRepository(db)
    msg_repo = MessageRepository(db)
    user_repo = UserRepository(db, cache, ttl=settings.USER_CACHE_TTL_SECONDS)
    return ChatService(msg_repo, convo_repo, user_repo, bus, max_length=settings.MESSAGE_MAX_LENGTH)


def _http_error(exc: ChatError) -> HTTPException:
    if isinstance(exc, StorageError):
        logger.exception("Storage failure: %s", exc.detail)
    else:
        logger.info("Request rejected (%d): %s", exc.status_code, exc.detail)
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


@router.get("")
async def list_conversations(user_id: str = Depends(get_current_user_id), service: ChatService = Depends(get_chat_service)):
    try:
        items = await service.list_conversations(user_id)
    except ChatError as exc:
        raise _http_error(exc) from exc
    return {"conversations": items}


@router.post("")
async def open_conversation(payload: CreateConversationRequest, user_id: str = Depends(get_current_user_id), service: ChatService = Depends(get_chat_service)):
    try:
        conversation_id, created = await service.open_conversation(
            user_id,
            payload.otherUserId,
            listing_id=payload.listingId,
            listing_type=payload.listingType,
            initial_message=payload.initialMessage,
        )
    except ChatError as exc:
        raise _http_error(exc) from exc
    message = "Conversation created successfully" if created else "Conversation already exists"
    return {"conversationId": conversation_id, "message": message}


@router.get("/unread-count")
async def unread_count(user_id: str = Depends(get_current_user_id), service: ChatService = Depends(get_chat_service)):
    try:
        total = await service.unread_total(user_id)
    except ChatError as exc:
        raise _http_error(exc) from exc
    return {"total": total}


@router.get("/{conversation_id}/messages")
async def list_messages(conversation_id: str, user_id: str = Depends(get_current_user_id), service: ChatService = Depends(get_chat_service)):
    try:
        messages = await service.fetch_messages(conversation_id, user_id)
    except ChatError as exc:
        raise _http_error(exc) from exc
    return {"messages": messages}


@router.post("/{conversation_id}/messages")
async def send_message(
    conversation_id: str,
    payload: Optional[SendMessageRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    payload = payload or SendMessageRequest()
    try:
        message = await service.send_message(conversation_id, user_id, payload.content, payload.messageType)
    except ChatError as exc:
        raise _http_error(exc) from exc
    return {"message": message, "success": True}
