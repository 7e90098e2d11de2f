import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from app.core.errors import InvalidArgumentError, NotFoundError
from app.models.conversation import LISTING_TYPES
from app.models.message import MESSAGE_TYPES
from app.models.user import UserSummary
from app.repositories.conversation_repository import ConversationRepository
from app.repositories.message_repository import MessageRepository
from app.repositories.user_repository import UserRepository
from app.utils.realtime_bus import user_channel


logger = logging.getLogger(__name__)


def participant_ids(convo: Dict[str, Any]) -> List[str]:
    # older records hold ObjectId refs, newer ones plain strings
    return [str(p) for p in convo.get("participants", [])]


def serialize_message(doc: Dict[str, Any], senders: Dict[str, UserSummary]) -> Dict[str, Any]:
    sender_id = str(doc["sender"])
    return {
        "_id": str(doc["_id"]),
        "conversationId": str(doc["conversationId"]),
        "sender": senders.get(sender_id, {"_id": sender_id, "name": None, "email": None, "role": None}),
        "content": doc["content"],
        "messageType": doc.get("messageType", "text"),
        "read": doc.get("read", False),
        "createdAt": doc["createdAt"],
    }


def _optional_str(value: Any, field: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string")
    return value


class ChatService:

    def __init__(
        self,
        message_repo: MessageRepository,
        conversation_repo: ConversationRepository,
        user_repo: UserRepository,
        bus,
        max_length: int = 2000,
    ) -> None:
        self._message_repo = message_repo
        self._conversation_repo = conversation_repo
        self._user_repo = user_repo
        self._bus = bus
        self._max_length = max_length

    def _clean_content(self, content: Any) -> str:
        text = (_optional_str(content, "Message content") or "").strip()
        if not text:
            raise InvalidArgumentError("Message content required")
        if len(text) > self._max_length:
            raise InvalidArgumentError(f"Message cannot exceed {self._max_length} characters")
        return text

    async def _conversation_for(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        convo = await self._conversation_repo.get_by_id(conversation_id)
        if not convo or user_id not in participant_ids(convo):
            raise NotFoundError("Conversation not found")
        return convo

    async def send_message(self, conversation_id: str, sender_id: str, content: Any, message_type: Any = "text") -> Dict[str, Any]:
        text = self._clean_content(content)
        if not isinstance(message_type, str) or message_type not in MESSAGE_TYPES:
            raise InvalidArgumentError(f"Invalid message type: {message_type}")
        convo = await self._conversation_for(conversation_id, sender_id)

        now = datetime.now(timezone.utc)
        saved = await self._message_repo.save_message(
            conversation_id=convo["_id"],
            sender_id=sender_id,
            content=text,
            message_type=message_type,
            created_at=now,
        )
        # not atomic with the insert above; a failure here leaves a stale summary
        recipients = [p for p in participant_ids(convo) if p != sender_id]
        await self._conversation_repo.record_message(convo["_id"], sender_id, text, now, recipients)
        logger.debug("Message %s stored in conversation %s", saved["_id"], convo["_id"])

        sender = await self._user_repo.get_summary(sender_id)
        message = serialize_message(saved, {sender_id: sender})
        await self._publish(recipients, message)
        return message

    async def fetch_messages(self, conversation_id: str, caller_id: str) -> List[Dict[str, Any]]:
        convo = await self._conversation_for(conversation_id, caller_id)
        docs = await self._message_repo.get_messages_by_conversation(convo["_id"])

        swept = await self._message_repo.mark_read(convo["_id"], caller_id)
        # recount instead of writing 0, a send landing after the sweep stays counted
        remaining = await self._message_repo.count_unread(convo["_id"], caller_id)
        await self._conversation_repo.set_unread(convo["_id"], caller_id, remaining)
        logger.debug("Read-sweep by %s in conversation %s marked %d messages", caller_id, convo["_id"], swept)

        senders = await self._user_repo.get_summaries(str(d["sender"]) for d in docs)
        return [serialize_message(d, senders) for d in docs]

    async def list_conversations(self, user_id: str) -> List[Dict[str, Any]]:
        convos = await self._conversation_repo.list_for_user(user_id)
        users = await self._user_repo.get_summaries(p for c in convos for p in participant_ids(c))
        items = []
        for c in convos:
            last = c.get("lastMessage")
            if last:
                last = {**last, "sender": str(last.get("sender"))}
            items.append({
                "_id": str(c["_id"]),
                "participants": [users[p] for p in participant_ids(c)],
                "listingId": str(c["listingId"]) if c.get("listingId") else None,
                "listingType": c.get("listingType"),
                "lastMessage": last or None,
                "unreadCount": (c.get("unreadCount") or {}).get(user_id, 0),
                "createdAt": c.get("createdAt"),
                "updatedAt": c.get("updatedAt"),
            })
        return items

    async def open_conversation(
        self,
        user_id: str,
        other_user_id: Any,
        listing_id: Any = None,
        listing_type: Any = None,
        initial_message: Any = None,
    ) -> Tuple[str, bool]:
        other_user_id = _optional_str(other_user_id, "Other user ID")
        listing_id = _optional_str(listing_id, "Listing ID")
        initial_message = _optional_str(initial_message, "Initial message")
        if not other_user_id:
            raise InvalidArgumentError("Other user ID required")
        if other_user_id == user_id:
            raise InvalidArgumentError("Cannot start a conversation with yourself")
        if listing_type is not None and listing_type not in LISTING_TYPES:
            raise InvalidArgumentError(f"Invalid listing type: {listing_type}")

        existing = await self._conversation_repo.find_between(user_id, other_user_id, listing_id)
        if existing:
            return str(existing["_id"]), False

        has_initial = bool(initial_message and initial_message.strip())
        if has_initial:
            self._clean_content(initial_message)
        convo = await self._conversation_repo.create([user_id, other_user_id], listing_id, listing_type)
        logger.info("Conversation %s opened between %s and %s", convo["_id"], user_id, other_user_id)
        if has_initial:
            await self.send_message(str(convo["_id"]), user_id, initial_message)
        return str(convo["_id"]), True

    async def unread_total(self, user_id: str) -> int:
        return await self._conversation_repo.unread_total(user_id)

    async def _publish(self, recipients: List[str], message: Dict[str, Any]) -> None:
        if not getattr(self._bus, "enabled", False):
            return
        payload = json.dumps(jsonable_encoder({"type": "message", "message": message}))
        for receiver_id in recipients:
            try:
                await self._bus.publish(user_channel(receiver_id), payload)
            except RedisError:
                logger.warning("Realtime publish to %s failed", receiver_id, exc_info=True)
