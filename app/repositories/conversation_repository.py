import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from app.core.errors import InvalidArgumentError, StorageError
from app.models.conversation import ConversationDocument
from app.utils.ids import id_variants, to_object_id


logger = logging.getLogger(__name__)

# a stored conversation is only writable while it still has two participants
TWO_PARTICIPANTS = {"$size": 2}


def check_participants(participants: List[str]) -> None:
    if len(participants) != 2 or participants[0] == participants[1]:
        raise InvalidArgumentError("Conversation must have exactly 2 participants")


class ConversationRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("participants", ASCENDING)])
        await self.collection.create_index([("listingId", ASCENDING)])
        await self.collection.create_index([("updatedAt", DESCENDING)])

    async def get_by_id(self, conversation_id: str) -> Optional[ConversationDocument]:
        oid = to_object_id(conversation_id)
        if oid is None:
            return None
        try:
            doc = await self.collection.find_one({"_id": oid})
        except PyMongoError as exc:
            raise StorageError("Failed to load conversation") from exc
        return doc

    async def find_between(self, user_a: str, user_b: str, listing_id: Optional[str] = None) -> Optional[ConversationDocument]:
        try:
            return await self.collection.find_one(
                {
                    "$and": [
                        {"participants": {"$in": id_variants(user_a)}},
                        {"participants": {"$in": id_variants(user_b)}},
                    ],
                    "listingId": {"$in": id_variants(listing_id)} if listing_id else None,
                }
            )
        except PyMongoError as exc:
            raise StorageError("Failed to look up conversation") from exc

    async def create(
        self,
        participants: List[str],
        listing_id: Optional[str] = None,
        listing_type: Optional[str] = None,
    ) -> ConversationDocument:
        check_participants(participants)
        now = datetime.now(timezone.utc)
        doc: ConversationDocument = {
            "participants": list(participants),
            "listingId": listing_id,
            "listingType": listing_type,
            "unreadCount": {p: 0 for p in participants},
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as exc:
            raise StorageError("Failed to create conversation") from exc
        doc["_id"] = result.inserted_id
        return doc

    async def record_message(
        self,
        conversation_id: ObjectId,
        sender_id: str,
        content: str,
        created_at: datetime,
        recipients: Iterable[str],
    ) -> None:
        # $inc is applied server side, concurrent sends cannot lose increments
        update: Dict[str, Any] = {
            "$set": {
                "lastMessage": {"content": content, "sender": sender_id, "createdAt": created_at},
                "updatedAt": created_at,
            },
        }
        increments = {f"unreadCount.{r}": 1 for r in recipients}
        if increments:
            update["$inc"] = increments
        try:
            result = await self.collection.update_one(
                {"_id": conversation_id, "participants": TWO_PARTICIPANTS},
                update,
            )
        except PyMongoError as exc:
            raise StorageError("Failed to update conversation") from exc
        if result.matched_count == 0:
            logger.error("Conversation %s rejected summary update, participant invariant broken", conversation_id)
            raise StorageError("Conversation must have exactly 2 participants")

    async def set_unread(self, conversation_id: ObjectId, user_id: str, count: int) -> None:
        try:
            result = await self.collection.update_one(
                {"_id": conversation_id, "participants": TWO_PARTICIPANTS},
                {"$set": {f"unreadCount.{user_id}": count, "updatedAt": datetime.now(timezone.utc)}},
            )
        except PyMongoError as exc:
            raise StorageError("Failed to update unread count") from exc
        if result.matched_count == 0:
            raise StorageError("Conversation must have exactly 2 participants")

    async def list_for_user(self, user_id: str) -> List[ConversationDocument]:
        sort = [("updatedAt", DESCENDING), ("_id", DESCENDING)]
        try:
            cursor = self.collection.find({"participants": {"$in": id_variants(user_id)}}).sort(sort)
            return await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise StorageError("Failed to list conversations") from exc

    async def unread_total(self, user_id: str) -> int:
        try:
            cursor = self.collection.find({"participants": {"$in": id_variants(user_id)}}, {"unreadCount": 1})
            items = await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise StorageError("Failed to count unread messages") from exc
        return sum((it.get("unreadCount") or {}).get(user_id, 0) for it in items)
