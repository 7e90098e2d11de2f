from typing import Dict, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.errors import StorageError
from app.models.user import UserSummary
from app.utils.ids import id_variants
from app.utils.cache import SimpleCache


SUMMARY_FIELDS = {"name": 1, "email": 1, "role": 1}


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase, cache: Optional[SimpleCache] = None, ttl: float = 300) -> None:
        self._collection = db["users"]
        self._cache = cache
        self._ttl = ttl

    async def get_summary(self, user_id: str) -> UserSummary:
        key = f"user:summary:{user_id}"
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        # ids written by the marketplace are ObjectIds, seeded ones may be plain strings
        query = {"_id": {"$in": id_variants(user_id)}}
        try:
            user = await self._collection.find_one(query, SUMMARY_FIELDS)
        except PyMongoError as exc:
            raise StorageError("Failed to load user") from exc

        summary: UserSummary = {
            "_id": user_id,
            "name": user.get("name") if user else None,
            "email": user.get("email") if user else None,
            "role": user.get("role") if user else None,
        }
        if user and self._cache is not None:
            self._cache.set(key, summary, self._ttl)
        return summary

    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        summaries: Dict[str, UserSummary] = {}
        for user_id in user_ids:
            if user_id not in summaries:
                summaries[user_id] = await self.get_summary(user_id)
        return summaries
