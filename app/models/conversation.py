from datetime import datetime
from typing import List, Literal, Optional, TypedDict

from bson import ObjectId


ListingType = Literal["crop", "livestock", "land"]

LISTING_TYPES = ("crop", "livestock", "land")


class LastMessage(TypedDict):
    content: str
    sender: str
    createdAt: datetime


class ConversationDocument(TypedDict, total=False):
    _id: ObjectId
    # always exactly two distinct user ids
    participants: List[str]
    listingId: Optional[str]
    listingType: Optional[ListingType]
    lastMessage: LastMessage
    # per-user unread counters (user_id -> count), missing entry reads as 0
    unreadCount: dict[str, int]
    createdAt: datetime
    updatedAt: datetime
