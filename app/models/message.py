from datetime import datetime
from typing import Literal, TypedDict

from bson import ObjectId


MessageType = Literal["text", "image", "file"]

MESSAGE_TYPES = ("text", "image", "file")


class MessageDocument(TypedDict, total=False):
    _id: ObjectId
    conversationId: ObjectId
    sender: str
    content: str
    messageType: MessageType
    # flipped only by a read-sweep of the other participant
    read: bool
    createdAt: datetime
