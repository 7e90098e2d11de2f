from typing import Any

from pydantic import BaseModel


# fields stay untyped here; ChatService validates them so bad values map to 400, not 422
class SendMessageRequest(BaseModel):

    content: Any = None
    messageType: Any = "text"


class CreateConversationRequest(BaseModel):

    otherUserId: Any = None
    listingId: Any = None
    listingType: Any = None
    initialMessage: Any = None
