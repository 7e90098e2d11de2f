from typing import Optional, TypedDict


# display fields joined onto messages and conversations; credentials are never read
class UserSummary(TypedDict):

    _id: str
    name: Optional[str]
    email: Optional[str]
    role: Optional[str]
