from typing import Optional

from fastapi import Header, HTTPException, Request, status

from app.utils.cache import SimpleCache


async def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Caller identity, already validated by the upstream auth layer."""
    user_id = (x_user_id or "").strip()
    # ids become Mongo field paths in unreadCount, reject anything that would nest or inject operators
    if not user_id or "." in user_id or user_id.startswith("$"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User ID required")
    return user_id


def get_realtime_bus(request: Request):
    return request.app.state.bus


def get_user_cache(request: Request) -> SimpleCache:
    return request.app.state.user_cache
