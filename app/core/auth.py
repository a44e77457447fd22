from typing import Optional
from fastapi import Header
from app.core.config import settings


async def get_actor(x_actor_id: Optional[str] = Header(default=None)) -> str:
    """
    Caller identity for audit entries.

    Opaque string taken from the ``X-Actor-Id`` header; nothing is verified.
    """
    if x_actor_id and x_actor_id.strip():
        return x_actor_id.strip()
    return settings.DEFAULT_ACTOR
