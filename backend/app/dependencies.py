"""
Inkwell Backend — Request Dependencies
=======================================

What:  FastAPI dependencies shared by the routers.
Why:   The caller's identity is asserted by the upstream gateway in request
       headers. Parsing it once here gives every route an explicit Actor to
       pass down; no service ever looks the caller up on its own.
"""

import logging
import uuid
from typing import Optional

from fastapi import Header

from app.exceptions import AuthenticationError
from app.schemas.actor import Actor

logger = logging.getLogger(__name__)


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None, description="Caller's user ID (UUID)"),
    x_user_email: Optional[str] = Header(default=None, description="Caller's email"),
) -> Actor:
    """
    Build the Actor for this request.

    Raises:
        AuthenticationError: X-User-ID missing or not a UUID (→ 401)
    """
    if not x_user_id:
        raise AuthenticationError()
    try:
        user_id = uuid.UUID(x_user_id.strip())
    except ValueError:
        logger.warning("Rejected malformed X-User-ID header")
        raise AuthenticationError("Invalid user identity", context={"header": "X-User-ID"})
    return Actor(id=user_id, email=x_user_email or None)
