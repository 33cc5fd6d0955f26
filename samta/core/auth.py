"""
Acting-user resolution for the API.

Identity is established upstream; requests carry the member id in the
X-User-Id header.
"""
import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Acting member id"),
) -> str:
    """
    Extract the acting user id from the request.

    Raises:
        HTTPException 401: header missing or blank
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()

    raise HTTPException(
        status_code=401,
        detail={
            "error": "unauthorized",
            "message": "Missing X-User-Id header",
        },
    )
