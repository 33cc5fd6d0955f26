"""
Admin authentication for the back office.

Two ways in:
- X-User-Id of a member whose role is admin
- X-Admin-Key matching settings.ADMIN_KEY (operator access, no account needed)

The key is compared in constant time and never logged; audit entries record
a short hash of it as the actor id.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Literal, Optional

from fastapi import HTTPException, Request

from samta.core.config import settings
from samta.features.store.memory import get_store
from samta.models.user import UserRole

logger = logging.getLogger(__name__)


@dataclass
class AdminActor:
    """An authenticated back-office caller."""
    actor_id: str  # member id, or "admin-key:<hash>"
    auth_mechanism: Literal["admin_role", "x_admin_key"] = "admin_role"

    @property
    def key_verified(self) -> bool:
        return self.auth_mechanism == "x_admin_key"


def verify_admin_key(request: Request) -> Optional[AdminActor]:
    expected = settings.ADMIN_KEY
    if not expected:
        return None

    supplied = request.headers.get("X-Admin-Key", "").strip()
    if not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
        return None

    key_hash = hashlib.sha256(supplied.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin-key:{key_hash}", auth_mechanism="x_admin_key")


def verify_admin_role(request: Request) -> Optional[AdminActor]:
    user_id = request.headers.get("X-User-Id", "").strip()
    if not user_id:
        return None
    user = get_store().get_user(user_id)
    if user is None or user.role != UserRole.ADMIN:
        return None
    return AdminActor(actor_id=user_id, auth_mechanism="admin_role")


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: admin role or a valid admin key.

    Raises:
        HTTPException 401: no credentials at all
        HTTPException 403: credentials present but not an admin
    """
    actor = verify_admin_key(request) or verify_admin_role(request)
    if actor:
        return actor

    has_credentials = bool(
        request.headers.get("X-Admin-Key") or request.headers.get("X-User-Id")
    )
    logger.warning(
        "admin.unauthorized",
        extra={"path": request.url.path, "method": request.method},
    )
    if has_credentials:
        raise HTTPException(
            status_code=403,
            detail={"error": "Admin access required", "code": "admin_forbidden"},
        )
    raise HTTPException(
        status_code=401,
        detail={
            "error": "Unauthorized: missing admin credentials",
            "code": "admin_unauthorized",
            "hint": "Send X-User-Id of an admin account or X-Admin-Key.",
        },
    )
