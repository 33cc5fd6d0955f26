"""
samta/api/admin.py
Back-office API: member status, moderation, stats and audit trail.

All routes require an admin (role or X-Admin-Key); see samta.core.admin_auth.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from samta.api.deps import get_admin_service
from samta.core.admin_auth import AdminActor, require_admin
from samta.features.admin.service import AdminService
from samta.models.user import ModerationStatus, UserStatus

router = APIRouter(prefix="/api/admin", tags=["admin"])


class UserStatusUpdate(BaseModel):
    status: UserStatus


class ModerationUpdate(BaseModel):
    status: ModerationStatus


@router.get("/users")
async def list_users_endpoint(
    status: Optional[str] = Query(None, description="active | suspended | banned"),
    q: Optional[str] = Query(None, description="Search id, name or email"),
    actor: AdminActor = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    users = admin.list_users(actor.actor_id, status=status, query=q, key_verified=actor.key_verified)
    return {"data": [u.model_dump(mode="json") for u in users], "count": len(users)}


@router.post("/users/{user_id}/status")
async def set_user_status_endpoint(
    user_id: str,
    request: UserStatusUpdate,
    actor: AdminActor = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    """Suspend, ban or reactivate a member"""
    user = admin.set_user_status(actor.actor_id, user_id, request.status, key_verified=actor.key_verified)
    return {"data": user.model_dump(mode="json")}


@router.post("/users/{user_id}/moderation")
async def set_moderation_endpoint(
    user_id: str,
    request: ModerationUpdate,
    actor: AdminActor = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    user = admin.set_moderation_status(actor.actor_id, user_id, request.status, key_verified=actor.key_verified)
    return {"data": user.model_dump(mode="json")}


@router.get("/stats")
async def platform_stats_endpoint(
    actor: AdminActor = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    stats = admin.platform_stats(actor.actor_id, key_verified=actor.key_verified)
    return {"data": stats.model_dump(mode="json")}


@router.get("/audit")
async def audit_log_endpoint(
    limit: int = Query(100, ge=1, le=1000),
    actor: AdminActor = Depends(require_admin),
    admin: AdminService = Depends(get_admin_service),
):
    """Admin actions, newest first"""
    entries = admin.audit_log(actor.actor_id, limit=limit, key_verified=actor.key_verified)
    return {"data": [e.model_dump(mode="json") for e in entries], "count": len(entries)}
