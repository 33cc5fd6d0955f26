"""
samta/api/users.py
Member registration, profile search and lookup, plan upgrades and entitlements.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from samta.api.deps import get_entitlement_service, get_user_service
from samta.core.auth import get_current_user_id
from samta.features.entitlements.service import EntitlementService
from samta.features.users.service import UserService
from samta.models.plan import get_plan
from samta.models.user import RegisterUserRequest, UpgradePlanRequest, User

router = APIRouter(prefix="/v1/users", tags=["users"])


def public_view(user: User) -> dict:
    """What other members may see: no email, no plan or counters"""
    return {
        "user_id": user.user_id,
        "display_name": user.display_name,
        "profile": user.profile.model_dump(mode="json", exclude={"email"}),
        "status": user.status.value,
    }


@router.post("", status_code=201)
async def register_user_endpoint(
    request: RegisterUserRequest,
    users: UserService = Depends(get_user_service),
):
    """Register a member on the Free plan"""
    user = users.register_user(request.user_id, request.profile)
    return {"data": user.model_dump(mode="json")}


@router.get("")
async def search_profiles_endpoint(
    religion: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Name or occupation keyword"),
    mother_tongue: Optional[str] = Query(None),
    marital_status: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    """Browse other members. "All" or an empty value means no filter."""
    found = users.search_profiles(
        user_id,
        religion=religion,
        keyword=q,
        mother_tongue=mother_tongue,
        marital_status=marital_status,
    )
    return {"data": [public_view(u) for u in found], "count": len(found)}


@router.get("/me")
async def get_me_endpoint(
    user_id: str = Depends(get_current_user_id),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    user = entitlements.resolve_user(user_id)
    return {"data": user.model_dump(mode="json")}


@router.get("/me/entitlements")
async def get_entitlements_endpoint(
    user_id: str = Depends(get_current_user_id),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """What the acting member may do right now (quota, plan, expiry)"""
    user = entitlements.resolve_user(user_id)
    return {"data": entitlements.entitlement_summary(user).model_dump(mode="json")}


@router.post("/me/plan")
async def upgrade_plan_endpoint(
    request: UpgradePlanRequest,
    user_id: str = Depends(get_current_user_id),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """Start a new billing period on the requested plan"""
    user = entitlements.upgrade_plan(user_id, request.plan)
    plan = get_plan(request.plan)
    return {
        "data": user.model_dump(mode="json"),
        "plan": plan.model_dump(mode="json"),
    }


@router.get("/{target_id}")
async def get_user_endpoint(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """Public view of another member: profile and display name only"""
    entitlements.resolve_user(user_id)
    target = entitlements.resolve_user(target_id)
    return {"data": public_view(target)}
