"""
samta/api/interests.py
Interest API: propose, accept/reject, list.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from samta.api.deps import get_interest_service
from samta.core.auth import get_current_user_id
from samta.features.interests.service import InterestService
from samta.models.interest import InterestView, ProposeInterestRequest

router = APIRouter(prefix="/v1/interests", tags=["interests"])


@router.post("", status_code=201)
async def propose_interest_endpoint(
    request: ProposeInterestRequest,
    user_id: str = Depends(get_current_user_id),
    interests: InterestService = Depends(get_interest_service),
):
    """Send an interest to another member"""
    interest = interests.propose(user_id, request.receiver_id)
    return {"data": InterestView.for_user(interest, user_id).model_dump(mode="json")}


@router.post("/{interest_id}/accept")
async def accept_interest_endpoint(
    interest_id: str,
    user_id: str = Depends(get_current_user_id),
    interests: InterestService = Depends(get_interest_service),
):
    """Accept a received interest; unlocks chat for the pair"""
    interest = interests.accept(interest_id, user_id)
    return {"data": InterestView.for_user(interest, user_id).model_dump(mode="json")}


@router.post("/{interest_id}/reject")
async def reject_interest_endpoint(
    interest_id: str,
    user_id: str = Depends(get_current_user_id),
    interests: InterestService = Depends(get_interest_service),
):
    interest = interests.reject(interest_id, user_id)
    return {"data": InterestView.for_user(interest, user_id).model_dump(mode="json")}


@router.get("")
async def list_interests_endpoint(
    role: Literal["sender", "receiver", "either"] = Query("either"),
    status: Optional[str] = Query(None, description="pending | accepted | rejected"),
    user_id: str = Depends(get_current_user_id),
    interests: InterestService = Depends(get_interest_service),
):
    """Interests of the acting member, newest first"""
    items = interests.list_for(user_id, role=role, status=status, descending=True)
    return {
        "data": [InterestView.for_user(i, user_id).model_dump(mode="json") for i in items],
        "count": len(items),
    }


@router.get("/with/{other_id}")
async def interest_with_endpoint(
    other_id: str,
    user_id: str = Depends(get_current_user_id),
    interests: InterestService = Depends(get_interest_service),
):
    """The interest between the acting member and `other_id`, if any"""
    interest = interests.find_between(user_id, other_id)
    if interest is None:
        return {"data": None}
    return {"data": InterestView.for_user(interest, user_id).model_dump(mode="json")}
