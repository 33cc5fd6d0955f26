"""
Gemini relay. Keeps the API key server-side.

The relay replies with the flat {"error": "..."} shape the web client reads.
The member-facing /v1/ai routes build prompts from stored profiles and use
the normalized error envelope like every other /v1 route.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from samta.api.deps import get_user_service
from samta.api.users import public_view
from samta.core.auth import get_current_user_id
from samta.core.config import settings
from samta.core.errors import UpstreamError, UserNotFoundError
from samta.core.logging import get_request_id
from samta.features.ai import service as ai_service
from samta.features.users.service import UserService

logger = logging.getLogger("samta")

router = APIRouter(tags=["ai"])

# Every method is routed here so non-POST calls get the relay's own 405 body
_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


@router.api_route("/api/gemini-proxy", methods=_METHODS)
async def gemini_proxy_endpoint(request: Request):
    """{prompt} -> {text}"""
    if request.method != "POST":
        return JSONResponse(status_code=405, content={"error": "Only POST allowed"})

    if not settings.GEMINI_API_KEY:
        logger.error("gemini.key_missing", extra={"request_id": get_request_id()})
        return JSONResponse(status_code=500, content={"error": "Gemini API key missing"})

    try:
        body = await request.json()
        prompt = body.get("prompt") if isinstance(body, dict) else None
        if not isinstance(prompt, str):
            raise ValueError("prompt must be a string")
        text = await run_in_threadpool(ai_service.generate_text, prompt)
    except (UpstreamError, ValueError) as e:
        logger.error(
            "gemini.failed",
            extra={"request_id": get_request_id(), "error_message": str(e)[:200]},
        )
        return JSONResponse(status_code=500, content={"error": "Gemini failed"})

    return {"text": text}


class SmartBioRequest(BaseModel):
    details: Optional[str] = Field(
        default=None, description="Free-text details; defaults to the member's own profile"
    )


@router.post("/v1/ai/smart-bio")
async def smart_bio_endpoint(
    request: SmartBioRequest,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    user = users.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    details = (request.details or "").strip()
    if not details:
        details = json.dumps(ai_service.prompt_profile(user.profile))
    bio = await run_in_threadpool(ai_service.smart_bio, details)
    return {"data": {"bio": bio}}


@router.get("/v1/ai/recommendations")
async def recommendations_endpoint(
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    """AI match suggestions over the member's searchable candidates"""
    candidates = users.match_candidates(user_id)
    if not candidates:
        return {"data": {"text": "", "candidate_ids": []}}
    viewer = users.get_user(user_id)
    text = await run_in_threadpool(
        ai_service.match_recommendations,
        viewer.profile,
        [public_view(u) for u in candidates],
    )
    return {"data": {"text": text, "candidate_ids": [u.user_id for u in candidates]}}


@router.get("/v1/ai/insights/{target_id}")
async def insights_endpoint(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
):
    if users.get_user(user_id) is None:
        raise UserNotFoundError(user_id)
    target = users.get_user(target_id)
    if target is None or target.profile.is_demo:
        raise UserNotFoundError(target_id)
    text = await run_in_threadpool(ai_service.matchmaking_insights, target.profile)
    return {"data": {"user_id": target_id, "insights": text}}
