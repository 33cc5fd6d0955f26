"""Error taxonomy and normalized HTTP handlers."""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from samta.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    kind = "internal"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


# Generic kinds

class ValidationError(AppError, ValueError):
    code = "validation_error"
    kind = "validation"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    kind = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    kind = "authorization"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    kind = "state_conflict"
    status_code = 409


class QuotaExceededError(AppError):
    code = "quota_exceeded"
    kind = "entitlement"
    status_code = 403


class UpstreamError(AppError):
    code = "upstream_error"
    kind = "upstream"
    status_code = 502


# Matchmaking domain

class SelfInterestForbiddenError(ValidationError):
    code = "self_interest_forbidden"


class EmptyMessageError(ValidationError):
    code = "empty_message"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, user_id: str, **kwargs):
        super().__init__(f"User not found: {user_id}", **kwargs)
        self.user_id = user_id


class InterestNotFoundError(NotFoundError):
    code = "interest_not_found"

    def __init__(self, interest_id: str, **kwargs):
        super().__init__(f"Interest not found: {interest_id}", **kwargs)
        self.interest_id = interest_id


class InterestAlreadyExistsError(ConflictError):
    code = "interest_already_exists"


class InterestNotPendingError(ConflictError):
    code = "interest_not_pending"


class ConversationNotUnlockedError(ConflictError):
    code = "conversation_not_unlocked"


class NotAuthorizedToResolveError(PermissionError):
    code = "not_authorized_to_resolve"


class AdminNotAParticipantError(PermissionError):
    code = "admin_not_a_participant"


class AccountSuspendedError(PermissionError):
    code = "account_suspended"


class InterestQuotaExceededError(QuotaExceededError):
    code = "interest_quota_exceeded"


# One distinct, human-readable line per failure code for presentation layers
ERROR_DESCRIPTIONS = {
    "validation_error": "Some of the details you entered are not valid.",
    "self_interest_forbidden": "You cannot send an interest to yourself.",
    "empty_message": "Message cannot be empty.",
    "not_found": "We could not find what you were looking for.",
    "user_not_found": "This profile no longer exists.",
    "interest_not_found": "This interest no longer exists.",
    "conflict": "This action conflicts with the current state.",
    "interest_already_exists": "An interest already exists between you and this member.",
    "interest_not_pending": "This interest has already been answered.",
    "conversation_not_unlocked": "Chat is only available after the interest is accepted.",
    "forbidden": "You are not allowed to do that.",
    "not_authorized_to_resolve": "Only the member who received this interest can respond to it.",
    "admin_not_a_participant": "Administrator accounts cannot take part in matchmaking.",
    "account_suspended": "Your account is not active. Please contact support.",
    "quota_exceeded": "You have reached the limit of your current plan.",
    "interest_quota_exceeded": "You have used all free interests. Upgrade your plan to send more.",
    "upstream_error": "An external service is unavailable. Please try again later.",
}


def describe_error(exc: AppError) -> str:
    """Presentation text for an error; falls back to the exception message."""
    return ERROR_DESCRIPTIONS.get(exc.code, exc.message)


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    payload["error"]["kind"] = exc.kind
    logger = logging.getLogger("samta")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("samta")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("samta")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
