"""
samta/features/ai/service.py

Server-side relay to Gemini text generation. The API key never reaches the
browser; clients post a prompt and get the generated text back.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from samta.core.config import settings
from samta.core.errors import AppError, UpstreamError
from samta.models.profile import Profile

logger = logging.getLogger(__name__)


class GeminiKeyMissingError(AppError):
    code = "gemini_key_missing"
    kind = "configuration"
    status_code = 500


def _endpoint(model: str) -> str:
    return f"{settings.GEMINI_API_BASE.rstrip('/')}/models/{model}:generateContent"


def _extract_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        raise UpstreamError("Gemini returned no candidates")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def generate_text(prompt: str, *, client: Optional[httpx.Client] = None) -> str:
    """
    Run `prompt` through the configured Gemini model and return its text.

    Raises:
        GeminiKeyMissingError: GEMINI_API_KEY is not configured
        UpstreamError: transport failure, non-2xx reply or malformed body
    """
    api_key = settings.GEMINI_API_KEY
    if not api_key:
        raise GeminiKeyMissingError("Gemini API key missing")

    body = {"contents": [{"parts": [{"text": prompt}]}]}
    owns_client = client is None
    http = client or httpx.Client(timeout=settings.GEMINI_TIMEOUT_SECONDS)
    try:
        response = http.post(
            _endpoint(settings.GEMINI_MODEL),
            params={"key": api_key},
            json=body,
        )
        response.raise_for_status()
        text = _extract_text(response.json())
    except httpx.HTTPError as e:
        logger.warning(f"[gemini] request failed: {type(e).__name__}")
        raise UpstreamError("Gemini failed") from e
    except (json.JSONDecodeError, AttributeError, TypeError) as e:
        logger.warning(f"[gemini] malformed response: {type(e).__name__}")
        raise UpstreamError("Gemini failed") from e
    finally:
        if owns_client:
            http.close()

    logger.info("[gemini] generated", extra={"prompt_chars": len(prompt), "text_chars": len(text)})
    return text


# Prompt builders used by the profile pages

def smart_bio_prompt(details: str) -> str:
    return f"Create a professional matrimony bio:\n{details}"


def recommendations_prompt(profile: Dict[str, Any], candidates: Sequence[Dict[str, Any]] = ()) -> str:
    prompt = f"Suggest suitable matches for this profile:\n{json.dumps(profile, default=str)}"
    if candidates:
        prompt += f"\nCandidates:\n{json.dumps(list(candidates), default=str)}"
    return prompt


def insights_prompt(profile: Dict[str, Any]) -> str:
    return f"Provide matchmaking insights:\n{json.dumps(profile, default=str)}"


def prompt_profile(profile: Profile) -> Dict[str, Any]:
    """Profile fields safe to send upstream (no contact details)."""
    return profile.model_dump(mode="json", exclude={"email", "declaration_timestamp"})


def smart_bio(details: str, *, client: Optional[httpx.Client] = None) -> str:
    return generate_text(smart_bio_prompt(details), client=client)


def match_recommendations(
    profile: Profile, candidates: List[Dict[str, Any]], *, client: Optional[httpx.Client] = None
) -> str:
    return generate_text(recommendations_prompt(prompt_profile(profile), candidates), client=client)


def matchmaking_insights(profile: Profile, *, client: Optional[httpx.Client] = None) -> str:
    return generate_text(insights_prompt(prompt_profile(profile)), client=client)
