"""
samta/api/conversations.py
Chat API. Every route re-derives eligibility from the stored interest.
"""

from fastapi import APIRouter, Depends

from samta.api.deps import get_conversation_service
from samta.core.auth import get_current_user_id
from samta.features.conversations.service import ConversationService
from samta.models.message import SendMessageRequest

router = APIRouter(prefix="/v1/conversations", tags=["conversations"])


@router.get("")
async def list_conversations_endpoint(
    user_id: str = Depends(get_current_user_id),
    conversations: ConversationService = Depends(get_conversation_service),
):
    """Unlocked conversations of the acting member, most recent first"""
    summaries = conversations.list_conversations(user_id)
    return {
        "data": [s.model_dump(mode="json") for s in summaries],
        "count": len(summaries),
    }


@router.get("/{other_id}")
async def get_conversation_endpoint(
    other_id: str,
    user_id: str = Depends(get_current_user_id),
    conversations: ConversationService = Depends(get_conversation_service),
):
    messages = conversations.get_conversation(user_id, other_id)
    return {
        "data": [m.model_dump(mode="json") for m in messages],
        "count": len(messages),
        "chat_unlocked": conversations.is_eligible(user_id, other_id),
    }


@router.post("/{other_id}/messages", status_code=201)
async def send_message_endpoint(
    other_id: str,
    request: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    conversations: ConversationService = Depends(get_conversation_service),
):
    """Post a message; 409 until the interest between the pair is accepted"""
    message = conversations.send(user_id, other_id, request.text)
    return {"data": message.model_dump(mode="json")}


@router.get("/{other_id}/eligibility")
async def eligibility_endpoint(
    other_id: str,
    user_id: str = Depends(get_current_user_id),
    conversations: ConversationService = Depends(get_conversation_service),
):
    return {"data": {"chat_unlocked": conversations.is_eligible(user_id, other_id)}}
