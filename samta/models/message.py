"""
samta/models/message.py

Chat messages, unlocked by an accepted interest.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    message_id: str
    sender_id: str
    receiver_id: str
    conversation_id: str = Field(description="ID of the governing interest")
    text: str
    created_at: datetime


class SendMessageRequest(BaseModel):
    # Emptiness is a domain rule (EmptyMessageError), not a schema rule
    text: str = Field(max_length=4000)


class ConversationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversation_id: str
    counterpart_id: str
    message_count: int
    last_message: Optional[Message] = None
