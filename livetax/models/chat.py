"""Tax assistant conversation models (transient, never persisted)."""

from enum import Enum

from pydantic import BaseModel, Field


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    role: ChatRole
    text: str = Field(..., min_length=1)


ASSISTANT_GREETING = "Hello! I am your personal tax assistant. How can I help you today?"
