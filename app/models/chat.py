"""
Chat transcript models
"""
from enum import Enum

from pydantic import BaseModel


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    text: str
    is_thinking: bool = False
