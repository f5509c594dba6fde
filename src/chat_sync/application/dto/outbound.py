"""Client → Server event payloads. Field names are the wire contract."""
from __future__ import annotations

from pydantic import BaseModel


class SendMessagePayload(BaseModel):
    conversationId: str
    senderId: str
    receiverId: str
    text: str


class TypingPayload(BaseModel):
    conversationId: str
    isTyping: bool


class MarkAsReadPayload(BaseModel):
    conversationId: str
    readerId: str
