"""Wire models for the REST collaborator (Mongo-style ``_id`` documents)."""
from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    id: str = Field(validation_alias=AliasChoices("clerkId", "id"))
    username: str = ""
    image_url: str | None = Field(
        default=None, validation_alias=AliasChoices("imageUrl", "image_url"),
    )
    record_id: str | None = Field(default=None, validation_alias="_id")

    model_config = ConfigDict(extra="ignore")


class MessageResponse(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    sender: UserResponse | str = Field(
        validation_alias=AliasChoices("senderId", "sender"),
    )
    text: str = ""
    is_read: bool = Field(
        default=False, validation_alias=AliasChoices("isRead", "is_read"),
    )
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "created_at"),
    )
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversationId", "conversation_id"),
    )

    model_config = ConfigDict(extra="ignore")


class ConversationResponse(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    participants: list[UserResponse] = []
    messages: list[MessageResponse] = []

    model_config = ConfigDict(extra="ignore")


class FindOrCreateConversationRequest(BaseModel):
    senderId: str
    receiverId: str
