from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import ConversationId, MessageId, UserId
from chat_sync.infrastructure.http.schemas import (
    ConversationResponse,
    MessageResponse,
    UserResponse,
)


def _as_utc(ts: datetime) -> datetime:
    # Snapshot and push timestamps must stay comparable.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def user_to_entity(schema: UserResponse) -> UserRef:
    return UserRef(
        id=UserId(schema.id),
        display_name=schema.username,
        avatar_ref=schema.image_url,
        record_id=schema.record_id,
    )


def message_to_entity(schema: MessageResponse) -> Message:
    if isinstance(schema.sender, UserResponse):
        sender = user_to_entity(schema.sender)
    else:
        sender = UserRef(id=UserId(schema.sender), display_name="")
    return Message(
        id=MessageId(schema.id),
        sender=sender,
        text=schema.text,
        is_read=schema.is_read,
        created_at=_as_utc(schema.created_at),
    )


def conversation_to_entity(schema: ConversationResponse) -> Conversation:
    return Conversation(
        id=ConversationId(schema.id),
        participants=tuple(user_to_entity(p) for p in schema.participants),
        messages=tuple(message_to_entity(m) for m in schema.messages),
    )
