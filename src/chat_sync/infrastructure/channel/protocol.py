"""Server → Client event payloads and their mapping onto domain events."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.exceptions import ValidationError
from chat_sync.domain.events.inbound import (
    InboundEvent,
    MessageReceived,
    MessagesRead,
    OnlineUsersUpdated,
    UserTyping,
)
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId, UserId
from chat_sync.infrastructure.http.mappers import message_to_entity
from chat_sync.infrastructure.http.schemas import MessageResponse


class UserTypingPayload(BaseModel):
    isTyping: bool
    conversationId: str | None = None

    model_config = ConfigDict(extra="ignore")


class MessagesReadPayload(BaseModel):
    conversationId: str

    model_config = ConfigDict(extra="ignore")


INBOUND_EVENTS = (
    ChannelEvent.GET_ONLINE_USERS,
    ChannelEvent.GET_MESSAGE,
    ChannelEvent.USER_TYPING,
    ChannelEvent.MESSAGES_READ,
)

_online_users = TypeAdapter(list[str])


def decode_inbound(event: ChannelEvent, data: Any) -> InboundEvent:
    """Map a raw inbound payload onto its domain event."""
    try:
        if event == ChannelEvent.GET_ONLINE_USERS:
            ids = _online_users.validate_python(data)
            return OnlineUsersUpdated(user_ids=frozenset(UserId(i) for i in ids))
        if event == ChannelEvent.GET_MESSAGE:
            schema = MessageResponse.model_validate(data)
            conversation_id = (
                ConversationId(schema.conversation_id) if schema.conversation_id else None
            )
            return MessageReceived(
                message=message_to_entity(schema), conversation_id=conversation_id,
            )
        if event == ChannelEvent.USER_TYPING:
            typing = UserTypingPayload.model_validate(data)
            conversation_id = (
                ConversationId(typing.conversationId) if typing.conversationId else None
            )
            return UserTyping(is_typing=typing.isTyping, conversation_id=conversation_id)
        if event == ChannelEvent.MESSAGES_READ:
            read = MessagesReadPayload.model_validate(data)
            return MessagesRead(conversation_id=ConversationId(read.conversationId))
    except PydanticValidationError as exc:
        raise ValidationError(f"invalid {event} payload: {exc.error_count()} error(s)") from exc
    raise ValidationError(f"{event} is not an inbound event")
