from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import ConversationId


@dataclass(frozen=True, slots=True)
class MessageReceived:
    message: Message
    conversation_id: ConversationId | None = None
