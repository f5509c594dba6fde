from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.value_objects.ids import ConversationId


@dataclass(frozen=True, slots=True)
class UserTyping:
    is_typing: bool
    conversation_id: ConversationId | None = None
