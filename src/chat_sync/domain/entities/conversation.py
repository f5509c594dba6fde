from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import ConversationId, UserId


@dataclass(frozen=True, slots=True)
class Conversation:
    id: ConversationId
    participants: tuple[UserRef, ...]
    # Directory digest only; the full log lives in MessageStream.
    messages: tuple[Message, ...] = ()

    @property
    def last_message(self) -> Message | None:
        return self.messages[0] if self.messages else None

    def other_participant(self, user_id: UserId) -> UserRef | None:
        for participant in self.participants:
            if participant.id != user_id:
                return participant
        return None

    def has_participant(self, user_id: UserId) -> bool:
        return any(p.id == user_id for p in self.participants)
