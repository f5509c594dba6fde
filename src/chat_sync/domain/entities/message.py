from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import MessageId


@dataclass(frozen=True, slots=True)
class Message:
    id: MessageId
    sender: UserRef
    text: str
    is_read: bool
    created_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Display order: ascending by created_at, ties broken by id."""
        return (self.created_at, self.id)
