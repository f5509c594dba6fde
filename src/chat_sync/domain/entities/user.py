from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.value_objects.ids import UserId


@dataclass(frozen=True, slots=True)
class UserRef:
    id: UserId
    display_name: str
    avatar_ref: str | None = None
    record_id: str | None = None
