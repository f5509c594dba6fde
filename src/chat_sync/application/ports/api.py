from __future__ import annotations

from typing import Protocol

from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import ConversationId, UserId


class ChatApi(Protocol):
    """Request/response collaborator. Failures raise TransientNetworkError."""

    async def list_conversations(self, user_id: UserId) -> list[Conversation]: ...

    async def find_or_create_conversation(
        self, sender_id: UserId, receiver_id: UserId
    ) -> Conversation: ...

    async def list_messages(self, conversation_id: ConversationId) -> list[Message]: ...

    async def list_users(self, excluding_user_id: UserId) -> list[UserRef]: ...
