from __future__ import annotations

import dataclasses
import logging

from chat_sync.application.exceptions import TransientNetworkError, ValidationError
from chat_sync.application.ports.api import ChatApi
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.value_objects.ids import ConversationId, UserId

logger = logging.getLogger(__name__)


class ConversationDirectory:
    """Ordered conversation list of the current identity.

    The only writer of conversation membership. Upserts are insertion-order
    stable: the first-seen entry for an id wins and is never moved by a
    repeated lookup.
    """

    def __init__(
        self,
        api: ChatApi,
        identity: UserId,
        *,
        reorder_on_activity: bool = False,
    ) -> None:
        self._api = api
        self._identity = identity
        self._reorder_on_activity = reorder_on_activity
        self._conversations: list[Conversation] = []
        self._created_locally: set[ConversationId] = set()
        self.load_error: TransientNetworkError | None = None

    @property
    def identity(self) -> UserId:
        return self._identity

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def get(self, conversation_id: ConversationId) -> Conversation | None:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    async def refresh(self) -> list[Conversation]:
        """Replace the list with the server snapshot (server-determined recency).

        Conversations created locally while the fetch was in flight are kept
        at the front if the snapshot does not know them yet.
        """
        try:
            snapshot = await self._api.list_conversations(self._identity)
        except TransientNetworkError as exc:
            self.load_error = exc
            logger.warning("Failed to load conversations for %s: %s", self._identity, exc.detail)
            raise

        fetched: list[Conversation] = []
        seen: set[ConversationId] = set()
        for conversation in snapshot:
            if conversation.id in seen:
                continue
            seen.add(conversation.id)
            fetched.append(conversation)

        pending = [
            c for c in self._conversations
            if c.id in self._created_locally and c.id not in seen
        ]
        self._created_locally -= seen
        self._conversations = pending + fetched
        self.load_error = None
        return self.conversations

    async def find_or_create(self, other_user: UserRef) -> Conversation:
        if other_user.id == self._identity:
            raise ValidationError("cannot start a conversation with yourself")

        conversation = await self._api.find_or_create_conversation(
            self._identity, other_user.id,
        )
        existing = self.get(conversation.id)
        if existing is not None:
            return existing

        self._conversations.insert(0, conversation)
        self._created_locally.add(conversation.id)
        logger.info("Conversation %s added with %s", conversation.id, other_user.id)
        return conversation

    def record_activity(self, conversation_id: ConversationId, message: Message) -> bool:
        """Replace the digest of a listed conversation with ``message``."""
        for index, conversation in enumerate(self._conversations):
            if conversation.id != conversation_id:
                continue
            updated = dataclasses.replace(conversation, messages=(message,))
            if self._reorder_on_activity:
                del self._conversations[index]
                self._conversations.insert(0, updated)
            else:
                self._conversations[index] = updated
            return True
        return False

    async def search_users(self, query: str) -> list[UserRef]:
        """Case-insensitive display-name substring match over all other users."""
        needle = query.strip().casefold()
        if not needle:
            return []
        users = await self._api.list_users(self._identity)
        return [u for u in users if needle in u.display_name.casefold()]
