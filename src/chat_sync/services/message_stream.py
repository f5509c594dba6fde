from __future__ import annotations

import dataclasses
import logging

from chat_sync.application.exceptions import TransientNetworkError
from chat_sync.application.ports.api import ChatApi
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import ConversationId, MessageId, UserId

logger = logging.getLogger(__name__)


class MessageStream:
    """Message log of the one open conversation.

    Merges the REST snapshot with pushed messages. Arrival order is never
    trusted: ``messages`` is always sorted by (created_at, id). A push and the
    snapshot it overlaps with may arrive in either order, so merging is
    idempotent by message id and read state only ever moves forward.
    """

    def __init__(self, conversation_id: ConversationId, api: ChatApi) -> None:
        self._conversation_id = conversation_id
        self._api = api
        self._messages: dict[MessageId, Message] = {}
        self._loads_in_flight = 0
        self._pushed_during_load: dict[MessageId, Message] = {}
        self._closed = False
        self.loaded = False
        self.load_error: TransientNetworkError | None = None

    @property
    def conversation_id(self) -> ConversationId:
        return self._conversation_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_loading(self) -> bool:
        return self._loads_in_flight > 0

    @property
    def messages(self) -> list[Message]:
        return sorted(self._messages.values(), key=lambda m: m.sort_key)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    async def load(self) -> list[Message]:
        """Fetch the snapshot and replace the log with it.

        Raises TransientNetworkError with the previous log left intact. A
        snapshot resolving after ``close()`` is discarded.
        """
        if self._closed:
            return []
        if self._loads_in_flight == 0:
            self._pushed_during_load = {}
        self._loads_in_flight += 1
        try:
            snapshot = await self._api.list_messages(self._conversation_id)
        except TransientNetworkError as exc:
            if not self._closed:
                self.load_error = exc
                logger.warning(
                    "Failed to load messages for %s: %s", self._conversation_id, exc.detail,
                )
            raise
        finally:
            self._loads_in_flight -= 1

        if self._closed:
            logger.debug("Discarding late snapshot for closed conversation %s", self._conversation_id)
            return []

        self._replace(snapshot)
        self.loaded = True
        self.load_error = None
        return self.messages

    def _replace(self, snapshot: list[Message]) -> None:
        previous = self._messages
        merged: dict[MessageId, Message] = {}
        for message in snapshot:
            if message.id in merged:
                continue
            held = previous.get(message.id)
            if held is not None and held.is_read and not message.is_read:
                message = dataclasses.replace(message, is_read=True)
            merged[message.id] = message

        # Pushes that raced ahead of a snapshot taken before they existed.
        for message_id, pushed in self._pushed_during_load.items():
            if message_id not in merged:
                merged[message_id] = previous.get(message_id, pushed)

        self._messages = merged
        if self._loads_in_flight == 0:
            self._pushed_during_load = {}

    def append_incoming(self, message: Message) -> bool:
        """Merge one pushed message. Returns False for a duplicate id."""
        if self._closed:
            return False
        if message.id in self._messages:
            logger.debug("Ignoring duplicate message %s", message.id)
            return False
        self._messages[message.id] = message
        if self._loads_in_flight:
            self._pushed_during_load[message.id] = message
        return True

    def mark_all_read(self) -> int:
        """Set is_read on every held message. Returns how many changed."""
        changed = 0
        for message_id, message in self._messages.items():
            if not message.is_read:
                self._messages[message_id] = dataclasses.replace(message, is_read=True)
                changed += 1
        return changed

    def last_message_from(self, user_id: UserId) -> Message | None:
        for message in reversed(self.messages):
            if message.sender.id == user_id:
                return message
        return None

    def is_seen(self, user_id: UserId) -> bool:
        """True when the last message sent by ``user_id`` has been read."""
        last = self.last_message_from(user_id)
        return last is not None and last.is_read

    def close(self) -> None:
        self._closed = True
        self._messages = {}
        self._pushed_during_load = {}
