"""Read-ack emission and application of remote read acknowledgements."""
from __future__ import annotations

import logging

from chat_sync.application.dto.outbound import MarkAsReadPayload
from chat_sync.application.ports.channel import EventChannel
from chat_sync.application.ports.visibility import VisibilitySignal
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId, UserId
from chat_sync.services.message_stream import MessageStream

logger = logging.getLogger(__name__)


class ReadReceiptCoordinator:
    """Emits ``markAsRead`` for the open conversation while it is visible.

    Emissions are not deduplicated; the remote side treats repeated acks
    idempotently. An ack suppressed for lack of visibility is remembered as
    ``ack_due`` and flushed by ``notify_visibility_changed``.
    """

    def __init__(
        self,
        channel: EventChannel,
        reader_id: UserId,
        visibility: VisibilitySignal,
    ) -> None:
        self._channel = channel
        self._reader_id = reader_id
        self._visibility = visibility
        self._conversation_id: ConversationId | None = None
        self._ack_due = False

    @property
    def conversation_id(self) -> ConversationId | None:
        return self._conversation_id

    @property
    def ack_due(self) -> bool:
        return self._ack_due

    def open(self, conversation_id: ConversationId | None) -> None:
        self._conversation_id = conversation_id
        self._ack_due = False

    def close(self) -> None:
        self.open(None)

    def snapshot_loaded(self, conversation_id: ConversationId) -> bool:
        return self._request_ack(conversation_id)

    def message_received(self, conversation_id: ConversationId) -> bool:
        return self._request_ack(conversation_id)

    def notify_visibility_changed(self) -> bool:
        if self._ack_due and self._conversation_id is not None:
            return self._request_ack(self._conversation_id)
        return False

    def _request_ack(self, conversation_id: ConversationId) -> bool:
        if conversation_id != self._conversation_id:
            logger.debug("Skipping read-ack for %s: not the open conversation", conversation_id)
            return False
        if not self._visibility():
            self._ack_due = True
            return False
        self._ack_due = False
        payload = MarkAsReadPayload(conversationId=conversation_id, readerId=self._reader_id)
        self._channel.emit(ChannelEvent.MARK_AS_READ, payload.model_dump())
        return True

    def apply_remote_ack(self, conversation_id: ConversationId, stream: MessageStream) -> int:
        """Mark every held message read; a no-op for any other conversation."""
        if conversation_id != self._conversation_id or conversation_id != stream.conversation_id:
            logger.debug("Ignoring read-ack for %s: not the open conversation", conversation_id)
            return 0
        return stream.mark_all_read()
