"""Debounced local typing signal and the remote party's typing flag."""
from __future__ import annotations

import logging

from chat_sync.application.dto.outbound import TypingPayload
from chat_sync.application.ports.channel import EventChannel
from chat_sync.application.ports.scheduler import Scheduler, TimerHandle
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId

logger = logging.getLogger(__name__)


class TypingCoordinator:
    def __init__(
        self,
        channel: EventChannel,
        scheduler: Scheduler,
        *,
        timeout: float = 2.0,
        remote_expiry: float | None = None,
    ) -> None:
        self._channel = channel
        self._scheduler = scheduler
        self._timeout = timeout
        self._remote_expiry = remote_expiry

        self._conversation_id: ConversationId | None = None
        self._signaling = False
        self._countdown: TimerHandle | None = None

        self._remote_typing = False
        self._remote_timer: TimerHandle | None = None

    @property
    def conversation_id(self) -> ConversationId | None:
        return self._conversation_id

    @property
    def is_signaling(self) -> bool:
        return self._signaling

    @property
    def remote_typing(self) -> bool:
        return self._remote_typing

    def open(self, conversation_id: ConversationId | None) -> None:
        """Switch the conversation typing state is tracked for."""
        self.stop_local()
        self.clear_remote()
        self._conversation_id = conversation_id

    # -- local side --

    def input_changed(self) -> None:
        if self._conversation_id is None:
            return
        if not self._signaling:
            self._signaling = True
            self._emit(True)
        self._cancel_countdown()
        self._countdown = self._scheduler.call_later(self._timeout, self._on_countdown_expired)

    def message_sent(self) -> None:
        self.stop_local()

    def stop_local(self) -> None:
        """Cancel the countdown and emit the terminal ``typing=false`` if signaling."""
        self._cancel_countdown()
        if self._signaling:
            self._signaling = False
            self._emit(False)

    def _on_countdown_expired(self) -> None:
        self._countdown = None
        self.stop_local()

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _emit(self, is_typing: bool) -> None:
        if self._conversation_id is None:
            return
        payload = TypingPayload(conversationId=self._conversation_id, isTyping=is_typing)
        self._channel.emit(ChannelEvent.TYPING, payload.model_dump())

    # -- remote side --

    def apply_remote(self, is_typing: bool) -> None:
        self._cancel_remote_timer()
        self._remote_typing = is_typing
        if is_typing and self._remote_expiry is not None:
            self._remote_timer = self._scheduler.call_later(
                self._remote_expiry, self._on_remote_expired,
            )

    def clear_remote(self) -> None:
        self._cancel_remote_timer()
        self._remote_typing = False

    def _on_remote_expired(self) -> None:
        self._remote_timer = None
        if self._remote_typing:
            logger.debug("Remote typing flag expired for %s", self._conversation_id)
        self._remote_typing = False

    def _cancel_remote_timer(self) -> None:
        if self._remote_timer is not None:
            self._remote_timer.cancel()
            self._remote_timer = None

    def close(self) -> None:
        self.stop_local()
        self.clear_remote()
        self._conversation_id = None
