"""Facade wiring the synchronization components for one logged-in identity."""
from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable

from chat_sync.application.dto.outbound import SendMessagePayload
from chat_sync.application.exceptions import TransientNetworkError, ValidationError
from chat_sync.application.ports.api import ChatApi
from chat_sync.application.ports.channel import ChannelFactory, EventChannel
from chat_sync.application.ports.scheduler import Scheduler
from chat_sync.application.ports.visibility import VisibilitySignal, always_visible
from chat_sync.config import Settings
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.events.inbound import (
    ChannelConnected,
    ChannelDisconnected,
    MessageReceived,
    MessagesRead,
    OnlineUsersUpdated,
    UserTyping,
)
from chat_sync.domain.value_objects.enums import ChangeTopic, ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId, UserId
from chat_sync.infrastructure.channel.socketio_channel import SocketIOChannel
from chat_sync.infrastructure.timers import LoopScheduler
from chat_sync.services.conversation_directory import ConversationDirectory
from chat_sync.services.event_router import EventRouter
from chat_sync.services.message_stream import MessageStream
from chat_sync.services.presence_tracker import PresenceTracker
from chat_sync.services.read_receipts import ReadReceiptCoordinator
from chat_sync.services.session import ConnectionSession
from chat_sync.services.typing_coordinator import TypingCoordinator

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ChangeTopic], None]


class ChatEngine:
    """Client-side realtime synchronization engine.

    Local actions (login, open, send, type) go through the methods here;
    inbound channel events reach the components through the EventRouter.
    ``on_change`` is called with a ChangeTopic whenever observable state
    changes, including a non-fatal ``LOAD_FAILED``.
    """

    def __init__(
        self,
        api: ChatApi,
        channel_factory: ChannelFactory,
        *,
        scheduler: Scheduler | None = None,
        visibility: VisibilitySignal = always_visible,
        typing_timeout: float = 2.0,
        remote_typing_expiry: float | None = None,
        reorder_on_activity: bool = False,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._api = api
        self._scheduler = scheduler or LoopScheduler()
        self._visibility = visibility
        self._typing_timeout = typing_timeout
        self._remote_typing_expiry = remote_typing_expiry
        self._reorder_on_activity = reorder_on_activity
        self._on_change = on_change

        self.router = EventRouter()
        self.presence = PresenceTracker()
        self.session = ConnectionSession(channel_factory, self.router, self.presence)

        self._user: UserRef | None = None
        self._directory: ConversationDirectory | None = None
        self._typing: TypingCoordinator | None = None
        self._read_receipts: ReadReceiptCoordinator | None = None

        self._conversation: Conversation | None = None
        self._stream: MessageStream | None = None
        self._reload_task: asyncio.Task[list[Message]] | None = None

    @classmethod
    def from_settings(cls, api: ChatApi, settings: Settings, **kwargs: Any) -> "ChatEngine":
        return cls(
            api,
            partial(SocketIOChannel.from_settings, settings=settings),
            typing_timeout=settings.TYPING_TIMEOUT_SECONDS,
            remote_typing_expiry=settings.REMOTE_TYPING_EXPIRY_SECONDS,
            reorder_on_activity=settings.DIRECTORY_REORDER_ON_ACTIVITY,
            **kwargs,
        )

    # -- observable state --

    @property
    def user(self) -> UserRef | None:
        return self._user

    @property
    def directory(self) -> ConversationDirectory:
        if self._directory is None:
            raise ValidationError("not logged in")
        return self._directory

    @property
    def typing(self) -> TypingCoordinator:
        if self._typing is None:
            raise ValidationError("not logged in")
        return self._typing

    @property
    def read_receipts(self) -> ReadReceiptCoordinator:
        if self._read_receipts is None:
            raise ValidationError("not logged in")
        return self._read_receipts

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def stream(self) -> MessageStream | None:
        return self._stream

    @property
    def reload_task(self) -> asyncio.Task[list[Message]] | None:
        return self._reload_task

    @property
    def messages(self) -> list[Message]:
        return self._stream.messages if self._stream is not None else []

    @property
    def peer(self) -> UserRef | None:
        if self._conversation is None or self._user is None:
            return None
        return self._conversation.other_participant(self._user.id)

    @property
    def peer_online(self) -> bool:
        peer = self.peer
        return peer is not None and self.presence.is_online(peer.id)

    @property
    def peer_typing(self) -> bool:
        return self._typing is not None and self._typing.remote_typing

    @property
    def seen(self) -> bool:
        if self._stream is None or self._user is None:
            return False
        return self._stream.is_seen(self._user.id)

    def _notify(self, topic: ChangeTopic) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(topic)
        except Exception:
            logger.exception("Change listener failed for %s", topic)

    def _channel(self) -> EventChannel | None:
        return self.session.channel

    # -- identity lifecycle --

    async def login(self, user: UserRef) -> list[Conversation]:
        if self._user is not None:
            if self._user.id == user.id:
                return self.directory.conversations
            await self.logout()

        channel = await self.session.open(user.id)
        self._user = user
        self._directory = ConversationDirectory(
            self._api, user.id, reorder_on_activity=self._reorder_on_activity,
        )
        self._typing = TypingCoordinator(
            channel,
            self._scheduler,
            timeout=self._typing_timeout,
            remote_expiry=self._remote_typing_expiry,
        )
        self._read_receipts = ReadReceiptCoordinator(channel, user.id, self._visibility)

        self.router.on(ChannelConnected, self._on_channel_connected)
        self.router.on(ChannelDisconnected, self._on_channel_disconnected)
        self.router.on(OnlineUsersUpdated, self._on_online_users)
        self._notify(ChangeTopic.CONNECTION)

        return await self.refresh_directory()

    async def logout(self) -> None:
        if self._user is None:
            return
        self.close_conversation()
        if self._typing is not None:
            self._typing.close()
        await self.session.close()
        logger.info("Logged out %s", self._user.id)
        self._user = None
        self._directory = None
        self._typing = None
        self._read_receipts = None
        self._notify(ChangeTopic.CONNECTION)

    # -- directory --

    async def refresh_directory(self) -> list[Conversation]:
        directory = self.directory
        try:
            conversations = await directory.refresh()
        except TransientNetworkError:
            self._notify(ChangeTopic.LOAD_FAILED)
            return directory.conversations
        self._notify(ChangeTopic.DIRECTORY)
        return conversations

    async def search_users(self, query: str) -> list[UserRef]:
        try:
            return await self.directory.search_users(query)
        except TransientNetworkError:
            self._notify(ChangeTopic.LOAD_FAILED)
            return []

    async def start_conversation(self, other_user: UserRef) -> Conversation | None:
        """Find or create the conversation with ``other_user`` and open it."""
        try:
            conversation = await self.directory.find_or_create(other_user)
        except TransientNetworkError:
            self._notify(ChangeTopic.LOAD_FAILED)
            return None
        self._notify(ChangeTopic.DIRECTORY)
        await self.open_conversation(conversation)
        return conversation

    # -- open conversation --

    async def open_conversation(self, conversation: Conversation) -> list[Message]:
        """Make ``conversation`` the open one and load its log.

        Selecting is local; the load it triggers is the only network call.
        """
        if self._user is None:
            raise ValidationError("not logged in")
        if (
            self._conversation is not None
            and self._conversation.id == conversation.id
            and self._stream is not None
        ):
            stream = self._stream
            if stream.loaded or stream.is_loading:
                return stream.messages
            # Re-selecting after a failed load is the retry.
            return await self._load(stream)

        self._detach_conversation()
        self._conversation = conversation
        stream = MessageStream(conversation.id, self._api)
        self._stream = stream
        self.read_receipts.open(conversation.id)
        self.typing.open(conversation.id)

        subscriptions = self.router.begin_generation(conversation.id)
        subscriptions.on(MessageReceived, partial(self._on_message, stream))
        subscriptions.on(UserTyping, self._on_user_typing)
        subscriptions.on(MessagesRead, partial(self._on_messages_read, stream))
        self._join(conversation.id)
        self._notify(ChangeTopic.MESSAGES)

        return await self._load(stream)

    def close_conversation(self) -> None:
        self._detach_conversation()
        self._notify(ChangeTopic.MESSAGES)

    def _detach_conversation(self) -> None:
        self.router.end_generation()
        if self._reload_task is not None and not self._reload_task.done():
            self._reload_task.cancel()
        self._reload_task = None
        if self._typing is not None:
            self._typing.open(None)
        if self._read_receipts is not None:
            self._read_receipts.close()
        if self._stream is not None:
            self._stream.close()
        self._stream = None
        self._conversation = None

    def _join(self, conversation_id: ConversationId) -> None:
        channel = self._channel()
        if channel is not None:
            channel.emit(ChannelEvent.JOIN_CONVERSATION, conversation_id)

    async def _load(self, stream: MessageStream) -> list[Message]:
        try:
            messages = await stream.load()
        except TransientNetworkError:
            if stream is self._stream:
                self._notify(ChangeTopic.LOAD_FAILED)
            return stream.messages
        if stream is not self._stream or stream.closed:
            return []
        self.read_receipts.snapshot_loaded(stream.conversation_id)
        self._notify(ChangeTopic.MESSAGES)
        return messages

    # -- local actions --

    def send_message(self, text: str) -> bool:
        if self._user is None or self._conversation is None or not text.strip():
            return False
        peer = self._conversation.other_participant(self._user.id)
        if peer is None:
            logger.warning("Conversation %s has no other participant", self._conversation.id)
            return False
        channel = self._channel()
        if channel is None or not channel.connected:
            logger.warning("Cannot send to %s: event channel is down", self._conversation.id)
            return False

        payload = SendMessagePayload(
            conversationId=self._conversation.id,
            senderId=self._user.id,
            receiverId=peer.id,
            text=text,
        )
        channel.emit(ChannelEvent.SEND_MESSAGE, payload.model_dump())
        self.typing.message_sent()
        return True

    def input_changed(self) -> None:
        if self._typing is not None:
            self._typing.input_changed()

    def notify_visibility_changed(self) -> None:
        if self._read_receipts is not None:
            self._read_receipts.notify_visibility_changed()

    def is_online(self, user_id: UserId) -> bool:
        return self.presence.is_online(user_id)

    # -- inbound --

    def _on_channel_connected(self, event: ChannelConnected) -> None:
        self._notify(ChangeTopic.CONNECTION)
        if not event.reconnected or self._stream is None:
            return
        # Ordering across a reconnect is unknown; rejoin and take a fresh snapshot.
        stream = self._stream
        self._join(stream.conversation_id)
        if self._reload_task is not None and not self._reload_task.done():
            self._reload_task.cancel()
        self._reload_task = asyncio.create_task(
            self._load(stream), name=f"reload-{stream.conversation_id}",
        )

    def _on_channel_disconnected(self, event: ChannelDisconnected) -> None:
        self._notify(ChangeTopic.CONNECTION)

    def _on_online_users(self, event: OnlineUsersUpdated) -> None:
        peer = self.peer
        if peer is not None and self.peer_typing and peer.id not in event.user_ids:
            self.typing.clear_remote()
            self._notify(ChangeTopic.TYPING)
        self._notify(ChangeTopic.PRESENCE)

    def _on_message(self, stream: MessageStream, event: MessageReceived) -> None:
        conversation = self._conversation
        if (
            event.conversation_id is None
            and conversation is not None
            and conversation.participants
            and not conversation.has_participant(event.message.sender.id)
        ):
            logger.debug(
                "Dropping untagged message %s from %s: not in %s",
                event.message.id, event.message.sender.id, stream.conversation_id,
            )
            return
        if not stream.append_incoming(event.message):
            return
        self.directory.record_activity(stream.conversation_id, event.message)
        self.read_receipts.message_received(stream.conversation_id)
        self._notify(ChangeTopic.MESSAGES)

    def _on_user_typing(self, event: UserTyping) -> None:
        self.typing.apply_remote(event.is_typing)
        self._notify(ChangeTopic.TYPING)

    def _on_messages_read(self, stream: MessageStream, event: MessagesRead) -> None:
        if self.read_receipts.apply_remote_ack(event.conversation_id, stream):
            self._notify(ChangeTopic.MESSAGES)
