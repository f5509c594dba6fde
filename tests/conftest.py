"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from chat_sync.application.exceptions import ChannelUnavailableError, TransientNetworkError
from chat_sync.application.ports.channel import EventSink
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import UserRef
from chat_sync.domain.events.inbound import ChannelConnected, ChannelDisconnected, InboundEvent
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId, MessageId, UserId
from chat_sync.infrastructure.channel.socketio_channel import SocketIOChannel

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def make_user(user_id: str = "user_alice", name: str | None = None) -> UserRef:
    return UserRef(
        id=UserId(user_id),
        display_name=name or user_id.removeprefix("user_").title(),
        avatar_ref=f"https://img.test/{user_id}.png",
    )


ALICE = make_user("user_alice", "Alice")
BOB = make_user("user_bob", "Bob")
CAROL = make_user("user_carol", "Carol")


def make_message(
    *,
    message_id: str | None = None,
    sender: UserRef = BOB,
    text: str = "hello",
    is_read: bool = False,
    offset: float | None = None,
) -> Message:
    n = next(_ids)
    return Message(
        id=MessageId(message_id or f"m{n:04d}"),
        sender=sender,
        text=text,
        is_read=is_read,
        created_at=BASE_TIME + timedelta(seconds=n if offset is None else offset),
    )


def make_conversation(
    *,
    conversation_id: str | None = None,
    participants: tuple[UserRef, ...] = (ALICE, BOB),
    messages: tuple[Message, ...] = (),
) -> Conversation:
    return Conversation(
        id=ConversationId(conversation_id or f"c{next(_ids):04d}"),
        participants=participants,
        messages=messages,
    )


@dataclass
class FakeChatApi:
    """In-memory REST collaborator for unit tests."""

    conversations: dict[str, list[Conversation]] = field(default_factory=dict)
    messages: dict[str, list[Message]] = field(default_factory=dict)
    users: list[UserRef] = field(default_factory=list)
    created: dict[frozenset[str], Conversation] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise TransientNetworkError(f"{op} unavailable")

    async def list_conversations(self, user_id: UserId) -> list[Conversation]:
        self.calls.append(("list_conversations", user_id))
        gate = self.gates.get("list_conversations")
        if gate is not None:
            await gate.wait()
        self._check("list_conversations")
        return list(self.conversations.get(user_id, []))

    async def find_or_create_conversation(
        self, sender_id: UserId, receiver_id: UserId
    ) -> Conversation:
        self.calls.append(("find_or_create_conversation", (sender_id, receiver_id)))
        self._check("find_or_create_conversation")
        key = frozenset({sender_id, receiver_id})
        if key not in self.created:
            participants = tuple(
                make_user(uid) for uid in (sender_id, receiver_id)
            )
            self.created[key] = make_conversation(participants=participants)
        return self.created[key]

    async def list_messages(self, conversation_id: ConversationId) -> list[Message]:
        self.calls.append(("list_messages", conversation_id))
        gate = self.gates.get(conversation_id)
        if gate is not None:
            await gate.wait()
        self._check("list_messages")
        return list(self.messages.get(conversation_id, []))

    async def list_users(self, excluding_user_id: UserId) -> list[UserRef]:
        self.calls.append(("list_users", excluding_user_id))
        self._check("list_users")
        return [u for u in self.users if u.id != excluding_user_id]


@dataclass
class FakeChannel:
    """Records outbound events; tests push inbound ones through ``deliver``.

    ``connected`` is already True when ChannelConnected reaches the sink,
    matching the EventChannel port.
    """

    sink: EventSink | None = None
    connected: bool = False
    fail_connect: bool = False
    emitted: list[tuple[ChannelEvent, Any]] = field(default_factory=list)
    connects: int = 0
    disconnects: int = 0

    async def connect(self) -> None:
        if self.fail_connect:
            raise ChannelUnavailableError("connection refused")
        self.connected = True
        self.deliver(ChannelConnected(reconnected=self.connects > 0))
        self.connects += 1

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnects += 1

    def emit(self, event: ChannelEvent, data: Any) -> None:
        if not self.connected:
            return
        self.emitted.append((event, data))

    def deliver(self, event: InboundEvent) -> None:
        assert self.sink is not None, "channel was never opened"
        self.sink(event)

    def drop(self) -> None:
        self.connected = False
        self.deliver(ChannelDisconnected(reason="transport close"))

    def restore(self) -> None:
        self.connected = True
        self.deliver(ChannelConnected(reconnected=True))
        self.connects += 1

    def of(self, event: ChannelEvent) -> list[Any]:
        return [data for name, data in self.emitted if name == event]


class StubSocketClient:
    """socketio.AsyncClient stand-in with the library's event ordering.

    The ``connect`` handler runs while ``connected`` is still False, as it
    does in AsyncClient; ``drop``/``reconnect`` mimic the transport.
    """

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.connected = False
        self.handlers: dict[str, Callable[..., None]] = {}
        self.emitted: list[tuple[str, Any]] = []

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self.handlers[event] = handler

    def _fire(self, event: str, *args: Any) -> None:
        handler = self.handlers.get(event)
        if handler is not None:
            handler(*args)

    async def connect(self, url: str, **kwargs: Any) -> None:
        if self.fail:
            raise SocketIOConnectionError("refused")
        self._fire("connect")
        self.connected = True

    async def disconnect(self) -> None:
        if self.connected:
            self.connected = False
            self._fire("disconnect", "client disconnect")

    async def emit(self, event: str, data: Any) -> None:
        self.emitted.append((event, data))

    def drop(self, reason: str = "transport close") -> None:
        self.connected = False
        self._fire("disconnect", reason)

    def reconnect(self) -> None:
        self._fire("connect")
        self.connected = True

    def of(self, event: ChannelEvent) -> list[Any]:
        return [data for name, data in self.emitted if name == event.value]


def socketio_factory(client: StubSocketClient) -> Callable[[EventSink], SocketIOChannel]:
    def factory(sink: EventSink) -> SocketIOChannel:
        return SocketIOChannel(sink, url="http://chat.test", client=client)

    return factory


@dataclass
class FakeTimer:
    when: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeScheduler:
    """Manual clock: timers fire only from ``advance``."""

    now: float = 0.0
    timers: list[FakeTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted((t for t in self.pending if t.when <= target), key=lambda t: t.when)
            if not due:
                break
            timer = due[0]
            self.now = timer.when
            timer.fired = True
            timer.callback()
        self.now = target


@pytest.fixture
def api() -> FakeChatApi:
    return FakeChatApi()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def socket_client() -> StubSocketClient:
    return StubSocketClient()


@pytest.fixture
def channel_factory(channel: FakeChannel) -> Callable[[EventSink], FakeChannel]:
    def factory(sink: EventSink) -> FakeChannel:
        channel.sink = sink
        return channel

    return factory
