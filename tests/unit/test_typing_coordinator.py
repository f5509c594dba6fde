from __future__ import annotations

import pytest

from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId
from chat_sync.services.typing_coordinator import TypingCoordinator
from tests.conftest import FakeChannel, FakeScheduler

CID = ConversationId("c-typing")


@pytest.fixture
def connected_channel() -> FakeChannel:
    return FakeChannel(connected=True)


@pytest.fixture
def typing(connected_channel, scheduler) -> TypingCoordinator:
    coordinator = TypingCoordinator(connected_channel, scheduler, timeout=2.0)
    coordinator.open(CID)
    return coordinator


def _signals(channel: FakeChannel) -> list[bool]:
    return [data["isTyping"] for data in channel.of(ChannelEvent.TYPING)]


def test_burst_of_keystrokes_emits_one_true_then_one_false(typing, connected_channel, scheduler):
    for _ in range(10):
        typing.input_changed()
        scheduler.advance(0.5)
    assert _signals(connected_channel) == [True]

    scheduler.advance(2.0)

    assert _signals(connected_channel) == [True, False]
    assert connected_channel.of(ChannelEvent.TYPING)[0] == {"conversationId": CID, "isTyping": True}
    assert typing.is_signaling is False


def test_each_keystroke_restarts_countdown(typing, connected_channel, scheduler):
    typing.input_changed()
    scheduler.advance(1.5)
    typing.input_changed()
    scheduler.advance(1.5)
    assert _signals(connected_channel) == [True]

    scheduler.advance(0.5)
    assert _signals(connected_channel) == [True, False]
    assert scheduler.pending == []


def test_send_stops_typing_and_cancels_countdown(typing, connected_channel, scheduler):
    typing.input_changed()
    typing.message_sent()
    scheduler.advance(10)

    assert _signals(connected_channel) == [True, False]
    assert scheduler.pending == []


def test_typing_again_after_expiry_emits_new_true(typing, connected_channel, scheduler):
    typing.input_changed()
    scheduler.advance(2.0)
    typing.input_changed()

    assert _signals(connected_channel) == [True, False, True]


def test_switch_ends_typing_in_previous_conversation(typing, connected_channel, scheduler):
    typing.input_changed()
    typing.open(ConversationId("c-next"))
    scheduler.advance(5)

    assert connected_channel.of(ChannelEvent.TYPING) == [
        {"conversationId": CID, "isTyping": True},
        {"conversationId": CID, "isTyping": False},
    ]


def test_no_emission_without_open_conversation(connected_channel, scheduler):
    coordinator = TypingCoordinator(connected_channel, scheduler)
    coordinator.input_changed()

    assert connected_channel.emitted == []
    assert scheduler.pending == []


def test_remote_flag_follows_events_without_local_timeout(typing, scheduler):
    typing.apply_remote(True)
    scheduler.advance(3600)
    assert typing.remote_typing is True

    typing.apply_remote(False)
    assert typing.remote_typing is False


def test_optional_remote_expiry(connected_channel):
    scheduler = FakeScheduler()
    coordinator = TypingCoordinator(connected_channel, scheduler, remote_expiry=6.0)
    coordinator.open(CID)

    coordinator.apply_remote(True)
    scheduler.advance(5)
    coordinator.apply_remote(True)
    scheduler.advance(5)
    assert coordinator.remote_typing is True

    scheduler.advance(1)
    assert coordinator.remote_typing is False


def test_close_clears_both_sides(typing, connected_channel, scheduler):
    typing.input_changed()
    typing.apply_remote(True)
    typing.close()

    assert typing.remote_typing is False
    assert typing.conversation_id is None
    assert _signals(connected_channel) == [True, False]
    assert scheduler.pending == []
