from __future__ import annotations

import pytest

from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ConversationId
from chat_sync.services.message_stream import MessageStream
from chat_sync.services.read_receipts import ReadReceiptCoordinator
from tests.conftest import ALICE, FakeChannel, make_message

OPEN = ConversationId("c-open")
OTHER = ConversationId("c-other")


class Visibility:
    def __init__(self, visible: bool = True) -> None:
        self.visible = visible

    def __call__(self) -> bool:
        return self.visible


@pytest.fixture
def connected_channel() -> FakeChannel:
    return FakeChannel(connected=True)


@pytest.fixture
def visibility() -> Visibility:
    return Visibility()


@pytest.fixture
def receipts(connected_channel, visibility) -> ReadReceiptCoordinator:
    coordinator = ReadReceiptCoordinator(connected_channel, ALICE.id, visibility)
    coordinator.open(OPEN)
    return coordinator


def test_snapshot_load_emits_ack(receipts, connected_channel):
    assert receipts.snapshot_loaded(OPEN) is True

    assert connected_channel.of(ChannelEvent.MARK_AS_READ) == [
        {"conversationId": OPEN, "readerId": ALICE.id},
    ]


def test_acks_are_not_deduplicated(receipts, connected_channel):
    receipts.snapshot_loaded(OPEN)
    receipts.message_received(OPEN)
    receipts.message_received(OPEN)

    assert len(connected_channel.of(ChannelEvent.MARK_AS_READ)) == 3


def test_no_ack_for_conversation_that_is_not_open(receipts, connected_channel):
    assert receipts.message_received(OTHER) is False

    receipts.close()
    assert receipts.snapshot_loaded(OPEN) is False
    assert connected_channel.of(ChannelEvent.MARK_AS_READ) == []


def test_ack_suppressed_while_not_visible(receipts, connected_channel, visibility):
    visibility.visible = False

    receipts.snapshot_loaded(OPEN)
    for _ in range(5):
        receipts.message_received(OPEN)

    assert connected_channel.of(ChannelEvent.MARK_AS_READ) == []
    assert receipts.ack_due is True


def test_outstanding_ack_flushes_once_visible(receipts, connected_channel, visibility):
    visibility.visible = False
    receipts.message_received(OPEN)

    assert receipts.notify_visibility_changed() is False
    visibility.visible = True
    assert receipts.notify_visibility_changed() is True
    assert receipts.notify_visibility_changed() is False

    assert len(connected_channel.of(ChannelEvent.MARK_AS_READ)) == 1
    assert receipts.ack_due is False


def test_switching_conversation_drops_outstanding_ack(receipts, connected_channel, visibility):
    visibility.visible = False
    receipts.message_received(OPEN)
    receipts.open(OTHER)
    visibility.visible = True

    assert receipts.notify_visibility_changed() is False
    assert connected_channel.of(ChannelEvent.MARK_AS_READ) == []


def test_remote_ack_marks_open_log_read(receipts, api):
    stream = MessageStream(OPEN, api)
    stream.append_incoming(make_message(sender=ALICE))
    stream.append_incoming(make_message(sender=ALICE))

    assert receipts.apply_remote_ack(OPEN, stream) == 2
    assert all(m.is_read for m in stream.messages)
    # duplicate ack
    assert receipts.apply_remote_ack(OPEN, stream) == 0


def test_remote_ack_for_other_conversation_is_ignored(receipts, api):
    stream = MessageStream(OPEN, api)
    stream.append_incoming(make_message())

    assert receipts.apply_remote_ack(OTHER, stream) == 0
    assert not any(m.is_read for m in stream.messages)
