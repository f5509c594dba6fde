"""Tagged union of everything the event channel can deliver."""
from __future__ import annotations

from typing import Union

from chat_sync.domain.events.channel_state import ChannelConnected, ChannelDisconnected
from chat_sync.domain.events.message_received import MessageReceived
from chat_sync.domain.events.messages_read import MessagesRead
from chat_sync.domain.events.online_users_updated import OnlineUsersUpdated
from chat_sync.domain.events.user_typing import UserTyping

InboundEvent = Union[
    ChannelConnected,
    ChannelDisconnected,
    OnlineUsersUpdated,
    MessageReceived,
    UserTyping,
    MessagesRead,
]

CONVERSATION_SCOPED = (MessageReceived, UserTyping, MessagesRead)

__all__ = [
    "CONVERSATION_SCOPED",
    "ChannelConnected",
    "ChannelDisconnected",
    "InboundEvent",
    "MessageReceived",
    "MessagesRead",
    "OnlineUsersUpdated",
    "UserTyping",
]
