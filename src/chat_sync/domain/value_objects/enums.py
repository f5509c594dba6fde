from __future__ import annotations

from enum import StrEnum


class ChannelEvent(StrEnum):
    # outbound
    ADD_NEW_USER = "addNewUser"
    JOIN_CONVERSATION = "joinConversation"
    SEND_MESSAGE = "sendMessage"
    TYPING = "typing"
    MARK_AS_READ = "markAsRead"
    # inbound
    GET_ONLINE_USERS = "getOnlineUsers"
    GET_MESSAGE = "getMessage"
    USER_TYPING = "userTyping"
    MESSAGES_READ = "messagesRead"


class ChangeTopic(StrEnum):
    PRESENCE = "presence"
    DIRECTORY = "directory"
    MESSAGES = "messages"
    TYPING = "typing"
    CONNECTION = "connection"
    LOAD_FAILED = "load_failed"
