from __future__ import annotations

import logging

from chat_sync.application.exceptions import ChannelUnavailableError
from chat_sync.application.ports.channel import ChannelFactory, EventChannel
from chat_sync.domain.events.inbound import ChannelConnected, OnlineUsersUpdated
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import UserId
from chat_sync.services.event_router import EventRouter
from chat_sync.services.presence_tracker import PresenceTracker

logger = logging.getLogger(__name__)


class ConnectionSession:
    """Owns the event channel of the current identity.

    At most one channel is live: opening for a new identity tears the old
    channel down first. If the transport cannot be reached the channel is
    still returned and the session runs without presence or pushes.
    """

    def __init__(
        self,
        channel_factory: ChannelFactory,
        router: EventRouter,
        presence: PresenceTracker,
    ) -> None:
        self._channel_factory = channel_factory
        self._router = router
        self._presence = presence
        self._identity: UserId | None = None
        self._channel: EventChannel | None = None

    @property
    def identity(self) -> UserId | None:
        return self._identity

    @property
    def channel(self) -> EventChannel | None:
        return self._channel

    @property
    def connected(self) -> bool:
        return self._channel is not None and self._channel.connected

    async def open(self, identity: UserId) -> EventChannel:
        if self._channel is not None and self._identity == identity:
            return self._channel
        await self.close()

        self._identity = identity
        self._router.on(ChannelConnected, self._on_connected)
        self._router.on(OnlineUsersUpdated, self._on_online_users)

        channel = self._channel_factory(self._router.dispatch)
        self._channel = channel
        try:
            await channel.connect()
        except ChannelUnavailableError as exc:
            logger.warning("Running without live updates for %s: %s", identity, exc.detail)
        else:
            logger.info("Session opened for %s", identity)
        return channel

    async def close(self) -> None:
        channel, identity = self._channel, self._identity
        self._channel = None
        self._identity = None
        self._router.clear()
        self._presence.clear()
        if channel is not None:
            await channel.disconnect()
            logger.info("Session closed for %s", identity)

    def _on_connected(self, event: ChannelConnected) -> None:
        # Presence on the remote side is per connection; announce on every connect.
        if self._channel is not None and self._identity is not None:
            self._channel.emit(ChannelEvent.ADD_NEW_USER, self._identity)

    def _on_online_users(self, event: OnlineUsersUpdated) -> None:
        self._presence.replace(event.user_ids)
