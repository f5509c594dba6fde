from __future__ import annotations

from typing import Any, Callable, Protocol

from chat_sync.domain.events.inbound import InboundEvent
from chat_sync.domain.value_objects.enums import ChannelEvent

EventSink = Callable[[InboundEvent], None]


class EventChannel(Protocol):
    @property
    def connected(self) -> bool:
        """True from the moment ChannelConnected is delivered to the sink.

        Handlers of ChannelConnected may emit straight away.
        """
        ...

    async def connect(self) -> None:
        """Establish the transport. Raise ChannelUnavailableError on failure."""
        ...

    async def disconnect(self) -> None: ...

    def emit(self, event: ChannelEvent, data: Any) -> None:
        """Schedule an outbound event without suspending the caller.

        A no-op while disconnected.
        """
        ...


ChannelFactory = Callable[[EventSink], EventChannel]
