"""Socket.IO implementation of the duplex event channel."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from chat_sync.application.exceptions import ChannelUnavailableError, ValidationError
from chat_sync.application.ports.channel import EventSink
from chat_sync.config import Settings
from chat_sync.domain.events.inbound import ChannelConnected, ChannelDisconnected
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.infrastructure.channel.protocol import INBOUND_EVENTS, decode_inbound

logger = logging.getLogger(__name__)


class SocketIOChannel:
    """Implements application.ports.channel.EventChannel.

    Inbound handlers run synchronously and hand decoded events to the sink.
    Reconnects are left to the socketio transport.
    """

    def __init__(
        self,
        sink: EventSink,
        *,
        url: str,
        socketio_path: str = "socket.io",
        connect_timeout: float = 5.0,
        reconnection_attempts: int = 0,
        reconnection_delay: float = 1.0,
        reconnection_delay_max: float = 5.0,
        client: socketio.AsyncClient | None = None,
    ) -> None:
        self._sink = sink
        self._url = url
        self._socketio_path = socketio_path
        self._connect_timeout = connect_timeout
        self._client = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay_max,
            logger=False,
            engineio_logger=False,
        )
        self._connected = False
        self._connected_once = False
        self._pending: set[asyncio.Task[None]] = set()
        self._register_handlers()

    @classmethod
    def from_settings(cls, sink: EventSink, settings: Settings) -> "SocketIOChannel":
        return cls(
            sink,
            url=settings.socket_url,
            socketio_path=settings.SOCKET_PATH,
            connect_timeout=settings.SOCKET_CONNECT_TIMEOUT_SECONDS,
            reconnection_attempts=settings.SOCKET_RECONNECTION_ATTEMPTS,
            reconnection_delay=settings.SOCKET_RECONNECTION_DELAY_SECONDS,
            reconnection_delay_max=settings.SOCKET_RECONNECTION_DELAY_MAX_SECONDS,
        )

    @property
    def connected(self) -> bool:
        # socketio fires the connect handler before AsyncClient.connected flips.
        return self._connected

    def _register_handlers(self) -> None:
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on("connect_error", self._on_connect_error)
        for event in INBOUND_EVENTS:
            self._client.on(event.value, self._build_handler(event))

    def _build_handler(self, event: ChannelEvent) -> Callable[..., None]:
        def handler(*args: Any) -> None:
            self._handle(event, args[0] if args else None)

        return handler

    def _handle(self, event: ChannelEvent, data: Any) -> None:
        try:
            decoded = decode_inbound(event, data)
        except ValidationError as exc:
            logger.warning("Dropping malformed %s event: %s", event, exc.detail)
            return
        self._sink(decoded)

    def _on_connect(self) -> None:
        reconnected = self._connected_once
        self._connected_once = True
        self._connected = True
        logger.info("Event channel %s to %s", "reconnected" if reconnected else "connected", self._url)
        self._sink(ChannelConnected(reconnected=reconnected))

    def _on_disconnect(self, reason: Any = "") -> None:
        self._connected = False
        logger.warning("Event channel disconnected (%s)", reason or "unknown")
        self._sink(ChannelDisconnected(reason=str(reason or "")))

    def _on_connect_error(self, data: Any = None) -> None:
        logger.error("Event channel connect error: %s", data)

    async def connect(self) -> None:
        try:
            await self._client.connect(
                self._url,
                transports=["websocket"],
                socketio_path=self._socketio_path,
                wait_timeout=self._connect_timeout,
            )
        except (SocketIOConnectionError, OSError, asyncio.TimeoutError) as exc:
            raise ChannelUnavailableError(f"cannot reach {self._url}: {exc}") from exc

    async def disconnect(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.disconnect()
        self._connected = False

    def emit(self, event: ChannelEvent, data: Any) -> None:
        if not self.connected:
            logger.debug("Dropping outbound %s: channel not connected", event)
            return
        task = asyncio.create_task(
            self._client.emit(event.value, data), name=f"socketio-emit-{event.value}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_emit_done)

    def _on_emit_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Outbound emit %s failed: %s", task.get_name(), exc)
