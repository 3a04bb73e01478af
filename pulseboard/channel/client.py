import asyncio
from typing import Callable

from pulseboard.events import Subscribers
from pulseboard.models import ChannelMessage

from .errors import ChannelClosedError
from .protocol import ChannelProtocol


class ChannelClient:
    """
    Client side of the metrics channel.

    Messages are dispatched by event name to handlers registered with
    ``on``; each handler receives the message's serialized data. Loss of
    the connection is reported through ``on_connection_lost`` and is not
    retried here; reconnection policy belongs to the owner.

    ``connect`` is single-flight: overlapping calls share one connection.
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_connection_lost: Callable[[Exception | None], None] | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.handlers = Subscribers()

        self._on_connection_lost = on_connection_lost
        self._protocol: ChannelProtocol | None = None
        self._connect_lock = asyncio.Lock()
        self._closed = False

    @property
    def connected(self) -> bool:
        return (
            self._protocol is not None
            and self._protocol.transport is not None
            and not self._protocol.transport.is_closing()
        )

    def on(self, event: str, handler: Callable[[str], None]):
        return self.handlers.on(event, handler)

    def off(self, event: str, handler: Callable[[str], None]):
        self.handlers.off(event, handler)

    async def connect(self, timeout: float | None = None):
        async with self._connect_lock:
            if self._closed:
                raise ChannelClosedError("Err. - channel client is closed")

            if self.connected:
                return

            loop = asyncio.get_running_loop()

            _, protocol = await asyncio.wait_for(
                loop.create_connection(
                    lambda: ChannelProtocol(
                        mode="client",
                        on_message=self._dispatch,
                        on_connection_lost=self._connection_lost,
                    ),
                    host=self.host,
                    port=self.port,
                ),
                timeout=timeout,
            )

            if self._closed:
                protocol.close()
                await protocol.on_con_lost
                raise ChannelClosedError("Err. - channel client closed while connecting")

            if protocol.on_con_lost.done():
                raise ConnectionResetError("Err. - connection closed while connecting")

            self._protocol = protocol

    def _dispatch(self, message: ChannelMessage):
        if self._closed:
            return

        self.handlers.emit(message.event, message.data)

    def _connection_lost(self, protocol: ChannelProtocol, exc: Exception | None):
        if protocol is not self._protocol:
            return

        self._protocol = None

        if self._closed is False and self._on_connection_lost:
            self._on_connection_lost(exc)

    async def close(self):
        self._closed = True
        self.handlers.clear()

        protocol = self._protocol
        self._protocol = None

        if protocol is not None:
            protocol.close()
            await protocol.on_con_lost
