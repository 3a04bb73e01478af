import asyncio

from pulseboard.logging import Logger
from pulseboard.logging.pulseboard_logging_models import (
    ChannelDebug,
    ChannelError,
    ChannelInfo,
)
from pulseboard.models import ChannelMessage

from .errors import ChannelClosedError
from .protocol import ChannelProtocol
from .server_state import ServerState


class ChannelServer:
    """
    Server side of the metrics channel.

    Every connected peer gets its own copy of each published message, in
    publish order. There is no acknowledgement, retry, or backfill: a peer
    that connects between publishes sees nothing until the next one, and
    a peer whose write buffer is full is skipped for that publish.
    """

    def __init__(
        self,
        host: str,
        port: int,
        max_connections: int | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.state = ServerState[ChannelProtocol](max_connections=max_connections)

        self._logger = logger
        self._server: asyncio.Server | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._log_tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def peers(self) -> list[ChannelProtocol]:
        return list(self.state.connections)

    async def start(self):
        if self._server is not None:
            return

        self._loop = asyncio.get_running_loop()

        # Bind errors (port in use, bad host) propagate to the caller.
        self._server = await self._loop.create_server(
            lambda: ChannelProtocol(
                mode="server",
                server_state=self.state,
                on_connection_made=self._peer_connected,
                on_connection_lost=self._peer_disconnected,
                on_frame_error=self._peer_frame_error,
            ),
            host=self.host,
            port=self.port,
        )

        if self.port == 0 and self._server.sockets:
            self.port = self._server.sockets[0].getsockname()[1]

        self._schedule_log(
            ChannelInfo(
                message=f"Channel listening on {self.host}:{self.port}",
                host=self.host,
                port=self.port,
                peers=0,
            )
        )

    def publish(self, event: str, data: str) -> int:
        if self._server is None:
            raise ChannelClosedError("Err. - channel server is not running")

        payload = ChannelMessage(event=event, data=data).dump()
        delivered = 0

        for peer in self.peers:
            if peer.send(payload):
                delivered += 1

            elif peer.transport is not None and peer.transport.is_closing():
                self.state.drops.increment_closing()

            else:
                self.state.drops.increment_backpressure()

        return delivered

    async def close(self):
        server = self._server
        self._server = None

        if server is None:
            return

        server.close()

        for peer in self.peers:
            peer.close()

        self.state.connections.clear()

        await server.wait_closed()

        for task in list(self._log_tasks):
            if not task.done():
                task.cancel()

        self._log_tasks.clear()

    def abort(self):
        server = self._server
        self._server = None

        if server is not None:
            server.close()

        for peer in self.peers:
            if peer.transport is not None:
                peer.transport.abort()

        self.state.connections.clear()

    def _peer_connected(self, peer: ChannelProtocol):
        self._schedule_log(
            ChannelDebug(
                message=f"Peer {peer.client} connected",
                host=self.host,
                port=self.port,
                peers=self.state.get_connection_count(),
            )
        )

    def _peer_disconnected(self, peer: ChannelProtocol, exc: Exception | None):
        self._schedule_log(
            ChannelDebug(
                message=f"Peer {peer.client} disconnected",
                host=self.host,
                port=self.port,
                peers=self.state.get_connection_count(),
            )
        )

    def _peer_frame_error(self, peer: ChannelProtocol, err: Exception):
        self._schedule_log(
            ChannelError(
                message=f"Closed peer {peer.client} after an invalid frame",
                host=self.host,
                port=self.port,
                error=str(err),
            )
        )

    def _schedule_log(self, entry: ChannelInfo | ChannelDebug | ChannelError):
        if self._logger is None or self._server is None or self._loop.is_closed():
            return

        task = self._loop.create_task(self._logger.log(entry, name="channel"))
        self._log_tasks.add(task)
        task.add_done_callback(self._log_tasks.discard)
