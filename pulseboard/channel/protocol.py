import asyncio
from typing import Callable, Literal

import msgspec

from pulseboard.models import ChannelMessage

from .errors import BufferOverflowError, FrameTooLargeError
from .flow_control import FlowControl
from .receive_buffer import ReceiveBuffer, frame_message
from .server_state import ServerState


def _get_addr(transport: asyncio.BaseTransport, name: str) -> tuple[str, int] | None:
    info = transport.get_extra_info(name)
    if isinstance(info, (list, tuple)) and len(info) >= 2:
        return (str(info[0]), int(info[1]))

    return None


class ChannelProtocol(asyncio.Protocol):
    """
    One framed connection of the metrics channel.

    In server mode the protocol registers itself with the shared
    ``ServerState`` once accepted. A connection refused at capacity is
    closed immediately and never reported as connected or lost.
    """

    def __init__(
        self,
        mode: Literal["client", "server"] = "client",
        server_state: ServerState["ChannelProtocol"] | None = None,
        on_message: Callable[[ChannelMessage], None] | None = None,
        on_connection_made: Callable[["ChannelProtocol"], None] | None = None,
        on_connection_lost: Callable[["ChannelProtocol", Exception | None], None]
        | None = None,
        on_frame_error: Callable[["ChannelProtocol", Exception], None] | None = None,
    ) -> None:
        super().__init__()
        self.mode: Literal["client", "server"] = mode
        self.server_state = server_state
        self.transport: asyncio.Transport | None = None
        self.flow: FlowControl | None = None
        self.server: tuple[str, int] | None = None
        self.client: tuple[str, int] | None = None
        self.accepted = False
        self.malformed_messages = 0

        self._on_message = on_message
        self._on_connection_made = on_connection_made
        self._on_connection_lost = on_connection_lost
        self._on_frame_error = on_frame_error
        self._receive_buffer = ReceiveBuffer()

        self.on_con_lost: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def writable(self) -> bool:
        return self.flow is not None and self.flow.writable

    def connection_made(self, transport: asyncio.Transport):
        self.transport = transport
        self.flow = FlowControl(transport)
        self.server = _get_addr(transport, "sockname")
        self.client = _get_addr(transport, "peername")

        if self.server_state is not None:
            if self.server_state.is_at_capacity():
                transport.close()
                return

            self.server_state.add(self)

        self.accepted = True

        if self._on_connection_made:
            self._on_connection_made(self)

    def data_received(self, data: bytes):
        try:
            self._receive_buffer += data
            frames = self._receive_buffer.extract_all()

        except (BufferOverflowError, FrameTooLargeError) as err:
            self._receive_buffer.clear()
            self.malformed_messages += 1
            self.transport.close()

            if self._on_frame_error:
                self._on_frame_error(self, err)

            return

        for frame in frames:
            try:
                message = ChannelMessage.load(frame)

            except (msgspec.DecodeError, msgspec.ValidationError):
                self.malformed_messages += 1
                continue

            if self._on_message:
                self._on_message(message)

    def eof_received(self):
        return None

    def connection_lost(self, exc: Exception | None):
        if self.server_state is not None:
            self.server_state.discard(self)

        if self.flow is not None:
            self.flow.resume_writing()

        self._receive_buffer.clear()

        if not self.on_con_lost.done():
            self.on_con_lost.set_result(True)

        if self.accepted and self._on_connection_lost:
            self._on_connection_lost(self, exc)

    def pause_writing(self):
        self.flow.pause_writing()

    def resume_writing(self):
        self.flow.resume_writing()

    def send(self, payload: bytes) -> bool:
        if not self.writable:
            return False

        self.transport.write(frame_message(payload))
        return True

    def close(self):
        if self.transport is not None and not self.transport.is_closing():
            self.transport.close()
