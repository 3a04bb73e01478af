from .client import ChannelClient as ChannelClient
from .errors import (
    BufferOverflowError as BufferOverflowError,
    ChannelClosedError as ChannelClosedError,
    FrameTooLargeError as FrameTooLargeError,
)
from .protocol import ChannelProtocol as ChannelProtocol
from .receive_buffer import (
    MAX_BUFFER_SIZE as MAX_BUFFER_SIZE,
    MAX_FRAME_LENGTH as MAX_FRAME_LENGTH,
    ReceiveBuffer as ReceiveBuffer,
    frame_message as frame_message,
)
from .server import ChannelServer as ChannelServer
from .server_state import (
    DropCounter as DropCounter,
    ServerState as ServerState,
)
