import asyncio


class FlowControl:
    """
    Tracks whether the transport asked us to stop writing.

    ``pause_writing`` / ``resume_writing`` are driven by the transport's
    write buffer high and low water marks. Publishers check ``writable``
    and skip paused peers instead of growing their buffers.
    """

    def __init__(self, transport: asyncio.Transport) -> None:
        self._transport = transport
        self.write_paused = False

    @property
    def writable(self) -> bool:
        return self.write_paused is False and self._transport.is_closing() is False

    def pause_writing(self) -> None:
        self.write_paused = True

    def resume_writing(self) -> None:
        self.write_paused = False
