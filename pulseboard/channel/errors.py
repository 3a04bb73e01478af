class BufferOverflowError(Exception):
    """Raised when buffer size limits are exceeded."""

    pass


class FrameTooLargeError(Exception):
    """Raised when a frame's length prefix exceeds the maximum allowed."""

    def __init__(
        self,
        message: str,
        actual_size: int = 0,
        max_size: int = 0,
    ) -> None:
        super().__init__(message)
        self.actual_size = actual_size
        self.max_size = max_size


class ChannelClosedError(Exception):
    """Raised when publishing or connecting through a closed channel."""

    pass
