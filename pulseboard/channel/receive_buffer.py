from __future__ import annotations

from .errors import BufferOverflowError, FrameTooLargeError

# 4 byte big-endian unsigned length prefix
LENGTH_PREFIX_SIZE = 4

# A serialized sample is a few hundred bytes, so these leave plenty of room.
MAX_FRAME_LENGTH = 64 * 1024
MAX_BUFFER_SIZE = 1024 * 1024


class ReceiveBuffer:
    def __init__(
        self,
        max_frame_length: int = MAX_FRAME_LENGTH,
        max_buffer_size: int = MAX_BUFFER_SIZE,
    ) -> None:
        self.buffer = bytearray()
        self._max_frame_length = max_frame_length
        self._max_buffer_size = max_buffer_size

    def __iadd__(self, byteslike: bytes | bytearray) -> "ReceiveBuffer":
        new_size = len(self.buffer) + len(byteslike)
        if new_size > self._max_buffer_size:
            raise BufferOverflowError(
                f"Buffer would exceed max size: {new_size} > {self._max_buffer_size} bytes"
            )

        self.buffer += byteslike
        return self

    def __bool__(self) -> bool:
        return bool(len(self))

    def __len__(self) -> int:
        return len(self.buffer)

    def __bytes__(self) -> bytes:
        return bytes(self.buffer)

    def _extract(self, count: int) -> bytearray:
        out = self.buffer[:count]
        del self.buffer[:count]

        return out

    def maybe_extract_framed(self) -> bytes | None:
        """
        Extract one length-prefixed payload if a complete frame is buffered.

        Raises FrameTooLargeError if the prefix announces a frame larger
        than ``max_frame_length``.
        """
        if len(self.buffer) < LENGTH_PREFIX_SIZE:
            return None

        message_length = int.from_bytes(self.buffer[:LENGTH_PREFIX_SIZE], "big")

        if message_length > self._max_frame_length:
            raise FrameTooLargeError(
                f"Frame length exceeds maximum: {message_length} > {self._max_frame_length} bytes",
                actual_size=message_length,
                max_size=self._max_frame_length,
            )

        total_length = LENGTH_PREFIX_SIZE + message_length
        if len(self.buffer) < total_length:
            return None

        self._extract(LENGTH_PREFIX_SIZE)
        return bytes(self._extract(message_length))

    def extract_all(self) -> list[bytes]:
        frames: list[bytes] = []

        while (frame := self.maybe_extract_framed()) is not None:
            frames.append(frame)

        return frames

    def clear(self):
        self.buffer.clear()


def frame_message(data: bytes) -> bytes:
    """
    Prefix a payload with its length for transmission.

    Returns: [4-byte length prefix (big-endian)] + [data]
    """
    return len(data).to_bytes(LENGTH_PREFIX_SIZE, "big") + data
