from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class DropCounter:
    """Counts messages a peer never received."""

    backpressure: int = 0
    closing: int = 0

    def increment_backpressure(self) -> None:
        self.backpressure += 1

    def increment_closing(self) -> None:
        self.closing += 1

    @property
    def total(self) -> int:
        return self.backpressure + self.closing

    def reset(self) -> int:
        total = self.total

        self.backpressure = 0
        self.closing = 0

        return total


class ServerState(Generic[T]):
    """
    State shared between all protocol instances of one server.

    Connections are kept in connection order so every publish visits
    peers in the same sequence.
    """

    DEFAULT_MAX_CONNECTIONS: int = 64

    def __init__(self, max_connections: int | None = None) -> None:
        self.connections: dict[T, None] = {}
        self.max_connections = max_connections or self.DEFAULT_MAX_CONNECTIONS
        self.drops = DropCounter()

    def add(self, connection: T):
        self.connections[connection] = None

    def discard(self, connection: T):
        self.connections.pop(connection, None)

    def is_at_capacity(self) -> bool:
        return len(self.connections) >= self.max_connections

    def get_connection_count(self) -> int:
        return len(self.connections)
