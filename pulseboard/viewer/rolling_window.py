from collections import deque
from typing import Deque, Generic, Iterator, List, TypeVar

from pulseboard.models import MetricSample

T = TypeVar("T")


class RollingWindow(Generic[T]):
    """Fixed capacity, insertion ordered buffer. The oldest item is evicted first."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Err. - window capacity must be at least 1, got {capacity}")

        self.capacity = capacity
        self._items: Deque[T] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __bool__(self) -> bool:
        return len(self._items) > 0

    def append(self, item: T):
        self._items.append(item)

    def latest(self, count: int) -> List[T]:
        if count <= 0 or len(self._items) == 0:
            return []

        if count >= len(self._items):
            return list(self._items)

        return list(self._items)[-count:]

    def clear(self):
        self._items.clear()


MetricsWindow = RollingWindow[MetricSample]
