import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List

Callback = Callable[..., Awaitable[None] | None]


class Subscribers:
    """
    Ordered registry of event callbacks.

    ``emit`` calls every callback registered for an event synchronously, in
    registration order. A callback that returns a coroutine is scheduled as
    a task and tracked until it completes, so ``clear`` can cancel it.
    With an ``on_callback_error`` handler set, a failing callback is
    reported to it and later callbacks still run. Without one the
    exception propagates out of ``emit``.
    """

    def __init__(
        self,
        on_callback_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._callbacks: Dict[str, List[Callback]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()
        self._on_callback_error = on_callback_error

    def on(self, event: str, callback: Callback):
        if callback not in self._callbacks[event]:
            self._callbacks[event].append(callback)

        return callback

    def off(self, event: str, callback: Callback):
        if callback in self._callbacks.get(event, []):
            self._callbacks[event].remove(callback)

    def count(self, event: str) -> int:
        return len(self._callbacks.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        callbacks = list(self._callbacks.get(event, []))

        for callback in callbacks:
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._pending.discard)

            except Exception as err:
                if self._on_callback_error is None:
                    raise

                self._on_callback_error(event, err)

        return len(callbacks)

    def clear(self):
        self._callbacks.clear()

        for task in list(self._pending):
            if not task.done():
                task.cancel()

        self._pending.clear()
