import asyncio

import pytest

from pulseboard.events import Subscribers


class TestSubscribers:
    def test_emits_in_registration_order(self) -> None:
        subscribers = Subscribers()
        calls: list[tuple[str, int]] = []

        subscribers.on("metrics", lambda value: calls.append(("first", value)))
        subscribers.on("metrics", lambda value: calls.append(("second", value)))

        delivered = subscribers.emit("metrics", 1)

        assert delivered == 2
        assert calls == [("first", 1), ("second", 1)]

    def test_emit_without_subscribers(self) -> None:
        assert Subscribers().emit("metrics", 1) == 0

    def test_registers_callback_once(self) -> None:
        subscribers = Subscribers()
        calls: list[int] = []

        def callback(value: int):
            calls.append(value)

        subscribers.on("metrics", callback)
        subscribers.on("metrics", callback)
        subscribers.emit("metrics", 5)

        assert calls == [5]
        assert subscribers.count("metrics") == 1

    def test_off(self) -> None:
        subscribers = Subscribers()
        calls: list[int] = []

        def callback(value: int):
            calls.append(value)

        subscribers.on("metrics", callback)
        subscribers.off("metrics", callback)
        subscribers.off("error", callback)
        subscribers.emit("metrics", 5)

        assert calls == []

    def test_failing_callback_does_not_stop_others(self) -> None:
        errors: list[tuple[str, Exception]] = []
        subscribers = Subscribers(
            on_callback_error=lambda event, err: errors.append((event, err)),
        )
        calls: list[int] = []

        def failing(value: int):
            raise RuntimeError("callback failed")

        subscribers.on("metrics", failing)
        subscribers.on("metrics", calls.append)
        subscribers.emit("metrics", 3)

        assert calls == [3]
        assert errors[0][0] == "metrics"
        assert str(errors[0][1]) == "callback failed"

    @pytest.mark.asyncio
    async def test_schedules_coroutine_callbacks(self) -> None:
        subscribers = Subscribers()
        received = asyncio.Event()

        async def callback(value: int):
            received.set()

        subscribers.on("metrics", callback)
        subscribers.emit("metrics", 1)

        await asyncio.wait_for(received.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_clear_cancels_pending_callbacks(self) -> None:
        subscribers = Subscribers()
        finished: list[int] = []

        async def slow(value: int):
            await asyncio.sleep(10)
            finished.append(value)

        subscribers.on("metrics", slow)
        subscribers.emit("metrics", 1)
        subscribers.clear()
        await asyncio.sleep(0)

        assert finished == []
        assert subscribers.count("metrics") == 0

    def test_propagates_without_error_handler(self) -> None:
        subscribers = Subscribers()

        def failing(value: int):
            raise RuntimeError("callback failed")

        subscribers.on("metrics", failing)

        with pytest.raises(RuntimeError):
            subscribers.emit("metrics", 1)
