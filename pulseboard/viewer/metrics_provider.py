from __future__ import annotations

import asyncio
from typing import Callable, List

import msgspec
import orjson

from pulseboard.channel import ChannelClient, ChannelClosedError
from pulseboard.env import ViewerEnv, ViewerOptions, load_env
from pulseboard.events import Subscribers
from pulseboard.logging import Logger
from pulseboard.logging.pulseboard_logging_models import (
    ViewerDebug,
    ViewerError,
    ViewerInfo,
)
from pulseboard.models import MetricSample

from .rolling_window import MetricsWindow

METRICS_EVENT = "metrics"


class MetricsProvider:
    """
    Viewer side ingestion of agent samples.

    Every received sample is appended to a bounded rolling window and then
    handed, synchronously, to each ``"metrics"`` subscriber. Display code
    can also pull the most recent samples with ``get_metrics``.

    If the connection drops the provider keeps serving the last known
    window and retries every ``retry_interval`` seconds until it reconnects
    or is closed. Samples published while disconnected are not replayed.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        window_size: int | None = None,
        retry_interval: str | int | float | None = None,
        env_file: str | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.env = load_env(
            ViewerEnv,
            env_file=env_file,
            override=ViewerOptions(
                host=host,
                port=port,
                window_size=window_size,
                retry_interval=retry_interval,
            ),
        )

        self.host = self.env.host
        self.port = self.env.port
        self.retry_interval = self.env.retry_interval

        self.window = MetricsWindow(self.env.window_size)
        self.malformed_samples = 0

        self._logger = logger or Logger()
        self._subscribers = Subscribers(on_callback_error=self._on_callback_error)
        self._client = ChannelClient(
            self.host,
            self.port,
            on_connection_lost=self._connection_lost,
        )
        self._client.on(METRICS_EVENT, self._receive)

        self._loop: asyncio.AbstractEventLoop | None = None
        self._connected = asyncio.Event()
        self._reconnect_task: asyncio.Task | None = None
        self._log_tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._client.connected

    @property
    def closed(self) -> bool:
        return self._closed

    def on(self, event: str, callback: Callable[[MetricSample], None]):
        return self._subscribers.on(event, callback)

    def off(self, event: str, callback: Callable[[MetricSample], None]):
        self._subscribers.off(event, callback)

    def get_metrics(self, count: int) -> List[MetricSample]:
        return self.window.latest(count)

    def latest(self) -> MetricSample | None:
        samples = self.window.latest(1)
        return samples[0] if samples else None

    async def connect(self) -> bool:
        """
        Try to connect once. On failure a background reconnect loop is
        started and False is returned; the provider stays usable.
        """
        if self._closed:
            return False

        self._loop = asyncio.get_running_loop()

        try:
            await self._client.connect(timeout=self.retry_interval)

        except ChannelClosedError:
            return False

        except (OSError, asyncio.TimeoutError) as err:
            self._schedule_log(
                ViewerError(
                    message="Could not connect to agent, retrying",
                    host=self.host,
                    port=self.port,
                    error=str(err) or type(err).__name__,
                )
            )
            self._start_reconnect()
            return False

        self._on_connected()
        return True

    async def wait_connected(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=timeout)

        except asyncio.TimeoutError:
            return False

        return True

    async def close(self):
        if self._closed:
            return

        self._closed = True
        self._subscribers.clear()

        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task

            except asyncio.CancelledError:
                pass

        self._reconnect_task = None

        await self._client.close()
        self._connected.clear()

        for task in list(self._log_tasks):
            if not task.done():
                task.cancel()

        self._log_tasks.clear()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _receive(self, data: str):
        if self._closed:
            return

        try:
            sample = MetricSample.load(data)

        except (orjson.JSONDecodeError, msgspec.ValidationError):
            self.malformed_samples += 1
            return

        self.window.append(sample)
        self._subscribers.emit(METRICS_EVENT, sample)

    def _on_connected(self):
        self._connected.set()
        self._schedule_log(
            ViewerInfo(
                message=f"Connected to agent at {self.host}:{self.port}",
                host=self.host,
                port=self.port,
                window_size=self.window.capacity,
            )
        )

    def _connection_lost(self, exc: Exception | None):
        self._connected.clear()

        if self._closed:
            return

        self._schedule_log(
            ViewerDebug(
                message="Lost connection to agent, serving last known metrics",
                host=self.host,
                port=self.port,
                window_size=self.window.capacity,
            )
        )

        self._start_reconnect()

    def _start_reconnect(self):
        if self._closed or self._loop is None:
            return

        if self._reconnect_task and not self._reconnect_task.done():
            return

        self._reconnect_task = self._loop.create_task(self._reconnect())

    async def _reconnect(self):
        while self._closed is False and self._client.connected is False:
            await asyncio.sleep(self.retry_interval)

            if self._closed:
                return

            try:
                await self._client.connect(timeout=self.retry_interval)

            except ChannelClosedError:
                return

            except (OSError, asyncio.TimeoutError):
                continue

            self._on_connected()

    def _on_callback_error(self, event: str, err: Exception):
        self._schedule_log(
            ViewerError(
                message=f"Subscriber for {event} failed",
                host=self.host,
                port=self.port,
                error=f"{type(err).__name__}: {err}",
            )
        )

    def _schedule_log(self, entry: ViewerInfo | ViewerDebug | ViewerError):
        if self._loop is None or self._loop.is_closed() or self._closed:
            return

        task = self._loop.create_task(self._logger.log(entry, name="viewer"))
        self._log_tasks.add(task)
        task.add_done_callback(self._log_tasks.discard)
