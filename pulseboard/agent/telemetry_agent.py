from __future__ import annotations

import asyncio
import os
from typing import Callable, Dict

from pulseboard.channel import ChannelServer
from pulseboard.env import AgentEnv, AgentOptions, load_env
from pulseboard.events import Subscribers
from pulseboard.logging import Logger, LoggingConfig
from pulseboard.logging.pulseboard_logging_models import (
    AgentDebug,
    AgentError,
    AgentInfo,
    AgentWarn,
)
from pulseboard.models import MemoryUsage, MetricSample
from pulseboard.monitoring import (
    CollectorBusyError,
    EventLoopMonitor,
    ProcessStats,
    StatsCollectionError,
    StatsCollector,
)

METRICS_EVENT = "metrics"
ERROR_EVENT = "error"


class TelemetryAgent:
    """
    In-process agent that samples this process on a fixed cadence and
    publishes each sample to every connected viewer.

    Configuration is resolved once, here, with explicit arguments taking
    precedence over ``PULSEBOARD_*`` environment variables (or a ``.env``
    file), which take precedence over built-in defaults.

    The timer never waits on a collection. Each tick either starts one
    collection task or, if the previous one has not finished, is skipped.
    A failed collection publishes nothing, is reported to ``"error"``
    subscribers, and the next tick proceeds as normal.

    Example:
        async with TelemetryAgent(port=9838, refresh_interval="500ms") as agent:
            agent.on("error", print)
            await serve_forever()
    """

    def __init__(
        self,
        port: int | None = None,
        refresh_interval: str | int | float | None = None,
        blocked_threshold: int | float | None = None,
        host: str | None = None,
        env_file: str | None = None,
        logger: Logger | None = None,
        process_stats: ProcessStats | None = None,
        memory_reader: Callable[[], MemoryUsage] | None = None,
    ) -> None:
        self.env = load_env(
            AgentEnv,
            env_file=env_file,
            override=AgentOptions(
                host=host,
                port=port,
                refresh_interval=refresh_interval,
                blocked_threshold=blocked_threshold,
            ),
        )

        self.host = self.env.host
        self.port = self.env.port
        self.refresh_interval = self.env.refresh_interval
        self.blocked_threshold = self.env.blocked_threshold
        self.pid = os.getpid()

        self._logger = logger or Logger()
        self.monitor = EventLoopMonitor()
        self.collector = StatsCollector(
            self.monitor,
            process_stats=process_stats,
            memory_reader=memory_reader,
            pid=self.pid,
        )
        self.channel = ChannelServer(
            self.host,
            self.port,
            logger=self._logger,
        )

        self._subscribers = Subscribers(on_callback_error=self._on_callback_error)
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer_task: asyncio.Task | None = None
        self._collect_tasks: set[asyncio.Task] = set()
        self._log_tasks: set[asyncio.Task] = set()
        self._generation = 0
        self._counters: Dict[str, int] = {
            "ticks": 0,
            "ticks_skipped": 0,
            "samples_published": 0,
            "errors": 0,
            "log_errors": 0,
        }

    @property
    def running(self) -> bool:
        return self._running

    @property
    def counters(self) -> Dict[str, int]:
        return dict(self._counters)

    def on(self, event: str, callback: Callable[..., None]):
        return self._subscribers.on(event, callback)

    def off(self, event: str, callback: Callable[..., None]):
        self._subscribers.off(event, callback)

    async def start(self):
        if self._running:
            return

        self._loop = asyncio.get_running_loop()

        LoggingConfig().update(
            log_level=self.env.PULSEBOARD_LOG_LEVEL,
            log_directory=self.env.PULSEBOARD_LOGS_DIRECTORY,
        )

        await self.channel.start()
        self.port = self.channel.port

        self.monitor.start()

        self._running = True
        self._generation += 1
        self._timer_task = self._loop.create_task(self._run_timer())

        await self._log(
            AgentInfo(
                message=f"Agent publishing every {self.refresh_interval}s on {self.host}:{self.port}",
                host=self.host,
                port=self.port,
                pid=self.pid,
            )
        )

    async def destroy(self):
        if self._running is False and self.channel.running is False:
            return

        self._running = False

        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
            try:
                await self._timer_task

            except asyncio.CancelledError:
                pass

        self._timer_task = None

        await self.monitor.stop()
        await self.channel.close()
        self._cancel_log_tasks()

        await self._log(
            AgentInfo(
                message="Agent destroyed",
                host=self.host,
                port=self.port,
                pid=self.pid,
            )
        )

    def abort(self):
        self._running = False

        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()

        self._timer_task = None

        self.monitor.abort()
        self.channel.abort()
        self._cancel_log_tasks()
        self._logger.abort()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.destroy()

    async def _run_timer(self):
        while self._running:
            await asyncio.sleep(self.refresh_interval)

            if self._running is False:
                break

            self._tick()

    def _tick(self):
        self._counters["ticks"] += 1

        if self.collector.busy:
            self._counters["ticks_skipped"] += 1
            return

        task = self._loop.create_task(self._collect(self._generation))
        self._collect_tasks.add(task)
        task.add_done_callback(self._collect_tasks.discard)

    async def _collect(self, generation: int):
        try:
            sample = await self.collector.get_stats()

        except CollectorBusyError:
            self._counters["ticks_skipped"] += 1
            return

        except StatsCollectionError as err:
            if self._is_stale(generation):
                return

            self._counters["errors"] += 1
            self._subscribers.emit(ERROR_EVENT, err)

            await self._log(
                AgentError(
                    message="Failed to collect stats, skipping tick",
                    host=self.host,
                    port=self.port,
                    pid=self.pid,
                    error=str(err),
                )
            )
            return

        # A read that resolves after destroy() is discarded, even if the
        # agent has been started again since.
        if self._is_stale(generation):
            return

        self.publish(sample)

        if sample.event_loop.exceeds(self.blocked_threshold):
            await self._log(
                AgentWarn(
                    message=f"Event loop blocked for {sample.event_loop.delay:.1f}ms",
                    host=self.host,
                    port=self.port,
                    pid=self.pid,
                )
            )

    def _is_stale(self, generation: int) -> bool:
        return self._running is False or generation != self._generation

    def publish(self, sample: MetricSample) -> int:
        delivered = self.channel.publish(
            METRICS_EVENT,
            sample.dump().decode(),
        )

        self._counters["samples_published"] += 1
        self._subscribers.emit(METRICS_EVENT, sample)

        return delivered

    def _on_callback_error(self, event: str, err: Exception):
        if self._loop is None or self._loop.is_closed():
            return

        task = self._loop.create_task(
            self._log(
                AgentDebug(
                    message=f"Subscriber for {event} failed: {type(err).__name__}: {err}",
                    host=self.host,
                    port=self.port,
                    pid=self.pid,
                )
            )
        )
        self._log_tasks.add(task)
        task.add_done_callback(self._log_tasks.discard)

    def _cancel_log_tasks(self):
        for task in list(self._log_tasks):
            if not task.done():
                task.cancel()

        self._log_tasks.clear()

    async def _log(self, entry: AgentInfo | AgentDebug | AgentWarn | AgentError):
        try:
            await self._logger.log(entry, name="agent")

        except Exception:
            self._counters["log_errors"] += 1


async def create_agent(
    port: int | None = None,
    refresh_interval: str | int | float | None = None,
    blocked_threshold: int | float | None = None,
    host: str | None = None,
    **kwargs,
) -> TelemetryAgent:
    agent = TelemetryAgent(
        port=port,
        refresh_interval=refresh_interval,
        blocked_threshold=blocked_threshold,
        host=host,
        **kwargs,
    )

    await agent.start()

    return agent
