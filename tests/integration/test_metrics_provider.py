"""
Integration tests for MetricsProvider.

A bare ChannelServer stands in for the agent so each test controls
exactly which payloads are published and when the connection drops.
"""

import asyncio

import pytest

from pulseboard import MetricSample, MetricsProvider
from pulseboard.channel import ChannelServer

from tests.helpers import get_free_port, make_sample, wait_until


async def start_server(port: int = 0) -> ChannelServer:
    server = ChannelServer("127.0.0.1", port)
    await server.start()
    return server


async def connected_provider(
    server: ChannelServer,
    **kwargs,
) -> MetricsProvider:
    kwargs.setdefault("retry_interval", 0.05)
    provider = MetricsProvider(host="127.0.0.1", port=server.port, **kwargs)

    assert await provider.connect() is True
    assert await wait_until(lambda: server.state.get_connection_count() == 1)

    return provider


def publish(server: ChannelServer, sample: MetricSample) -> int:
    return server.publish("metrics", sample.dump().decode())


class TestMetricsProviderReceive:
    @pytest.mark.asyncio
    async def test_receives_samples(self) -> None:
        """Test a sample is stored before subscribers are notified."""
        server = await start_server()
        provider = await connected_provider(server)

        seen_in_window: list[MetricSample | None] = []
        received: list[MetricSample] = []

        def on_metrics(sample: MetricSample):
            seen_in_window.append(provider.latest())
            received.append(sample)

        provider.on("metrics", on_metrics)

        try:
            sample = make_sample(delay=4, high=9, cpu=33)
            assert publish(server, sample) == 1

            assert await wait_until(lambda: len(received) == 1)
            assert received[0] == sample
            assert seen_in_window == [sample]
            assert provider.get_metrics(1) == [sample]

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_empty_window(self) -> None:
        provider = MetricsProvider(port=get_free_port())

        assert provider.get_metrics(1) == []
        assert provider.get_metrics(10) == []
        assert provider.latest() is None

    @pytest.mark.asyncio
    async def test_window_keeps_most_recent(self) -> None:
        server = await start_server()
        provider = await connected_provider(server, window_size=3)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            for cpu in range(1, 6):
                publish(server, make_sample(cpu=cpu))

            assert await wait_until(lambda: len(received) == 5)

            window = provider.get_metrics(10)
            assert [sample.cpu.utilization for sample in window] == [3, 4, 5]
            assert [s.cpu.utilization for s in provider.get_metrics(2)] == [4, 5]

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_ignores_malformed_samples(self) -> None:
        server = await start_server()
        provider = await connected_provider(server)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            server.publish("metrics", "not json")
            server.publish("metrics", '{"cpu": 1}')
            publish(server, make_sample(cpu=7))

            assert await wait_until(lambda: len(received) == 1)
            assert received[0].cpu.utilization == 7
            assert provider.malformed_samples == 2
            assert len(provider.get_metrics(10)) == 1

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_ignores_other_events(self) -> None:
        server = await start_server()
        provider = await connected_provider(server)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            server.publish("status", "ignored")
            publish(server, make_sample(cpu=1))

            assert await wait_until(lambda: len(received) == 1)
            assert provider.malformed_samples == 0

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self) -> None:
        server = await start_server()
        provider = await connected_provider(server)
        received: list[MetricSample] = []

        def failing(sample: MetricSample):
            raise RuntimeError("render failed")

        provider.on("metrics", failing)
        provider.on("metrics", received.append)

        try:
            publish(server, make_sample(cpu=2))
            assert await wait_until(lambda: len(received) == 1)

        finally:
            await provider.close()
            await server.close()


class TestMetricsProviderConnection:
    @pytest.mark.asyncio
    async def test_reconnects_and_keeps_stale_window(self) -> None:
        """Test the last window is served while the agent is away."""
        server = await start_server()
        port = server.port
        provider = await connected_provider(server)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            publish(server, make_sample(cpu=1))
            assert await wait_until(lambda: len(received) == 1)

            await server.close()
            assert await wait_until(lambda: provider.connected is False)

            assert [s.cpu.utilization for s in provider.get_metrics(1)] == [1]

            server = await start_server(port)
            assert await provider.wait_connected(timeout=3)
            assert await wait_until(lambda: server.state.get_connection_count() == 1)

            publish(server, make_sample(cpu=2))
            assert await wait_until(lambda: len(received) == 2)
            assert [s.cpu.utilization for s in provider.get_metrics(2)] == [1, 2]

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_overlapping_connects_share_one_connection(self) -> None:
        """Test concurrent connect() calls open a single connection."""
        server = await start_server()
        provider = MetricsProvider(
            host="127.0.0.1",
            port=server.port,
            retry_interval=0.05,
        )
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            results = await asyncio.gather(provider.connect(), provider.connect())

            assert results == [True, True]
            assert await wait_until(lambda: server.state.get_connection_count() == 1)
            await asyncio.sleep(0.05)
            assert server.state.get_connection_count() == 1

            assert publish(server, make_sample(cpu=1)) == 1
            assert await wait_until(lambda: len(received) == 1)
            await asyncio.sleep(0.05)

            assert len(received) == 1
            assert len(provider.get_metrics(10)) == 1

            await provider.close()

            assert await wait_until(lambda: server.state.get_connection_count() == 0)

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_connect_during_reconnect_keeps_one_connection(self) -> None:
        server = await start_server()
        port = server.port
        provider = await connected_provider(server)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            await server.close()
            assert await wait_until(lambda: provider.connected is False)

            server = await start_server(port)
            await asyncio.gather(
                provider.connect(),
                provider.wait_connected(timeout=3),
            )
            await asyncio.sleep(0.15)

            assert server.state.get_connection_count() == 1

            publish(server, make_sample(cpu=2))
            assert await wait_until(lambda: len(received) == 1)
            await asyncio.sleep(0.05)
            assert len(received) == 1

        finally:
            await provider.close()
            await server.close()

    @pytest.mark.asyncio
    async def test_connects_once_agent_appears(self) -> None:
        port = get_free_port()
        provider = MetricsProvider(host="127.0.0.1", port=port, retry_interval=0.05)

        try:
            assert await provider.connect() is False
            assert provider.connected is False

            server = await start_server(port)

            try:
                assert await provider.wait_connected(timeout=3)
                assert provider.connected is True

            finally:
                await server.close()

        finally:
            await provider.close()

    @pytest.mark.asyncio
    async def test_no_notifications_after_close(self) -> None:
        server = await start_server()
        provider = await connected_provider(server)
        received: list[MetricSample] = []
        provider.on("metrics", received.append)

        try:
            await provider.close()

            publish(server, make_sample(cpu=1))
            await asyncio.sleep(0.05)

            assert received == []
            assert provider.closed is True
            assert provider.connected is False
            assert await provider.connect() is False

        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_close_stops_reconnecting(self) -> None:
        port = get_free_port()
        provider = MetricsProvider(host="127.0.0.1", port=port, retry_interval=0.02)

        assert await provider.connect() is False
        await provider.close()

        server = await start_server(port)

        try:
            await asyncio.sleep(0.1)
            assert server.state.get_connection_count() == 0

        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        server = await start_server()

        try:
            async with MetricsProvider(
                host="127.0.0.1",
                port=server.port,
                retry_interval=0.05,
            ) as provider:
                assert provider.connected is True

            assert provider.closed is True

        finally:
            await server.close()
