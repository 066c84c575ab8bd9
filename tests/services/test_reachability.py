from __future__ import annotations

import asyncio
import time

import pytest

from portal.services.reachability import ProbeCandidate, ReachabilityCache, ReachabilityProber
from portal.services.urls import UrlEntry


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeWriter:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class CountingOpener:
    """Connect function that succeeds only for `online` (host, port) pairs."""

    def __init__(self, online: set[tuple[str, int]] | None = None) -> None:
        self.online = online or set()
        self.calls: list[tuple[str, int]] = []
        self.writers: list[FakeWriter] = []

    async def __call__(self, host: str, port: int):
        self.calls.append((host, port))
        if (host, port) not in self.online:
            raise ConnectionRefusedError(f"{host}:{port} refused")
        writer = FakeWriter()
        self.writers.append(writer)
        return object(), writer


def test_cache_hit_within_ttl_issues_single_attempt() -> None:
    clock = FakeClock()
    opener = CountingOpener({("localhost", 3000)})
    prober = ReachabilityProber(ReachabilityCache(5000, clock=clock), opener=opener)

    first = asyncio.run(prober.probe("localhost", 3000))
    clock.now = 4.9
    second = asyncio.run(prober.probe("localhost", 3000))

    assert first is True and second is True
    assert len(opener.calls) == 1
    assert opener.writers[0].closed is True


def test_expired_entry_triggers_new_attempt() -> None:
    clock = FakeClock()
    opener = CountingOpener({("localhost", 3000)})
    cache = ReachabilityCache(5000, clock=clock)
    prober = ReachabilityProber(cache, opener=opener)

    asyncio.run(prober.probe("localhost", 3000))
    clock.now = 5.001
    assert cache.get("localhost", 3000) is None
    assert len(cache) == 0

    asyncio.run(prober.probe("localhost", 3000))

    assert len(opener.calls) == 2


def test_cache_bypass_always_connects() -> None:
    opener = CountingOpener()
    prober = ReachabilityProber(ReachabilityCache(5000, clock=FakeClock()), opener=opener)

    asyncio.run(prober.probe("localhost", 4000))
    asyncio.run(prober.probe("localhost", 4000, use_cache=False))

    assert len(opener.calls) == 2


def test_refused_connection_is_cached_as_offline() -> None:
    opener = CountingOpener()
    cache = ReachabilityCache(5000, clock=FakeClock())
    prober = ReachabilityProber(cache, opener=opener)

    assert asyncio.run(prober.probe("localhost", 4001)) is False
    assert cache.get("localhost", 4001) is False
    assert cache.stats() == {"size": 1, "ttl": 5000}


def test_slow_connect_times_out_as_offline() -> None:
    async def hanging_opener(host: str, port: int):
        await asyncio.sleep(5)
        return object(), FakeWriter()

    prober = ReachabilityProber(ReachabilityCache(5000), timeout_ms=50, opener=hanging_opener)

    started = time.monotonic()
    online = asyncio.run(prober.probe("localhost", 4002))

    assert online is False
    assert time.monotonic() - started < 2


def test_missing_host_falls_back_to_default_host() -> None:
    opener = CountingOpener({("devbox", 3000)})
    prober = ReachabilityProber(ReachabilityCache(5000), default_host="devbox", opener=opener)

    assert asyncio.run(prober.probe(None, 3000)) is True
    assert opener.calls == [("devbox", 3000)]


def test_probe_all_keeps_candidate_metadata() -> None:
    opener = CountingOpener({("localhost", 3000)})
    prober = ReachabilityProber(ReachabilityCache(5000), opener=opener)
    candidates = [
        ProbeCandidate(host="localhost", port=3000, payload={"project": "a"}),
        ProbeCandidate(host="localhost", port=3001, payload={"project": "b"}),
    ]

    results = asyncio.run(prober.probe_all(candidates))

    by_project = {result.candidate.payload["project"]: result.online for result in results}
    assert by_project == {"a": True, "b": False}


def test_check_urls_probes_each_url_host_and_default_ports() -> None:
    opener = CountingOpener({("10.0.0.9", 3000), ("portal.example.com", 443)})
    prober = ReachabilityProber(ReachabilityCache(5000), opener=opener)
    urls = [
        UrlEntry(type="main", url="http://localhost:3000", network="localhost"),
        UrlEntry(type="main", url="http://10.0.0.9:3000", network="vpn"),
        UrlEntry(type="production", url="https://portal.example.com/app", network="external"),
        UrlEntry(type="other", url="not a url"),
    ]

    statuses = asyncio.run(prober.check_urls(urls))

    assert [status.online for status in statuses] == [False, True, True, False]
    assert [status.port for status in statuses] == [3000, 3000, 443, None]
    assert statuses[1].network == "vpn"
    assert ("not a url", None) not in opener.calls
    assert "source" not in statuses[0].to_dict()


@pytest.mark.asyncio
async def test_real_listener_reports_online() -> None:
    server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    prober = ReachabilityProber(ReachabilityCache(5000), timeout_ms=1000)

    try:
        assert await prober.probe("127.0.0.1", port) is True
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_closed_port_reports_offline_within_timeout() -> None:
    server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()
    prober = ReachabilityProber(ReachabilityCache(5000), timeout_ms=1000)

    started = time.monotonic()
    online = await prober.probe("127.0.0.1", port)

    assert online is False
    assert time.monotonic() - started < 1.5
