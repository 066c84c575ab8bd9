"""Cached TCP reachability probing for project endpoints."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar
from urllib.parse import urlsplit

from portal.config.settings import settings
from portal.services.urls import UrlEntry, effective_port

logger = logging.getLogger(__name__)

T = TypeVar("T")

Opener = Callable[[str, int], Awaitable[tuple[Any, Any]]]


@dataclass(slots=True)
class CacheEntry:
    online: bool
    observed_at: float


class ReachabilityCache:
    """Time-bounded `host:port -> online` map; expired entries are purged on read.

    Concurrent writers to the same key are last-write-wins.
    """

    def __init__(self, ttl_ms: int | None = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_ms = ttl_ms if ttl_ms is not None else settings.PORT_STATUS_CACHE_TTL_MS
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def key(host: str, port: int) -> str:
        return f"{host}:{port}"

    def get(self, host: str, port: int) -> bool | None:
        cache_key = self.key(host, port)
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        if (self._clock() - entry.observed_at) * 1000 > self.ttl_ms:
            del self._entries[cache_key]
            return None
        return entry.online

    def set(self, host: str, port: int, online: bool) -> None:
        self._entries[self.key(host, port)] = CacheEntry(online=online, observed_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "ttl": self.ttl_ms}

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class ProbeCandidate(Generic[T]):
    """One `(host, port)` to probe plus caller metadata carried to the result."""

    host: str
    port: int
    payload: T | None = None


@dataclass
class ProbeResult(Generic[T]):
    candidate: ProbeCandidate[T]
    online: bool


@dataclass(slots=True)
class UrlStatus:
    """A URL entry together with its observed reachability."""

    type: str
    url: str
    label: str
    port: int | None
    online: bool
    network: str | None = None
    source: str | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "url": self.url,
            "label": self.label,
            "port": self.port,
            "online": self.online,
            "network": self.network,
        }


class ReachabilityProber:
    """TCP connect-with-timeout probe backed by a `ReachabilityCache`.

    Construct once per process and inject wherever probing happens.
    """

    def __init__(
        self,
        cache: ReachabilityCache | None = None,
        *,
        timeout_ms: int | None = None,
        default_host: str | None = None,
        opener: Opener | None = None,
    ) -> None:
        self.cache = cache if cache is not None else ReachabilityCache()
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.PORT_CHECK_TIMEOUT_MS
        self.default_host = default_host or settings.DEFAULT_HOST
        self._opener = opener or asyncio.open_connection

    async def probe(
        self,
        host: str | None,
        port: int,
        timeout_ms: int | None = None,
        use_cache: bool = True,
    ) -> bool:
        """Return True when a TCP connection to host:port succeeds; never raises."""
        target = host or self.default_host
        if use_cache:
            cached = self.cache.get(target, port)
            if cached is not None:
                return cached

        online = await self._connect(target, port, timeout_ms if timeout_ms is not None else self.timeout_ms)
        self.cache.set(target, port, online)
        return online

    async def probe_all(self, candidates: Sequence[ProbeCandidate[T]], *, use_cache: bool = True) -> list[ProbeResult[T]]:
        """Probe all candidates concurrently; each result keeps its candidate."""
        outcomes = await asyncio.gather(
            *(self.probe(candidate.host, candidate.port, use_cache=use_cache) for candidate in candidates)
        )
        return [ProbeResult(candidate=candidate, online=online) for candidate, online in zip(candidates, outcomes)]

    async def check_urls(self, urls: Sequence[UrlEntry], *, use_cache: bool = True) -> list[UrlStatus]:
        """Probe each URL on its own hostname and port; URLs without a port stay offline."""
        candidates: list[ProbeCandidate[UrlEntry]] = []
        for entry in urls:
            port = effective_port(entry.url)
            host = _hostname(entry.url)
            if port is None or host is None:
                continue
            candidates.append(ProbeCandidate(host=host, port=port, payload=entry))

        results = await self.probe_all(candidates, use_cache=use_cache)
        online_by_id = {id(result.candidate.payload): result.online for result in results}
        port_by_id = {id(result.candidate.payload): result.candidate.port for result in results}

        statuses: list[UrlStatus] = []
        for entry in urls:
            statuses.append(
                UrlStatus(
                    type=entry.type or "other",
                    url=entry.url,
                    label=entry.label or entry.type or "URL",
                    port=port_by_id.get(id(entry)),
                    online=online_by_id.get(id(entry), False),
                    network=entry.network,
                    source=entry.source,
                )
            )
        return statuses

    async def _connect(self, host: str, port: int, timeout_ms: int) -> bool:
        writer = None
        try:
            _, writer = await asyncio.wait_for(self._opener(host, port), timeout=timeout_ms / 1000)
            return True
        except asyncio.TimeoutError:
            logger.debug(f"Probe timed out for {host}:{port}")
            return False
        except (OSError, ValueError) as exc:
            logger.debug(f"Probe failed for {host}:{port}: {exc}")
            return False
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except (OSError, ConnectionError):
                    pass


def _hostname(url: str) -> str | None:
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None
