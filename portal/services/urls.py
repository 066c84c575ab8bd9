"""URL entry representation shared by scanner, deriver, prober and registry."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Iterable
from urllib.parse import urlsplit

from portal.models.project import UrlType

logger = logging.getLogger(__name__)

URL_TYPE_ORDER: dict[str, int] = {url_type.value: index for index, url_type in enumerate(UrlType, start=1)}
UNKNOWN_TYPE_ORDER = 99

_PORT_FALLBACK = re.compile(r":(\d+)")


@dataclass(slots=True)
class UrlEntry:
    """One registered endpoint of a project."""

    type: str
    url: str
    label: str = ""
    port: int | None = None
    source: str | None = None
    network: str | None = None

    def __post_init__(self) -> None:
        if not self.label:
            self.label = self.type

    def with_port(self) -> "UrlEntry":
        """Return a copy with `port` backfilled from the URL when missing."""
        if self.port is not None:
            return self
        return replace(self, port=explicit_port(self.url))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "url": self.url, "label": self.label}
        if self.port is not None:
            payload["port"] = self.port
        if self.source:
            payload["source"] = self.source
        if self.network:
            payload["network"] = self.network
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UrlEntry":
        url_type = str(payload.get("type") or UrlType.OTHER.value)
        url = str(payload.get("url") or "")
        port = _coerce_port(payload.get("port"))
        if port is None:
            port = explicit_port(url)
        return cls(
            type=url_type,
            url=url,
            label=str(payload.get("label") or url_type),
            port=port,
            source=payload.get("source") or None,
            network=payload.get("network") or None,
        )


def _coerce_port(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def explicit_port(url: str) -> int | None:
    """Port written in the URL itself, or None."""
    try:
        parts = urlsplit(url)
        if parts.netloc:
            return parts.port
    except ValueError:
        pass
    match = _PORT_FALLBACK.search(url)
    return int(match.group(1)) if match else None


def effective_port(url: str) -> int | None:
    """Port a TCP probe should use: explicit port, else the scheme default."""
    port = explicit_port(url)
    if port is not None:
        return port
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return None
    if scheme == "https":
        return 443
    if scheme == "http":
        return 80
    return None


def url_type_rank(url_type: str) -> int:
    return URL_TYPE_ORDER.get(url_type, UNKNOWN_TYPE_ORDER)


def sort_entries(entries: Iterable[UrlEntry]) -> list[UrlEntry]:
    """Category priority first, then ascending port."""
    return sorted(entries, key=lambda entry: (url_type_rank(entry.type), entry.port or 0))


def load_urls(raw: str | None) -> list[UrlEntry]:
    """Parse the persisted `urls` text blob; malformed blobs yield an empty list."""
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        logger.warning(f"Ignoring malformed urls blob: {exc}")
        return []
    if not isinstance(payload, list):
        logger.warning("Ignoring urls blob that is not a list")
        return []
    return [UrlEntry.from_dict(item) for item in payload if isinstance(item, dict)]


def dump_urls(entries: Iterable[UrlEntry | dict[str, Any]]) -> str:
    return json.dumps([entry.to_dict() if isinstance(entry, UrlEntry) else entry for entry in entries])


def localhost_entry(
    port: int,
    *,
    url_type: str = UrlType.MAIN.value,
    label: str | None = None,
    source: str | None = None,
) -> UrlEntry:
    return UrlEntry(
        type=url_type,
        url=f"http://localhost:{port}",
        label=label or f"Main (port {port})",
        port=port,
        source=source,
    )
