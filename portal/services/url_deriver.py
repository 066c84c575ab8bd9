"""Expand loopback project URLs into localhost/LAN/VPN network variants."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable

from portal.config.settings import settings
from portal.models.project import Network
from portal.services.urls import UrlEntry

_LOOPBACK_URL = re.compile(r"^(?P<scheme>https?)://(?:localhost|127\.0\.0\.1):(?P<port>\d+)(?P<rest>[/?#].*)?$", re.IGNORECASE)


@dataclass(slots=True)
class NetworkConfig:
    """Addresses and feature flags that drive URL expansion."""

    lan_ip: str = field(default_factory=lambda: settings.SERVER_LAN_IP)
    vpn_ip: str = field(default_factory=lambda: settings.SERVER_VPN_IP)
    show_localhost: bool = field(default_factory=lambda: settings.SHOW_LOCALHOST_URLS)
    show_lan: bool = field(default_factory=lambda: settings.SHOW_LAN_URLS)
    show_vpn: bool = field(default_factory=lambda: settings.SHOW_VPN_URLS)


class UrlDeriver:
    """Derives network-scoped candidate endpoints from persisted URL entries.

    Call `expand` once on raw persisted urls; re-expanding loopback output
    re-derives the same variants.
    """

    def __init__(self, config: NetworkConfig | None = None) -> None:
        self.config = config or NetworkConfig()

    def expand(self, urls: Iterable[UrlEntry]) -> list[UrlEntry]:
        expanded: list[UrlEntry] = []
        for entry in urls:
            if entry.network == Network.EXTERNAL.value:
                expanded.append(entry)
                continue

            match = _LOOPBACK_URL.match(entry.url or "")
            if match is None:
                expanded.append(replace(entry, network=Network.EXTERNAL.value))
                continue

            port = int(match.group("port"))
            rest = match.group("rest") or ""
            base_label = entry.label or entry.type or "Port"
            for network, host, suffix in self._variants():
                expanded.append(
                    replace(
                        entry,
                        url=f"http://{host}:{port}{rest}",
                        label=f"{base_label} ({suffix})",
                        network=network,
                        port=port,
                    )
                )
        return expanded

    def _variants(self) -> list[tuple[str, str, str]]:
        variants: list[tuple[str, str, str]] = []
        if self.config.show_localhost:
            variants.append((Network.LOCALHOST.value, "localhost", "localhost"))
        if self.config.show_lan and self.config.lan_ip:
            variants.append((Network.LAN.value, self.config.lan_ip, "LAN"))
        if self.config.show_vpn and self.config.vpn_ip:
            variants.append((Network.VPN.value, self.config.vpn_ip, "VPN"))
        return variants
