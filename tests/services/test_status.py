from __future__ import annotations

import asyncio

from portal.models.project import Project
from portal.services.reachability import ReachabilityCache, ReachabilityProber
from portal.services.status import StatusAggregator, presentation_url, select_primary
from portal.services.url_deriver import NetworkConfig, UrlDeriver
from portal.services.urls import UrlEntry, dump_urls


class HostOpener:
    """Connect function reporting hosts in `online` as listening on any port."""

    def __init__(self, online: set[str]) -> None:
        self.online = online
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, host: str, port: int):
        self.calls.append((host, port))
        if host not in self.online:
            raise OSError("unreachable")
        return None, None


def _aggregator(opener: HostOpener, **kwargs) -> StatusAggregator:
    prober = ReachabilityProber(ReachabilityCache(5000), opener=opener)
    deriver = UrlDeriver(
        NetworkConfig(lan_ip="192.168.1.20", vpn_ip="10.8.0.1", show_localhost=True, show_lan=True, show_vpn=True)
    )
    kwargs.setdefault("preference", ("lan", "vpn", "localhost", "external"))
    kwargs.setdefault("show_offline_projects", True)
    return StatusAggregator(prober, deriver, **kwargs)


def _project(project_id: int = 1, *, enabled: bool = True, frontend_path: str = "/", urls=None) -> Project:
    entries = urls if urls is not None else [UrlEntry(type="main", url="http://localhost:3000", label="Main")]
    return Project(
        id=project_id,
        name=f"project-{project_id}",
        description="",
        directory_path=f"/srv/project-{project_id}",
        port=3000,
        enabled=enabled,
        setup_type="manual",
        urls=dump_urls(entries),
        frontend_path=frontend_path,
    )


def test_lan_preferred_over_vpn_and_localhost() -> None:
    opener = HostOpener({"localhost", "192.168.1.20", "10.8.0.1"})

    view = asyncio.run(_aggregator(opener).resolve(_project(frontend_path="/app")))

    assert view.has_online_url is True
    assert view.primary_network == "lan"
    assert view.primary_url == "http://192.168.1.20:3000/app"
    assert len(view.urls_with_status) == 3


def test_falls_back_to_next_online_network() -> None:
    opener = HostOpener({"localhost", "10.8.0.1"})

    view = asyncio.run(_aggregator(opener).resolve(_project()))

    assert view.primary_url == "http://10.8.0.1:3000"
    assert view.primary_network == "vpn"


def test_no_online_url_means_offline_not_error() -> None:
    view = asyncio.run(_aggregator(HostOpener(set())).resolve(_project()))

    assert view.has_online_url is False
    assert view.primary_url is None
    assert all(status.online is False for status in view.urls_with_status)


def test_disabled_project_is_never_probed() -> None:
    opener = HostOpener({"localhost", "192.168.1.20"})

    view = asyncio.run(_aggregator(opener).resolve(_project(enabled=False)))

    assert opener.calls == []
    assert view.primary_url is None
    assert view.to_dict()["urls"] == []


def test_overview_hides_offline_projects_when_configured() -> None:
    opener = HostOpener({"localhost"})
    online = _project(1)
    offline = _project(2, urls=[UrlEntry(type="production", url="https://down.example.com")])

    shown = asyncio.run(_aggregator(opener, show_offline_projects=True).overview([online, offline]))
    hidden = asyncio.run(_aggregator(opener, show_offline_projects=False).overview([online, offline]))

    assert [view.id for view in shown] == [1, 2]
    assert [view.id for view in hidden] == [1]


def test_portal_listing_only_counts_lan_and_vpn() -> None:
    opener = HostOpener({"localhost"})

    listed = asyncio.run(_aggregator(opener).portal_listing([_project()]))

    assert listed == []


def test_presentation_url_trims_one_trailing_slash() -> None:
    assert presentation_url("http://h:3000/", "/") == "http://h:3000"
    assert presentation_url("http://h:3000/", "/dashboard") == "http://h:3000/dashboard"
    assert presentation_url("http://h:3000", "dashboard/") == "http://h:3000/dashboard/"
    assert presentation_url("http://h:3000//", "/x") == "http://h:3000//x"
    assert presentation_url("http://h:3000", None) == "http://h:3000"


def test_select_primary_breaks_ties_by_list_order() -> None:
    opener = HostOpener({"192.168.1.20"})
    aggregator = _aggregator(opener)
    statuses = asyncio.run(
        aggregator.prober.check_urls(
            aggregator.deriver.expand(
                [
                    UrlEntry(type="production", url="http://localhost:4000"),
                    UrlEntry(type="development", url="http://localhost:5000"),
                ]
            )
        )
    )

    primary = select_primary(statuses, ("lan",))

    assert primary is not None
    assert primary.url == "http://192.168.1.20:4000"
