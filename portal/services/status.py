"""Per-project reachability views and primary URL selection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from portal.config.settings import settings
from portal.models.project import Project
from portal.services.reachability import ReachabilityProber, UrlStatus
from portal.services.url_deriver import UrlDeriver
from portal.services.urls import load_urls

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProjectStatusView:
    """Read-time presentation of a project; never written back to the store."""

    id: int
    name: str
    description: str
    port: int
    enabled: bool
    setup_type: str | None
    frontend_path: str
    urls_with_status: list[UrlStatus] = field(default_factory=list)
    primary_url: str | None = None
    primary_network: str | None = None

    @property
    def has_online_url(self) -> bool:
        return any(status.online for status in self.urls_with_status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "port": self.port,
            "enabled": self.enabled,
            "setup_type": self.setup_type,
            "frontend_path": self.frontend_path,
            "has_online_url": self.has_online_url,
            "primary_url": self.primary_url,
            "primary_network": self.primary_network,
            "urls": [status.to_dict() for status in self.urls_with_status],
        }


def presentation_url(base_url: str, frontend_path: str | None) -> str:
    """Join the chosen base URL with the project's frontend sub-path."""
    base = base_url[:-1] if base_url.endswith("/") else base_url
    path = (frontend_path or "/").strip() or "/"
    if path == "/":
        return base
    if not path.startswith("/"):
        path = f"/{path}"
    return base + path


def select_primary(statuses: Sequence[UrlStatus], preference: Sequence[str]) -> UrlStatus | None:
    """First online status in the most preferred network; list order breaks ties."""
    for network in preference:
        for status in statuses:
            if status.online and status.network == network:
                return status
    return None


class StatusAggregator:
    """Expands, probes and summarizes persisted project URLs."""

    def __init__(
        self,
        prober: ReachabilityProber,
        deriver: UrlDeriver | None = None,
        *,
        preference: Sequence[str] | None = None,
        show_offline_projects: bool | None = None,
    ) -> None:
        self.prober = prober
        self.deriver = deriver or UrlDeriver()
        self.preference = tuple(preference) if preference is not None else settings.primary_network_preference
        if show_offline_projects is None:
            show_offline_projects = settings.SHOW_OFFLINE_PROJECTS
        self.show_offline_projects = show_offline_projects

    async def resolve(self, project: Project, *, preference: Sequence[str] | None = None) -> ProjectStatusView:
        view = ProjectStatusView(
            id=project.id,
            name=project.name,
            description=project.description or "",
            port=project.port,
            enabled=bool(project.enabled),
            setup_type=project.setup_type,
            frontend_path=project.frontend_path or "/",
        )
        if not project.enabled:
            return view

        expanded = self.deriver.expand(load_urls(project.urls))
        view.urls_with_status = await self.prober.check_urls(expanded)

        primary = select_primary(view.urls_with_status, preference or self.preference)
        if primary is not None:
            view.primary_url = presentation_url(primary.url, view.frontend_path)
            view.primary_network = primary.network
        return view

    async def resolve_many(
        self,
        projects: Sequence[Project],
        *,
        preference: Sequence[str] | None = None,
    ) -> list[ProjectStatusView]:
        return list(await asyncio.gather(*(self.resolve(project, preference=preference) for project in projects)))

    async def overview(self, projects: Sequence[Project]) -> list[ProjectStatusView]:
        """All given projects with status; offline ones dropped unless configured to show."""
        views = await self.resolve_many(projects)
        if not self.show_offline_projects:
            views = [view for view in views if view.has_online_url]
        return views

    async def portal_listing(self, projects: Sequence[Project], *, networks: Sequence[str] = ("lan", "vpn")) -> list[ProjectStatusView]:
        """Projects reachable on one of `networks`, each with its presentation URL."""
        views = await self.resolve_many(projects, preference=networks)
        listed = [view for view in views if view.primary_url is not None]
        logger.debug(f"Portal listing: {len(listed)} of {len(views)} projects online")
        return listed
