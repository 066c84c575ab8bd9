"""Reverse proxy dispatcher that forwards `/project/{id}/...` traffic to a project's port."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import StreamingResponse

from portal.config.settings import settings
from portal.errors import DisabledProjectError, UpstreamUnavailableError
from portal.models.project import Project

logger = logging.getLogger(__name__)

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


class ProjectProxy:
    """Forwards one inbound request to one upstream connection, streaming the reply."""

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self._host = host or settings.DEFAULT_HOST
        self._timeout_seconds = timeout_seconds or settings.PROXY_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ProjectProxy":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def target_url(self, project: Project, path: str, query: str = "") -> httpx.URL:
        """Upstream URL with the `/project/{id}` prefix already removed from `path`."""
        url = f"http://{self._host}:{project.port}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        return httpx.URL(url)

    async def forward(self, project: Project, request: Request, path: str) -> StreamingResponse:
        if not project.enabled:
            raise DisabledProjectError(project.id)

        client = await self._ensure_client()
        upstream_request = client.build_request(
            request.method,
            self.target_url(project, path, request.url.query),
            headers=self._upstream_headers(request, project),
            content=request.stream() if _has_body(request) else None,
        )

        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.TransportError as exc:
            logger.warning(f"Proxy to {project.name} on port {project.port} failed: {exc}")
            raise UpstreamUnavailableError(project.name, project.port) from exc

        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = [
            (name, value)
            for name, value in upstream.headers.raw
            if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
        ]
        return response

    def _upstream_headers(self, request: Request, project: Project) -> list[tuple[str, str]]:
        headers = [
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "host"
        ]
        # Present the upstream's own origin rather than the portal's
        headers.append(("host", f"{self._host}:{project.port}"))
        return headers

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds),
                transport=self._transport,
                follow_redirects=False,
            )
        return self._client


def _has_body(request: Request) -> bool:
    return "content-length" in request.headers or "transfer-encoding" in request.headers
