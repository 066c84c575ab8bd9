"""FastAPI application entry point"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.orm import Session

from portal.config.database import get_db, init_db
from portal.config.settings import settings
from portal.errors import (
    DisabledProjectError,
    DuplicateProjectPathError,
    ImportValidationError,
    ProjectNotFoundError,
    UpstreamUnavailableError,
)
from portal.services.discovery import ProjectScanner, export_to_json
from portal.services.discovery.contracts import ProjectInfo
from portal.services.proxy import ProjectProxy
from portal.services.reachability import ReachabilityProber
from portal.services.registry import ProjectRegistry
from portal.services.status import StatusAggregator
from portal.services.url_deriver import UrlDeriver
from portal.services.urls import load_urls

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Process-wide service instances; routes receive them through Depends
prober = ReachabilityProber()
deriver = UrlDeriver()
aggregator = StatusAggregator(prober, deriver)
scanner = ProjectScanner()
proxy = ProjectProxy()

# Last scan kept in memory for review before import (single-process deployment)
last_scan: Dict[str, Any] = {"path": None, "projects": []}
started_at = time.monotonic()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")
    yield
    await proxy.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Registry, reachability status and reverse proxy for locally hosted projects",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_prober() -> ReachabilityProber:
    return prober


def get_aggregator() -> StatusAggregator:
    return aggregator


def get_scanner() -> ProjectScanner:
    return scanner


def get_proxy() -> ProjectProxy:
    return proxy


def get_registry(db: Session = Depends(get_db)) -> ProjectRegistry:
    return ProjectRegistry(db)


class UrlEntryIn(BaseModel):
    type: str = "main"
    url: str
    label: Optional[str] = None
    port: Optional[int] = None


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    directory_path: str = Field(min_length=1)
    port: int = Field(gt=0, lt=65536)
    description: Optional[str] = None
    setup_type: Optional[str] = None
    urls: Optional[List[UrlEntryIn]] = None
    frontend_path: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    directory_path: Optional[str] = None
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    description: Optional[str] = None
    setup_type: Optional[str] = None
    enabled: Optional[bool] = None
    urls: Optional[List[UrlEntryIn]] = None
    frontend_path: Optional[str] = None


class ScanRequest(BaseModel):
    scan_path: str = Field(min_length=1)


class ScanImportRequest(BaseModel):
    selected: List[Union[int, str]] = Field(default_factory=list)


class JsonImportRequest(BaseModel):
    json_data: str


def _project_dict(project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description or "",
        "directory_path": project.directory_path,
        "port": project.port,
        "enabled": bool(project.enabled),
        "setup_type": project.setup_type,
        "urls": [entry.to_dict() for entry in load_urls(project.urls)],
        "frontend_path": project.frontend_path or "/",
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def _url_payload(urls: Optional[List[UrlEntryIn]]) -> Optional[List[Dict[str, Any]]]:
    if urls is None:
        return None
    return [entry.model_dump(exclude_none=True) for entry in urls]


def _get_or_404(registry: ProjectRegistry, project_id: int):
    try:
        return registry.get(project_id)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/api/health",
            "portal": "/api/portal",
            "projects": "/api/projects?enabled_only=false",
            "overview": "/api/projects/overview",
            "status": "/api/projects/{id}/status",
            "scan": "POST /api/scan",
            "scan_results": "/api/scan/results",
            "scan_import": "POST /api/scan/import",
            "import_json": "POST /api/import-json",
            "export_json": "/api/export-json",
            "proxy": "/project/{id}/{path}",
        }
    }


@app.get("/api/health")
async def health_check(
    registry: ProjectRegistry = Depends(get_registry),
    probe: ReachabilityProber = Depends(get_prober),
):
    """Health check endpoint for monitoring"""
    try:
        connected = registry.db.execute(text("SELECT 1")).scalar() == 1
        counts = registry.counts()
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "error": str(e),
            },
        )

    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": int(time.monotonic() - started_at),
        "database": {"connected": connected, "projects": counts},
        "cache": probe.cache.stats(),
        "version": settings.APP_VERSION,
    }


@app.get("/api/portal")
async def portal_listing(
    registry: ProjectRegistry = Depends(get_registry),
    status: StatusAggregator = Depends(get_aggregator),
):
    """Enabled projects reachable over LAN or VPN, with their presentation URL"""
    views = await status.portal_listing(registry.list_enabled())
    return {"projects": [view.to_dict() for view in views]}


@app.get("/api/projects")
async def list_projects(enabled_only: bool = False, registry: ProjectRegistry = Depends(get_registry)):
    """List stored projects"""
    projects = registry.list_enabled() if enabled_only else registry.list_all()
    return {"projects": [_project_dict(project) for project in projects]}


@app.get("/api/projects/overview")
async def projects_overview(
    registry: ProjectRegistry = Depends(get_registry),
    status: StatusAggregator = Depends(get_aggregator),
):
    """Enabled projects with per-URL reachability and the chosen primary URL"""
    views = await status.overview(registry.list_enabled())
    return {
        "show_offline_projects": status.show_offline_projects,
        "projects": [view.to_dict() for view in views],
    }


@app.post("/api/projects", status_code=201)
async def create_project(payload: ProjectCreate, registry: ProjectRegistry = Depends(get_registry)):
    """Register a project manually"""
    try:
        project = registry.create(
            name=payload.name,
            directory_path=payload.directory_path,
            port=payload.port,
            description=payload.description,
            setup_type=payload.setup_type,
            urls=_url_payload(payload.urls),
            frontend_path=payload.frontend_path,
        )
    except DuplicateProjectPathError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _project_dict(project)


@app.get("/api/projects/{project_id}")
async def get_project(project_id: int, registry: ProjectRegistry = Depends(get_registry)):
    return _project_dict(_get_or_404(registry, project_id))


@app.put("/api/projects/{project_id}")
async def update_project(project_id: int, payload: ProjectUpdate, registry: ProjectRegistry = Depends(get_registry)):
    changes = payload.model_dump(exclude_unset=True, exclude={"urls"})
    changes["urls"] = _url_payload(payload.urls)
    try:
        project = registry.update(project_id, changes)
    except ProjectNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicateProjectPathError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _project_dict(project)


@app.post("/api/projects/{project_id}/toggle")
async def toggle_project(project_id: int, registry: ProjectRegistry = Depends(get_registry)):
    _get_or_404(registry, project_id)
    project = registry.toggle(project_id)
    return {"id": project.id, "enabled": bool(project.enabled)}


@app.delete("/api/projects/{project_id}")
async def delete_project(project_id: int, registry: ProjectRegistry = Depends(get_registry)):
    _get_or_404(registry, project_id)
    registry.delete(project_id)
    return {"id": project_id, "deleted": True}


@app.get("/api/projects/{project_id}/status")
async def project_status(
    project_id: int,
    registry: ProjectRegistry = Depends(get_registry),
    probe: ReachabilityProber = Depends(get_prober),
):
    """Online flags for the project's persisted (unexpanded) URLs"""
    project = _get_or_404(registry, project_id)
    urls = load_urls(project.urls)
    if project.enabled:
        statuses = [status.to_dict() for status in await probe.check_urls(urls)]
    else:
        # Disabled projects are reported offline without probing
        statuses = [
            {"type": entry.type, "url": entry.url, "label": entry.label, "port": entry.port, "online": False,
             "network": entry.network}
            for entry in urls
        ]
    return {
        "id": project.id,
        "name": project.name,
        "enabled": bool(project.enabled),
        "has_online_url": any(status["online"] for status in statuses),
        "urls": statuses,
    }


@app.post("/api/scan")
async def scan_directory(payload: ScanRequest, project_scanner: ProjectScanner = Depends(get_scanner)):
    """Scan a directory and keep the result for review"""
    logger.info(f"Scan triggered for {payload.scan_path}")
    result = project_scanner.scan(payload.scan_path)
    if not result.success:
        raise HTTPException(status_code=400, detail=f"Scan failed: {result.error}")

    last_scan["path"] = payload.scan_path
    last_scan["projects"] = result.projects
    return {
        "scan_path": payload.scan_path,
        "count": len(result.projects),
        "projects": [
            {"index": index, **info.to_dict()} for index, info in enumerate(result.projects)
        ],
    }


@app.get("/api/scan/results")
async def scan_results():
    """Last scan result, as reviewable JSON"""
    projects: List[ProjectInfo] = last_scan["projects"]
    return {
        "scan_path": last_scan["path"],
        "projects": [{"index": index, **info.to_dict()} for index, info in enumerate(projects)],
    }


@app.post("/api/scan/import")
async def import_scanned(payload: ScanImportRequest, registry: ProjectRegistry = Depends(get_registry)):
    """Commit a selection of the last scan by index"""
    stats = registry.import_scanned(last_scan["projects"], payload.selected)
    last_scan["path"] = None
    last_scan["projects"] = []
    return stats


@app.post("/api/import-json")
async def import_json(payload: JsonImportRequest, registry: ProjectRegistry = Depends(get_registry)):
    """Upsert an exported project list; all or nothing"""
    try:
        return registry.import_json(payload.json_data)
    except ImportValidationError as e:
        raise HTTPException(status_code=400, detail=f"JSON import failed: {e}")


@app.get("/api/export-json")
async def export_json(registry: ProjectRegistry = Depends(get_registry)):
    """Download every stored project in the interchange format"""
    return Response(
        content=export_to_json(registry.export_rows()),
        media_type="application/json",
        headers={"Content-Disposition": "attachment; filename=projects-export.json"},
    )


# Catch-all proxy routes must stay last
@app.api_route(
    "/project/{project_id}/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
)
@app.api_route(
    "/project/{project_id}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
)
async def proxy_project(
    project_id: int,
    request: Request,
    registry: ProjectRegistry = Depends(get_registry),
    project_proxy: ProjectProxy = Depends(get_proxy),
):
    """Forward traffic under /project/{id} to the project's port"""
    try:
        project = registry.get(project_id)
        return await project_proxy.forward(project, request, request.path_params.get("path", ""))
    except (ProjectNotFoundError, DisabledProjectError):
        return PlainTextResponse("Project not found or disabled", status_code=404)
    except UpstreamUnavailableError as e:
        return PlainTextResponse(f"Error: {e}", status_code=502)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
