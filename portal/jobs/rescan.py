"""Re-analyze every stored project directory and refresh its detected URLs."""

from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from portal.config.database import SessionLocal, init_db
from portal.models.project import Project
from portal.services.discovery import ProjectAnalyzer
from portal.services.urls import dump_urls

logger = logging.getLogger(__name__)


def rescan_projects(db: Session, *, analyzer: ProjectAnalyzer | None = None) -> dict[str, Any]:
    """Refresh description, port, setup type and urls wherever analysis yields new values.

    `enabled` and `frontend_path` are never touched. One project's failure is
    counted and the run continues.
    """
    job_analyzer = analyzer or ProjectAnalyzer()
    updated = 0
    unchanged = 0
    errors = 0

    projects = db.query(Project).order_by(Project.id).all()
    logger.info(f"Found {len(projects)} projects to analyze")

    for project in projects:
        try:
            analysis = job_analyzer.analyze(project.directory_path, project.name)
            if not analysis.urls:
                unchanged += 1
                continue

            refreshed = {
                "description": analysis.description or project.description,
                "port": analysis.ports[0] if analysis.ports else project.port,
                "setup_type": analysis.setup_type or project.setup_type,
                "urls": dump_urls(analysis.urls),
            }
            if all(getattr(project, field) == value for field, value in refreshed.items()):
                unchanged += 1
                continue

            for field, value in refreshed.items():
                setattr(project, field, value)
            db.commit()
            updated += 1
            logger.info(f"Updated {project.name} with {len(analysis.urls)} URL(s)")
        except Exception as exc:
            db.rollback()
            errors += 1
            logger.error(f"Rescan failed for {project.name}: {exc}", exc_info=True)

    logger.info(f"Rescan complete: {updated} updated, {unchanged} unchanged, {errors} errors")
    return {"total": len(projects), "updated": updated, "unchanged": unchanged, "errors": errors}


def run_rescan(*, session_factory: Callable[[], Session] = SessionLocal) -> dict[str, Any]:
    db = session_factory()
    try:
        return rescan_projects(db)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_db()
    stats = run_rescan()
    print(stats)
