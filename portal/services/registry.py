"""Project store boundary: CRUD, toggles and bulk imports."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portal.config.settings import settings
from portal.errors import DuplicateProjectPathError, ImportValidationError, ProjectNotFoundError
from portal.models.project import Project, SetupType
from portal.services.discovery.contracts import ProjectInfo
from portal.services.discovery.interchange import import_from_json
from portal.services.urls import UrlEntry, dump_urls, load_urls, localhost_entry

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "directory_path", "port", "enabled", "setup_type", "frontend_path")


class ProjectRegistry:
    """Reads and writes `Project` rows through one session."""

    def __init__(self, db: Session, *, default_port: int | None = None) -> None:
        self.db = db
        self.default_port = default_port or settings.DEFAULT_PROJECT_PORT

    # ── Reads ───────────────────────────────────────────────────────────

    def list_all(self) -> list[Project]:
        return self.db.query(Project).order_by(Project.name).all()

    def list_enabled(self) -> list[Project]:
        return self.db.query(Project).filter(Project.enabled.is_(True)).order_by(Project.name).all()

    def get(self, project_id: int) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def get_by_path(self, directory_path: str) -> Project | None:
        return self.db.query(Project).filter_by(directory_path=directory_path).first()

    def counts(self) -> dict[str, int]:
        total = self.db.query(Project).count()
        enabled = self.db.query(Project).filter(Project.enabled.is_(True)).count()
        return {"total": total, "enabled": enabled}

    # ── Mutations ───────────────────────────────────────────────────────

    def create(
        self,
        *,
        name: str,
        directory_path: str,
        port: int,
        description: str | None = None,
        setup_type: str | None = None,
        urls: Sequence[UrlEntry | dict[str, Any]] | None = None,
        enabled: bool = True,
        frontend_path: str | None = None,
    ) -> Project:
        """Register a project manually; urls default to one main entry on the port."""
        if self.get_by_path(directory_path) is not None:
            raise DuplicateProjectPathError(directory_path)

        project = Project(
            name=name,
            description=description or "",
            directory_path=directory_path,
            port=port,
            enabled=enabled,
            setup_type=setup_type or SetupType.MANUAL.value,
            urls=dump_urls(_entries(urls) if urls is not None else [localhost_entry(port)]),
            frontend_path=frontend_path or "/",
        )
        self.db.add(project)
        self._commit(directory_path)
        self.db.refresh(project)
        logger.info(f"Created project {project.id} ({project.name}) on port {project.port}")
        return project

    def update(self, project_id: int, changes: dict[str, Any]) -> Project:
        project = self.get(project_id)

        new_path = changes.get("directory_path")
        if new_path and new_path != project.directory_path:
            other = self.get_by_path(new_path)
            if other is not None and other.id != project.id:
                raise DuplicateProjectPathError(new_path)

        for field_name in EDITABLE_FIELDS:
            if field_name in changes and changes[field_name] is not None:
                setattr(project, field_name, changes[field_name])
        if changes.get("urls") is not None:
            project.urls = dump_urls(_entries(changes["urls"]))
        if not project.frontend_path:
            project.frontend_path = "/"

        self._commit(project.directory_path)
        self.db.refresh(project)
        logger.info(f"Updated project {project.id} ({project.name})")
        return project

    def toggle(self, project_id: int) -> Project:
        project = self.get(project_id)
        project.enabled = not project.enabled
        self.db.commit()
        self.db.refresh(project)
        state = "enabled" if project.enabled else "disabled"
        logger.info(f"Project {project.id} is now {state}")
        return project

    def delete(self, project_id: int) -> None:
        project = self.get(project_id)
        self.db.delete(project)
        self.db.commit()
        logger.info(f"Deleted project {project_id}")

    # ── Bulk imports ────────────────────────────────────────────────────

    def import_scanned(self, projects: Sequence[ProjectInfo], indices: Iterable[Any]) -> dict[str, int]:
        """Commit a reviewed selection of scan output.

        Existing records keep their `enabled` flag and `frontend_path`; unknown
        indices are counted as skipped.
        """
        imported = 0
        updated = 0
        skipped = 0

        for raw_index in indices:
            info = _pick(projects, raw_index)
            if info is None:
                skipped += 1
                continue

            port = info.ports[0] if info.ports else self.default_port
            existing = self.get_by_path(info.directory_path)
            if existing is None:
                self.db.add(
                    Project(
                        name=info.name,
                        description=info.description or "",
                        directory_path=info.directory_path,
                        port=port,
                        enabled=True,
                        setup_type=info.setup_type or SetupType.UNKNOWN.value,
                        urls=dump_urls(info.urls),
                        frontend_path="/",
                    )
                )
                # Flush so a repeated index in the same selection finds the new row
                self.db.flush()
                imported += 1
            else:
                existing.name = info.name
                existing.description = info.description or existing.description or ""
                existing.port = port
                existing.setup_type = info.setup_type or existing.setup_type or SetupType.UNKNOWN.value
                existing.urls = dump_urls(info.urls)
                updated += 1

        self.db.commit()
        logger.info(f"Import complete: {imported} new, {updated} updated, {skipped} skipped")
        return {"imported": imported, "updated": updated, "skipped": skipped}

    def import_json(self, text: str) -> dict[str, int]:
        """Validate and upsert an interchange document in one transaction."""
        result = import_from_json(text)
        if not result.success:
            raise ImportValidationError(result.error)
        return self.import_records(result.projects)

    def import_records(self, records: Sequence[dict[str, Any]]) -> dict[str, int]:
        """Upsert records by `directory_path`; any failure rolls back every record."""
        imported = 0
        updated = 0

        try:
            for index, record in enumerate(records):
                values = self._record_values(index, record)
                existing = self.get_by_path(values["directory_path"])
                if existing is None:
                    self.db.add(
                        Project(
                            **values,
                            enabled=_record_flag(record.get("enabled"), True),
                            frontend_path=record.get("frontend_path") or "/",
                        )
                    )
                    self.db.flush()
                    imported += 1
                else:
                    existing.name = values["name"]
                    existing.description = values["description"] or existing.description or ""
                    existing.port = values["port"]
                    existing.setup_type = record.get("setup_type") or existing.setup_type or SetupType.UNKNOWN.value
                    existing.urls = values["urls"]
                    if record.get("enabled") is not None:
                        existing.enabled = _record_flag(record["enabled"], existing.enabled)
                    existing.frontend_path = record.get("frontend_path") or existing.frontend_path or "/"
                    updated += 1
            self.db.commit()
        except ImportValidationError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ImportValidationError(f"Import rejected by the store: {exc}") from exc

        logger.info(f"JSON import complete: {imported} new, {updated} updated")
        return {"imported": imported, "updated": updated}

    def export_rows(self) -> list[dict[str, Any]]:
        """Every stored record with its `urls` blob parsed back into entries."""
        rows = []
        for project in self.list_all():
            rows.append(
                {
                    "id": project.id,
                    "name": project.name,
                    "description": project.description or "",
                    "directory_path": project.directory_path,
                    "port": project.port,
                    "enabled": bool(project.enabled),
                    "setup_type": project.setup_type,
                    "urls": [entry.to_dict() for entry in load_urls(project.urls)],
                    "frontend_path": project.frontend_path or "/",
                    "created_at": project.created_at,
                    "updated_at": project.updated_at,
                }
            )
        return rows

    # ── Helpers ─────────────────────────────────────────────────────────

    def _record_values(self, index: int, record: dict[str, Any]) -> dict[str, Any]:
        ports = record.get("ports")
        if isinstance(ports, list) and ports:
            port = ports[0]
        else:
            port = record.get("port")
            if port is None:
                port = self.default_port
        try:
            port = int(port)
        except (TypeError, ValueError) as exc:
            raise ImportValidationError(f"Project at index {index} has an invalid port: {port!r}") from exc
        if not 0 < port < 65536:
            raise ImportValidationError(f"Project at index {index} has an out-of-range port: {port}")

        urls = record.get("urls") or []
        if not isinstance(urls, list):
            raise ImportValidationError(f"Project at index {index} must carry urls as an array")

        return {
            "name": str(record["name"]),
            "description": str(record.get("description") or ""),
            "directory_path": str(record["directory_path"]),
            "port": port,
            "setup_type": record.get("setup_type") or SetupType.UNKNOWN.value,
            "urls": dump_urls(UrlEntry.from_dict(item) for item in urls if isinstance(item, dict)),
        }

    def _commit(self, directory_path: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateProjectPathError(directory_path) from exc


def _pick(projects: Sequence[ProjectInfo], raw_index: Any) -> ProjectInfo | None:
    try:
        index = int(raw_index)
    except (TypeError, ValueError):
        return None
    if 0 <= index < len(projects):
        return projects[index]
    return None


def _record_flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _entries(urls: Iterable[UrlEntry | dict[str, Any]]) -> list[UrlEntry]:
    return [entry if isinstance(entry, UrlEntry) else UrlEntry.from_dict(entry) for entry in urls]
