"""Result shapes produced at the discovery boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from portal.models.project import SetupType
from portal.services.urls import UrlEntry


@dataclass(slots=True)
class ProjectInfo:
    """Structured guess of a project's framework, ports and URLs."""

    name: str
    directory_path: str
    description: str = ""
    setup_type: str = SetupType.UNKNOWN.value
    ports: list[int] = field(default_factory=list)
    urls: list[UrlEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "directory_path": self.directory_path,
            "setup_type": self.setup_type,
            "ports": list(self.ports),
            "urls": [entry.to_dict() for entry in self.urls],
        }


@dataclass(slots=True)
class ScanResult:
    success: bool
    projects: list[ProjectInfo] = field(default_factory=list)
    error: str | None = None


@dataclass(slots=True)
class ImportResult:
    """Outcome of validating a JSON interchange document; projects stay raw dicts."""

    success: bool
    projects: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
