from __future__ import annotations

import json
from datetime import datetime

from portal.services.discovery import ProjectInfo, export_to_json, import_from_json
from portal.services.urls import UrlEntry


def _sample_projects() -> list[ProjectInfo]:
    return [
        ProjectInfo(
            name="dashboard",
            directory_path="/srv/apps/dashboard",
            description="Ops dashboard",
            setup_type="react",
            ports=[3000, 8080],
            urls=[
                UrlEntry(type="development", url="http://localhost:3000", label="Dev Server (port 3000)", port=3000),
                UrlEntry(type="docker", url="http://localhost:8080", label="Docker (port 8080)", port=8080),
            ],
        ),
        ProjectInfo(name="notes", directory_path="/srv/apps/notes"),
    ]


def test_export_then_import_yields_same_structure() -> None:
    projects = _sample_projects()

    exported = export_to_json(projects)
    result = import_from_json(exported)

    assert result.success is True
    assert result.error is None
    assert result.projects == [project.to_dict() for project in projects]


def test_export_is_pretty_printed_and_serializes_timestamps() -> None:
    exported = export_to_json([{"name": "a", "directory_path": "/a", "created_at": datetime(2024, 5, 1, 12, 0)}])

    assert exported.startswith("[\n  {")
    assert json.loads(exported)[0]["created_at"] == "2024-05-01T12:00:00"


def test_import_rejects_invalid_json() -> None:
    result = import_from_json("[{oops")

    assert result.success is False
    assert result.error.startswith("Invalid JSON")
    assert result.projects == []


def test_import_rejects_deeply_nested_document() -> None:
    result = import_from_json("[" * 200000 + "]" * 200000)

    assert result.success is False
    assert result.error.startswith("Invalid JSON")


def test_import_requires_array() -> None:
    result = import_from_json(json.dumps({"name": "a", "directory_path": "/a"}))

    assert result.success is False
    assert result.error == "JSON must be an array of projects"


def test_import_reports_first_incomplete_project() -> None:
    payload = [
        {"name": "ok", "directory_path": "/ok"},
        {"name": "missing-path"},
    ]

    result = import_from_json(json.dumps(payload))

    assert result.success is False
    assert result.error == "Project at index 1 must have at least a name and directory_path"


def test_import_accepts_extra_fields() -> None:
    payload = [{"name": "x", "directory_path": "/x", "port": 4000, "enabled": False, "anything": [1, 2]}]

    result = import_from_json(json.dumps(payload))

    assert result.success is True
    assert result.projects == payload
