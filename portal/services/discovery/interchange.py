"""JSON interchange format for project lists (export/import)."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Sequence

from portal.services.discovery.contracts import ImportResult

REQUIRED_FIELDS = ("name", "directory_path")


def export_to_json(projects: Sequence[Any]) -> str:
    """Serialize projects (dataclasses, dicts) structurally, pretty-printed."""
    return json.dumps([_to_jsonable(project) for project in projects], indent=2, default=_json_default)


def import_from_json(text: str) -> ImportResult:
    """Validate an interchange document; every element needs a name and directory_path."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError, RecursionError) as exc:
        return ImportResult(success=False, error=f"Invalid JSON: {exc}")

    if not isinstance(payload, list):
        return ImportResult(success=False, error="JSON must be an array of projects")

    for index, project in enumerate(payload):
        if not isinstance(project, dict) or any(not project.get(name) for name in REQUIRED_FIELDS):
            return ImportResult(
                success=False,
                error=f"Project at index {index} must have at least a name and directory_path",
            )

    return ImportResult(success=True, projects=payload)


def _to_jsonable(project: Any) -> Any:
    to_dict = getattr(project, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if is_dataclass(project) and not isinstance(project, type):
        return asdict(project)
    return project


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
