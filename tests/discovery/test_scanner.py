from __future__ import annotations

import json
from pathlib import Path

from portal.services.discovery import ProjectAnalyzer, ProjectScanner
from portal.services.discovery.contracts import ProjectInfo


class ExplodingAnalyzer(ProjectAnalyzer):
    def __init__(self, failing: str) -> None:
        super().__init__(process_manager_overrides_framework=True)
        self.failing = failing

    def analyze(self, path, name):
        if name == self.failing:
            raise RuntimeError("analysis crashed")
        return super().analyze(path, name)


def _make_projects(root: Path) -> None:
    (root / "beta").mkdir()
    (root / "beta" / "requirements.txt").write_text("fastapi\nuvicorn\n", encoding="utf-8")
    (root / "alpha").mkdir()
    (root / "alpha" / "package.json").write_text(json.dumps({"dependencies": {"vue": "3"}}), encoding="utf-8")
    (root / ".cache").mkdir()
    (root / "notes.txt").write_text("not a project", encoding="utf-8")


def test_scan_lists_visible_subdirectories_in_name_order(tmp_path: Path) -> None:
    _make_projects(tmp_path)

    result = ProjectScanner().scan(tmp_path)

    assert result.success is True
    assert result.error is None
    assert [project.name for project in result.projects] == ["alpha", "beta"]
    assert result.projects[0].setup_type == "vue"
    assert result.projects[1].setup_type == "python-fastapi"
    assert result.projects[1].directory_path == str(tmp_path / "beta")


def test_scan_missing_directory_returns_failure(tmp_path: Path) -> None:
    result = ProjectScanner().scan(tmp_path / "nope")

    assert result.success is False
    assert result.projects == []
    assert "does not exist" in result.error


def test_scan_file_instead_of_directory_returns_failure(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    result = ProjectScanner().scan(target)

    assert result.success is False


def test_one_failing_project_does_not_abort_siblings(tmp_path: Path) -> None:
    _make_projects(tmp_path)

    result = ProjectScanner(analyzer=ExplodingAnalyzer("alpha")).scan(tmp_path)

    assert result.success is True
    assert [project.name for project in result.projects] == ["beta"]
    assert all(isinstance(project, ProjectInfo) for project in result.projects)


def test_empty_root_scans_successfully(tmp_path: Path) -> None:
    result = ProjectScanner().scan(tmp_path)

    assert result.success is True
    assert result.projects == []


def test_scan_keeps_project_with_oversized_number_in_env(tmp_path: Path) -> None:
    (tmp_path / "proj").mkdir()
    (tmp_path / "proj" / ".env").write_text("PORT_ADMIN=" + "7" * 5000 + "\nPORT=4321\n", encoding="utf-8")

    result = ProjectScanner().scan(tmp_path)

    assert [project.name for project in result.projects] == ["proj"]
    assert result.projects[0].ports == [4321]
