"""Directory scanning for candidate projects."""

from __future__ import annotations

import logging
from pathlib import Path

from portal.errors import ScanIOError
from portal.services.discovery.analyzer import ProjectAnalyzer
from portal.services.discovery.contracts import ProjectInfo, ScanResult

logger = logging.getLogger(__name__)


class ProjectScanner:
    """Analyzes every visible subdirectory of a scan root."""

    def __init__(self, analyzer: ProjectAnalyzer | None = None) -> None:
        self.analyzer = analyzer or ProjectAnalyzer()

    def scan(self, directory_path: str | Path) -> ScanResult:
        """Scan the immediate subdirectories; never raises to the caller."""
        try:
            children = self._list_project_dirs(Path(directory_path))
        except ScanIOError as exc:
            logger.warning(f"Scan aborted for {directory_path}: {exc}")
            return ScanResult(success=False, error=str(exc))

        projects: list[ProjectInfo] = []
        for child in children:
            try:
                projects.append(self.analyzer.analyze(child, child.name))
            except Exception:
                logger.exception(f"Analysis failed for {child}")

        logger.info(f"Scanned {directory_path}: {len(projects)} projects found")
        return ScanResult(success=True, projects=projects)

    @staticmethod
    def _list_project_dirs(root: Path) -> list[Path]:
        if not root.is_dir():
            raise ScanIOError(f"Directory does not exist: {root}")
        try:
            return sorted(
                (child for child in root.iterdir() if child.is_dir() and not child.name.startswith(".")),
                key=lambda child: child.name,
            )
        except OSError as exc:
            raise ScanIOError(f"Directory is not readable: {root} ({exc})") from exc
