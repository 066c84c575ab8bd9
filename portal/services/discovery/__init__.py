"""Project discovery: directory scanning, file heuristics and JSON interchange."""

from portal.services.discovery.analyzer import ProjectAnalyzer
from portal.services.discovery.contracts import ImportResult, ProjectInfo, ScanResult
from portal.services.discovery.interchange import export_to_json, import_from_json
from portal.services.discovery.scanner import ProjectScanner

__all__ = [
    "ProjectAnalyzer",
    "ProjectScanner",
    "ProjectInfo",
    "ScanResult",
    "ImportResult",
    "export_to_json",
    "import_from_json",
]
