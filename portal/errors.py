"""Portal error taxonomy."""

from __future__ import annotations


class PortalError(Exception):
    """Base class for portal failures surfaced to callers."""


class ProjectNotFoundError(PortalError):
    """Referenced project id has no record."""

    def __init__(self, project_id: int) -> None:
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class DisabledProjectError(PortalError):
    """Record exists but is disabled, so it is treated as unreachable."""

    def __init__(self, project_id: int) -> None:
        super().__init__(f"Project is disabled: {project_id}")
        self.project_id = project_id


class DuplicateProjectPathError(PortalError):
    """Another record already owns the directory path."""

    def __init__(self, directory_path: str) -> None:
        super().__init__(f"A project is already registered for directory: {directory_path}")
        self.directory_path = directory_path


class ScanIOError(PortalError):
    """Scan root is missing or unreadable."""


class FileParseError(PortalError):
    """A single metadata file could not be read or parsed."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class ImportValidationError(PortalError):
    """JSON import payload is malformed; nothing was applied."""


class UpstreamUnavailableError(PortalError):
    """Proxy target is not accepting connections."""

    def __init__(self, project_name: str, port: int) -> None:
        super().__init__(
            f"Could not connect to {project_name}. Make sure the application is running on port {port}."
        )
        self.project_name = project_name
        self.port = port
