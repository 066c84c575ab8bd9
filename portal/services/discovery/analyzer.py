"""Best-effort inference of a project's setup type, ports and URLs from its files."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Iterable

from portal.config.settings import settings
from portal.errors import FileParseError
from portal.models.project import SetupType, UrlType
from portal.services.discovery import patterns
from portal.services.discovery.contracts import ProjectInfo
from portal.services.urls import UrlEntry, localhost_entry, sort_entries

logger = logging.getLogger(__name__)


class ProjectAnalyzer:
    """Runs the file heuristics in a fixed order over one project directory.

    Heuristic order and override rules:
      1. package.json selects the framework from its dependencies.
      2. A compose file sets docker-compose only over unknown/nodejs.
      3. A lone Dockerfile sets docker under the same condition.
      4. A pm2 config sets pm2 (unconditionally unless the override is switched off).
      5. Python dependency files without package.json set python and refine it.
      6. Env files, entry points, Makefile and README add ports and URLs.
    A failure reading any single file only drops that file's contribution.
    """

    def __init__(self, *, process_manager_overrides_framework: bool | None = None) -> None:
        if process_manager_overrides_framework is None:
            process_manager_overrides_framework = settings.PROCESS_MANAGER_OVERRIDES_FRAMEWORK
        self.process_manager_overrides_framework = process_manager_overrides_framework

    def analyze(self, path: str | Path, name: str) -> ProjectInfo:
        project_dir = Path(path)
        info = ProjectInfo(name=name, directory_path=str(project_dir))

        has_manifest = (project_dir / patterns.PACKAGE_MANIFEST).is_file()
        compose_file = _first_existing(project_dir, patterns.COMPOSE_FILES)
        has_dockerfile = (project_dir / patterns.DOCKERFILE).is_file()
        has_pm2 = _first_existing(project_dir, patterns.PM2_CONFIGS) is not None
        has_requirements = (project_dir / patterns.REQUIREMENTS_FILE).is_file()
        has_pipfile = (project_dir / patterns.PIPFILE).is_file()

        if has_manifest:
            self._guard(info, patterns.PACKAGE_MANIFEST, self._inspect_manifest, project_dir)

        if compose_file is not None:
            if info.setup_type in patterns.GENERIC_SETUP_TYPES:
                info.setup_type = SetupType.DOCKER_COMPOSE.value
            self._guard(info, compose_file, self._inspect_compose, project_dir, compose_file)
        elif has_dockerfile and info.setup_type in patterns.GENERIC_SETUP_TYPES:
            info.setup_type = SetupType.DOCKER.value

        if has_pm2 and (self.process_manager_overrides_framework or info.setup_type in patterns.GENERIC_SETUP_TYPES):
            info.setup_type = SetupType.PM2.value

        if (has_requirements or has_pipfile) and not has_manifest:
            info.setup_type = SetupType.PYTHON.value
            dependency_file = patterns.REQUIREMENTS_FILE if has_requirements else patterns.PIPFILE
            self._guard(info, dependency_file, self._inspect_python_dependencies, project_dir, dependency_file)

        for env_file, default_type in patterns.ENV_FILES:
            if (project_dir / env_file).is_file():
                self._guard(info, env_file, self._inspect_env_file, project_dir, env_file, default_type)

        for entry_point in patterns.ENTRY_POINT_FILES:
            if (project_dir / entry_point).is_file():
                self._guard(info, entry_point, self._inspect_entry_point, project_dir, entry_point)

        if (project_dir / patterns.MAKEFILE).is_file():
            self._guard(info, patterns.MAKEFILE, self._inspect_makefile, project_dir)

        readme = _first_existing(project_dir, patterns.README_FILES)
        if readme is not None:
            self._guard(info, readme, self._inspect_readme, project_dir, readme)

        return self._finalize(info)

    # ── Heuristics ──────────────────────────────────────────────────────

    def _inspect_manifest(self, info: ProjectInfo, project_dir: Path) -> None:
        manifest = _read_json(project_dir, patterns.PACKAGE_MANIFEST)
        if not isinstance(manifest, dict):
            raise FileParseError(patterns.PACKAGE_MANIFEST, "manifest is not a JSON object")

        info.description = str(manifest.get("description") or "")

        dependencies: dict[str, Any] = {}
        for key in ("dependencies", "devDependencies"):
            section = manifest.get(key)
            if isinstance(section, dict):
                dependencies.update(section)
        info.setup_type = SetupType.NODEJS.value
        for marker, setup_type in patterns.FRAMEWORK_DEPENDENCIES:
            if marker in dependencies:
                info.setup_type = setup_type.value
                break

        scripts = manifest.get("scripts")
        if isinstance(scripts, dict):
            for script_name, command in scripts.items():
                if not isinstance(command, str):
                    continue
                port = _first_match_port(command, patterns.SCRIPT_PORT_PATTERNS)
                if port is None or not patterns.is_candidate_port(port):
                    continue
                info.urls.append(
                    UrlEntry(
                        type=patterns.script_url_type(script_name),
                        url=f"http://localhost:{port}",
                        label=f"{script_name} (port {port})",
                        port=port,
                    )
                )
                _add_port(info, port)

        default_label = patterns.FRONTEND_DEFAULT_LABELS.get(info.setup_type)
        if not info.ports and default_label is not None:
            port = patterns.DEFAULT_PORT
            info.ports.append(port)
            info.urls.append(
                localhost_entry(port, url_type=UrlType.DEVELOPMENT.value, label=f"{default_label} (port {port})")
            )

    def _inspect_compose(self, info: ProjectInfo, project_dir: Path, compose_file: str) -> None:
        content = _read_text(project_dir, compose_file)

        for host_raw, _container in patterns.COMPOSE_PORT_MAPPING.findall(content):
            host_port = _parse_port(host_raw)
            if host_port is not None and patterns.is_candidate_port(host_port) and _add_port(info, host_port):
                info.urls.append(
                    localhost_entry(host_port, url_type=UrlType.DOCKER.value, label=f"Docker (port {host_port})")
                )

        for var_name, url in patterns.COMPOSE_URL_ASSIGNMENT.findall(content):
            info.urls.append(
                UrlEntry(type=patterns.variable_url_type(var_name, UrlType.OTHER.value), url=url, label=var_name)
            )

    def _inspect_python_dependencies(self, info: ProjectInfo, project_dir: Path, dependency_file: str) -> None:
        content = _read_text(project_dir, dependency_file).lower()
        for marker, setup_type, default_port, label in patterns.PYTHON_FRAMEWORKS:
            if marker not in content:
                continue
            info.setup_type = setup_type.value
            if not info.ports:
                info.ports.append(default_port)
                info.urls.append(
                    localhost_entry(
                        default_port,
                        url_type=UrlType.DEVELOPMENT.value,
                        label=f"{label} (port {default_port})",
                    )
                )
            break

    def _inspect_env_file(self, info: ProjectInfo, project_dir: Path, env_file: str, default_type: str) -> None:
        content = _read_text(project_dir, env_file)

        for var_name, port_raw in patterns.ENV_PORT_ASSIGNMENT.findall(content):
            port = _parse_port(port_raw)
            if port is None or not patterns.is_candidate_port(port) or not _add_port(info, port):
                continue
            label, url_type = patterns.port_variable_label(var_name, env_file, port, default_type)
            info.urls.append(localhost_entry(port, url_type=url_type, label=label, source=env_file))

        for var_name, url in patterns.ENV_URL_ASSIGNMENT.findall(content):
            if any(entry.url == url for entry in info.urls):
                continue
            info.urls.append(
                UrlEntry(
                    type=patterns.variable_url_type(var_name, default_type),
                    url=url,
                    label=var_name,
                    source=env_file,
                )
            )

    def _inspect_entry_point(self, info: ProjectInfo, project_dir: Path, entry_point: str) -> None:
        content = _read_text(project_dir, entry_point)
        for pattern in patterns.ENTRY_POINT_PORT_PATTERNS:
            self._collect_ports(info, pattern.findall(content), source=entry_point)

    def _inspect_makefile(self, info: ProjectInfo, project_dir: Path) -> None:
        content = _read_text(project_dir, patterns.MAKEFILE)
        self._collect_ports(info, patterns.MAKEFILE_PORT_ASSIGNMENT.findall(content), source=patterns.MAKEFILE)
        self._collect_ports(info, patterns.MAKEFILE_LOCALHOST_URL.findall(content), source=patterns.MAKEFILE)

    def _inspect_readme(self, info: ProjectInfo, project_dir: Path, readme: str) -> None:
        content = _read_text(project_dir, readme)
        self._collect_ports(info, patterns.README_LOOPBACK_URL.findall(content), source=readme)
        self._collect_ports(info, patterns.README_PORT_MENTION.findall(content), source=readme)

    @staticmethod
    def _collect_ports(info: ProjectInfo, raw_ports: Iterable[str], *, source: str) -> None:
        for raw in raw_ports:
            port = _parse_port(raw)
            if port is not None and patterns.is_candidate_port(port) and _add_port(info, port):
                info.urls.append(
                    localhost_entry(
                        port,
                        url_type=UrlType.DEVELOPMENT.value,
                        label=f"{source} (port {port})",
                        source=source,
                    )
                )

    # ── Post-processing ─────────────────────────────────────────────────

    @staticmethod
    def _finalize(info: ProjectInfo) -> ProjectInfo:
        if not info.ports:
            info.ports.append(patterns.DEFAULT_PORT)
        info.ports.sort()

        if not info.urls:
            info.urls = [localhost_entry(port) for port in info.ports]

        info.urls = [entry.with_port() for entry in info.urls]
        info.urls = sort_entries(_dedupe_entries(info.urls))
        return info

    @staticmethod
    def _guard(info: ProjectInfo, filename: str, heuristic: Callable[..., None], *args: Any) -> None:
        try:
            heuristic(info, *args)
        except FileParseError as exc:
            logger.warning(f"Skipping {filename} for project {info.name}: {exc.reason}")


def _dedupe_entries(entries: list[UrlEntry]) -> list[UrlEntry]:
    """Keep one entry per (url, type); an entry with a source replaces one without."""
    kept: list[UrlEntry] = []
    index_by_key: dict[tuple[str, str], int] = {}
    for entry in entries:
        key = (entry.url, entry.type)
        position = index_by_key.get(key)
        if position is None:
            index_by_key[key] = len(kept)
            kept.append(entry)
            continue
        if entry.source and not kept[position].source:
            kept[position] = entry
    return kept


def _add_port(info: ProjectInfo, port: int) -> bool:
    if port in info.ports:
        return False
    info.ports.append(port)
    return True


def _parse_port(raw: str) -> int | None:
    # TCP ports have at most five digits; longer runs are not ports.
    if len(raw) > 5:
        return None
    return int(raw)


def _first_match_port(text: str, candidates: Iterable[re.Pattern[str]]) -> int | None:
    for pattern in candidates:
        match = pattern.search(text)
        if match:
            return _parse_port(match.group(1))
    return None


def _first_existing(project_dir: Path, names: Iterable[str]) -> str | None:
    for name in names:
        if (project_dir / name).is_file():
            return name
    return None


def _read_text(project_dir: Path, filename: str) -> str:
    try:
        return (project_dir / filename).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileParseError(filename, str(exc)) from exc


def _read_json(project_dir: Path, filename: str) -> Any:
    try:
        return json.loads(_read_text(project_dir, filename))
    except json.JSONDecodeError as exc:
        raise FileParseError(filename, f"invalid JSON: {exc}") from exc
