"""File names, regexes and naming heuristics used by project discovery."""

from __future__ import annotations

import re

from portal.models.project import SetupType, UrlType

MIN_PORT_EXCLUSIVE = 1000
MAX_PORT_EXCLUSIVE = 65536
DEFAULT_PORT = 3000

PACKAGE_MANIFEST = "package.json"
COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml")
DOCKERFILE = "Dockerfile"
PM2_CONFIGS = ("ecosystem.config.js", "pm2.config.js")
REQUIREMENTS_FILE = "requirements.txt"
PIPFILE = "Pipfile"
MAKEFILE = "Makefile"
README_FILES = ("README.md", "readme.md", "README.txt", "README")

# (file, default url type) in scan order
ENV_FILES: tuple[tuple[str, str], ...] = (
    (".env.example", UrlType.OTHER.value),
    (".env", UrlType.OTHER.value),
    (".env.local", UrlType.DEVELOPMENT.value),
    (".env.development", UrlType.DEVELOPMENT.value),
    (".env.development.local", UrlType.DEVELOPMENT.value),
    (".env.staging", UrlType.STAGING.value),
    (".env.production", UrlType.PRODUCTION.value),
    (".env.production.local", UrlType.PRODUCTION.value),
)

ENTRY_POINT_FILES = (
    "server.js",
    "app.js",
    "index.js",
    "main.js",
    "server.ts",
    "app.ts",
    "index.ts",
    "main.py",
    "app.py",
    "server.py",
    "wsgi.py",
    "asgi.py",
    "src/server.js",
    "src/app.js",
    "src/index.js",
    "src/main.js",
    "src/main.py",
    "src/app.py",
)

# Dependency marker -> setup type, first match wins
FRAMEWORK_DEPENDENCIES: tuple[tuple[str, SetupType], ...] = (
    ("next", SetupType.NEXTJS),
    ("react", SetupType.REACT),
    ("vue", SetupType.VUE),
    ("express", SetupType.NODEJS_EXPRESS),
)

FRONTEND_DEFAULT_LABELS: dict[str, str] = {
    SetupType.NEXTJS.value: "Next.js Dev",
    SetupType.REACT.value: "Dev Server",
    SetupType.VUE.value: "Dev Server",
}

# Requirements marker -> (setup type, default port, label), first match wins
PYTHON_FRAMEWORKS: tuple[tuple[str, SetupType, int, str], ...] = (
    ("flask", SetupType.PYTHON_FLASK, 5000, "Flask Dev"),
    ("django", SetupType.PYTHON_DJANGO, 8000, "Django Dev"),
    ("fastapi", SetupType.PYTHON_FASTAPI, 8000, "FastAPI"),
    ("streamlit", SetupType.PYTHON_STREAMLIT, 8501, "Streamlit"),
)

# Setup types a compose file or Dockerfile may still replace
GENERIC_SETUP_TYPES = frozenset({SetupType.UNKNOWN.value, SetupType.NODEJS.value})

SCRIPT_PORT_PATTERNS = (
    re.compile(r"port[=:\s]+(\d+)", re.IGNORECASE),
    re.compile(r"--port[=\s]+(\d+)"),
    re.compile(r":(\d+)"),
)

COMPOSE_PORT_MAPPING = re.compile(r"""['"]?(\d+):(\d+)['"]?""")
COMPOSE_URL_ASSIGNMENT = re.compile(r"""(\w*URL\w*)[=:]\s*['"]?(https?://[^\s'"]+)""", re.IGNORECASE)

ENV_PORT_ASSIGNMENT = re.compile(r"^(PORT[_A-Z]*)\s*=\s*(\d+)", re.IGNORECASE | re.MULTILINE)
ENV_URL_ASSIGNMENT = re.compile(r"""^(\w*URL\w*)\s*=\s*['"]?(https?://[^\s'"]+)""", re.IGNORECASE | re.MULTILINE)

ENTRY_POINT_PORT_PATTERNS = (
    re.compile(r"port[:\s]*=\s*(\d+)", re.IGNORECASE),  # port = 3000
    re.compile(r"listen\((\d+)", re.IGNORECASE),  # listen(3000)
    re.compile(r"PORT\s*\|\|\s*(\d+)", re.IGNORECASE),  # PORT || 3000
    re.compile(r"PORT\s*\?\s*PORT\s*:\s*(\d+)", re.IGNORECASE),
    re.compile(r"\|\|\s*(\d+)\s*;"),
    re.compile(r"""\.env\(['"]PORT['"]\)\s*\|\|\s*(\d+)""", re.IGNORECASE),
)

MAKEFILE_PORT_ASSIGNMENT = re.compile(r"PORT[_A-Z]*\s*[:?]?=\s*(\d+)", re.IGNORECASE)
MAKEFILE_LOCALHOST_URL = re.compile(r"https?://localhost:(\d+)", re.IGNORECASE)

README_LOOPBACK_URL = re.compile(r"https?://(?:localhost|127\.0\.0\.1|0\.0\.0\.0):(\d+)", re.IGNORECASE)
README_PORT_MENTION = re.compile(r"port\s+(\d+)", re.IGNORECASE)


def is_candidate_port(port: int) -> bool:
    """Ports outside (1000, 65536) are treated as noise."""
    return MIN_PORT_EXCLUSIVE < port < MAX_PORT_EXCLUSIVE


def script_url_type(script_name: str) -> str:
    name = script_name.lower()
    if "prod" in name:
        return UrlType.PRODUCTION.value
    if "stag" in name:
        return UrlType.STAGING.value
    if "dev" in name:
        return UrlType.DEVELOPMENT.value
    if name == "start":
        return UrlType.PRODUCTION.value
    return UrlType.DEVELOPMENT.value


def variable_url_type(var_name: str, default: str) -> str:
    """Environment category from a `*URL*` variable name."""
    name = var_name.lower()
    if "prod" in name:
        return UrlType.PRODUCTION.value
    if "dev" in name:
        return UrlType.DEVELOPMENT.value
    if "stag" in name:
        return UrlType.STAGING.value
    if "demo" in name:
        return UrlType.DEMO.value
    return default


def port_variable_label(var_name: str, env_file: str, port: int, default_type: str) -> tuple[str, str]:
    """Label and url type for a `PORT*` variable found in an env file."""
    name = var_name.lower()
    origin = f"({env_file}: port {port})"
    if "frontend" in name or "client" in name:
        return f"Frontend {origin}", UrlType.DEVELOPMENT.value
    if "backend" in name or "server" in name:
        return f"Backend {origin}", UrlType.PRODUCTION.value
    if "api" in name:
        return f"API {origin}", UrlType.PRODUCTION.value
    if "docs" in name:
        return f"Docs {origin}", UrlType.DEVELOPMENT.value
    return f"{var_name} {origin}", default_type
