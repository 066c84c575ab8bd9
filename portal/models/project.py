"""Project model for registered locally-hosted applications."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from portal.config.database import Base


class SetupType(str, enum.Enum):
    """Framework/runtime classification inferred by the scanner."""

    NEXTJS = "nextjs"
    REACT = "react"
    VUE = "vue"
    NODEJS_EXPRESS = "nodejs-express"
    NODEJS = "nodejs"
    DOCKER_COMPOSE = "docker-compose"
    DOCKER = "docker"
    PM2 = "pm2"
    PYTHON = "python"
    PYTHON_FLASK = "python-flask"
    PYTHON_DJANGO = "python-django"
    PYTHON_FASTAPI = "python-fastapi"
    PYTHON_STREAMLIT = "python-streamlit"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class UrlType(str, enum.Enum):
    """Category of a project URL entry, in display priority order."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"
    STAGING = "staging"
    DOCKER = "docker"
    DEMO = "demo"
    MAIN = "main"
    OTHER = "other"


class Network(str, enum.Enum):
    """Address class targeted by an expanded URL."""

    LOCALHOST = "localhost"
    LAN = "lan"
    VPN = "vpn"
    EXTERNAL = "external"


class Project(Base):
    """Project entity mapped to `projects` table."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    directory_path = Column(String(1024), nullable=False, unique=True)
    port = Column(Integer, nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    setup_type = Column(String(50), nullable=True, default=SetupType.UNKNOWN.value)
    urls = Column(Text, nullable=True)  # JSON array of url entries
    frontend_path = Column(String(500), nullable=False, default="/")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_projects_enabled", "enabled"),
        Index("idx_projects_name", "name"),
        Index("idx_projects_port", "port"),
    )

    def __repr__(self):
        return f"<Project {self.id} {self.name} :{self.port}>"
