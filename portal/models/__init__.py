"""Database models"""

from portal.models.project import Network, Project, SetupType, UrlType
from portal.models.user import User

__all__ = [
    "Project",
    "SetupType",
    "UrlType",
    "Network",
    "User",
]
