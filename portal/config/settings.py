"""Application settings and configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Project Portal"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    CORS_ORIGINS: str = "*"  # Comma-separated

    # Database
    DATABASE_URL: str = "sqlite:///./portal.db"

    # Reachability probing
    DEFAULT_HOST: str = "localhost"
    PORT_CHECK_TIMEOUT_MS: int = 1000
    PORT_STATUS_CACHE_TTL_MS: int = 5000

    # Network variants offered for loopback URLs
    SERVER_LAN_IP: str = "10.46.54.180"
    SERVER_VPN_IP: str = "10.0.0.9"
    SHOW_LOCALHOST_URLS: bool = True
    SHOW_LAN_URLS: bool = True
    SHOW_VPN_URLS: bool = True

    # Listing behaviour
    SHOW_OFFLINE_PROJECTS: bool = True
    PRIMARY_NETWORK_PREFERENCE: str = "lan,vpn,localhost,external"

    # Scanning / import
    DEFAULT_PROJECT_PORT: int = 3000
    # A pm2 config forces setup_type=pm2 even over a detected framework
    PROCESS_MANAGER_OVERRIDES_FRAMEWORK: bool = True

    # Reverse proxy
    PROXY_TIMEOUT_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def cors_origins(self) -> list[str]:
        origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def primary_network_preference(self) -> tuple[str, ...]:
        return tuple(part.strip().lower() for part in self.PRIMARY_NETWORK_PREFERENCE.split(",") if part.strip())


settings = Settings()
