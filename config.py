"""
Service configuration using Pydantic Settings.

Settings are read once when a service process starts and then passed
explicitly to the app factory; nothing else reads the environment.
"""

from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


# Default port per service.
SERVICE_PORTS: Dict[str, int] = {
    "users": 3001,
    "videos": 3002,
    "comments": 3003,
    "playlists": 3004,
    "subscriptions": 3005,
}


class Settings(BaseSettings):
    """Settings loaded from environment variables (and an optional .env file)."""

    # Document store
    MONGO_URL: str = "mongodb://127.0.0.1:27017"
    DATABASE_NAME: str = "youtube"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # HTTP
    API_HOST: str = "0.0.0.0"
    PORT: Optional[int] = None
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Playlist merge-and-append retries after a concurrent write
    PLAYLIST_MERGE_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, frozen=True)

    def port_for(self, service: str) -> int:
        """Return the port a service binds: ``PORT`` if set, else its default."""
        default = SERVICE_PORTS[service]
        return self.PORT if self.PORT is not None else default


def load_settings() -> Settings:
    return Settings()
