"""Server configuration."""

from pydantic import BaseModel


class ServerConfig(BaseModel, frozen=True):
    """Bind address and browser origin settings."""

    host: str
    port: int
    cors_origins: str

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed CORS origins as a list (empty string means none)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
