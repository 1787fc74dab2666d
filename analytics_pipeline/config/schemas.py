"""
Configuration schema for the analytics pipeline service.

Security:
    Tokens use SecretStr to prevent accidental logging. Access the value
    with `.get_secret_value()`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr

ENV_PREFIX = "ANALYTICS_PIPELINE_"

# Sentinel URLs selecting the in-process backends
MEMORY_MONGO_URL = "memory"
MOCK_PERMISSIONS_URL = "mock"


class AppSettings(BaseModel):
    """Application settings."""

    model_config = ConfigDict(extra="ignore")

    # HTTP server
    server_port: int = Field(8000, ge=1, le=65535)
    debug: bool = False
    url_prefix: str = ""

    # Logging
    log_level: str = Field("info", description="debug, info, warning or error")

    # MongoDB
    mongo_url: str = Field("mongodb://localhost:27017", description="'memory' for the in-memory store")
    mongo_database: str = "service"
    mongo_collection: str = "pipelines"

    # Permission service
    permissions_url: str = Field(
        "http://permv2.permissions:8080", description="'mock' for the in-process client"
    )
    permissions_admin_token: SecretStr = Field(default=SecretStr(""))
    permissions_timeout: float = Field(10.0, gt=0)

    # Maintenance
    reconcile_on_startup: bool = True

    @property
    def bind_host(self) -> str:
        """Debug mode listens on loopback only."""
        return "127.0.0.1" if self.debug else "0.0.0.0"
