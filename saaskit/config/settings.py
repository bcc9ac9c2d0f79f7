"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="SaaS Kit", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    workers: int = Field(default=1, description="Number of worker processes")

    # Module Kit Configuration
    route_prefix: str = Field(default="", description="Prefix prepended to every module route")
    disable_startup_banner: bool = Field(
        default=False, description="Do not print the module banner after mounting"
    )

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed hosts for CORS")
    api_keys: List[str] = Field(
        default=["test-api-key-123", "development-key"], description="Valid API keys"
    )
    api_key_hashes: List[str] = Field(default=[], description="Valid API key hashes")
    skip_api_key_validation: bool = Field(
        default=True, description="Skip API key validation in development"
    )

    # SSE Configuration
    sse_enabled: bool = Field(default=True, description="Enable Server-Sent Events")
    sse_route_prefix: str = Field(default="/sse", description="Route prefix of the SSE module")
    sse_buffer_size: int = Field(default=10, description="Outbound event buffer per client")
    sse_heartbeat_interval: float = Field(
        default=30.0, description="SSE heartbeat interval in seconds"
    )
    sse_enable_heartbeat: bool = Field(default=True, description="Send periodic heartbeats")
    sse_max_clients: int = Field(
        default=1000, description="Maximum concurrent SSE clients (0 = unlimited)"
    )
    sse_max_clients_per_user: int = Field(
        default=5, description="Maximum concurrent SSE clients per user (0 = unlimited)"
    )
    sse_register_queue_size: int = Field(default=100, description="Pending registrations")
    sse_unregister_queue_size: int = Field(default=100, description="Pending unregistrations")
    sse_broadcast_queue_size: int = Field(default=1000, description="Pending broadcasts")

    # Health Configuration
    health_route_prefix: str = Field(default="/health", description="Route prefix of health checks")
    health_detailed: bool = Field(default=True, description="Expose detailed health endpoint")
    health_check_timeout: float = Field(default=5.0, description="Per-check timeout in seconds")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(
        default=None, description="Directory for rotating log files (console only when unset)"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("route_prefix", "sse_route_prefix", "health_route_prefix")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        """Strip trailing slashes and force a leading one on non-empty prefixes."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="SAASKIT_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
