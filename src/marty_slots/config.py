"""Strongly typed coordinator configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import DeploymentSlot
from .exceptions import InvalidSlotError
from .routing import RoutingBackend, SlotUpstream


class SlotSettings(BaseSettings):
    """Runtime configuration loaded from environment variables and `.env` files."""

    model_config = SettingsConfigDict(
        env_prefix="SLOTS_", env_file=".env", env_nested_delimiter="__", extra="ignore"
    )

    service_name: str = Field(default="web-app", description="Service behind the slots")
    environment: str = Field(default="production", description="Deployment environment name")
    state_file: Path = Field(
        default=Path(".slotctl/state.json"), description="Routing state JSON file"
    )
    initial_slot: DeploymentSlot = Field(
        default=DeploymentSlot.BLUE, description="Slot that is live before any switch"
    )
    history_size: int = Field(default=100, description="Switch records to keep", ge=1)

    router: RoutingBackend = Field(
        default=RoutingBackend.MEMORY, description="Traffic routing backend"
    )
    upstream_name: str = Field(default="app_backend", description="NGINX upstream name")
    nginx_config_path: Path = Field(
        default=Path("/etc/nginx/conf.d/upstream.conf"),
        description="Where the rendered NGINX upstream is written",
    )
    nginx_reload_command: list[str] = Field(
        default_factory=list, description="Command run after the upstream is rewritten"
    )

    blue_host: str = Field(default="app-blue", description="Blue slot host")
    blue_port: int = Field(default=8080, description="Blue slot port")
    green_host: str = Field(default="app-green", description="Green slot host")
    green_port: int = Field(default=8080, description="Green slot port")

    health_check_enabled: bool = Field(
        default=False, description="Probe the target slot before switching"
    )
    health_check_path: str = Field(default="/health", description="Health endpoint path")
    health_check_timeout: float = Field(default=5.0, description="Probe timeout", gt=0)
    health_check_retries: int = Field(default=3, description="Probe attempts", ge=1)

    log_level: str = Field(default="INFO", description="Application log level")
    log_format: str = Field(default="console", description="Log renderer: json or console")

    @field_validator("initial_slot", mode="before")
    @classmethod
    def _parse_initial_slot(cls, value: object) -> DeploymentSlot:
        try:
            return DeploymentSlot.parse(value)  # type: ignore[arg-type]
        except InvalidSlotError as e:
            raise ValueError(e.message) from e

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper_value = value.upper()
        if upper_value not in allowed:
            msg = f"Invalid log level '{value}'. Choose one of: {', '.join(sorted(allowed))}."
            raise ValueError(msg)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        lower_value = value.lower()
        if lower_value not in {"json", "console"}:
            raise ValueError(f"Invalid log format '{value}'. Choose json or console.")
        return lower_value

    def upstreams(self) -> list[SlotUpstream]:
        """Return the network location of both slots."""
        return [
            SlotUpstream(
                DeploymentSlot.BLUE, self.blue_host, self.blue_port, self.health_check_path
            ),
            SlotUpstream(
                DeploymentSlot.GREEN, self.green_host, self.green_port, self.health_check_path
            ),
        ]


@lru_cache(maxsize=1)
def get_settings() -> SlotSettings:
    """Return process-wide settings."""
    return SlotSettings()
