"""
Traffic routing for blue/green slots.

Routers point live traffic at one slot:
- In-memory weights for library use and tests
- NGINX upstream rendering with the idle slot kept as a backup server
"""

import builtins
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from .enums import DeploymentSlot
from .exceptions import RoutingError
from .store import atomic_write

if TYPE_CHECKING:
    from .config import SlotSettings

logger = structlog.get_logger(__name__)


class RoutingBackend(Enum):
    """Traffic routing backend types"""

    MEMORY = "memory"
    NGINX = "nginx"


@dataclass
class SlotUpstream:
    """Network location of a slot"""

    slot: DeploymentSlot
    host: str
    port: int = 80
    health_check_path: str = "/health"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


class TrafficRouter(ABC):
    """
    Base class for traffic routers
    """

    def __init__(self, backend: RoutingBackend):
        self.backend = backend
        self.active_slot: DeploymentSlot | None = None

    @abstractmethod
    def route_to(self, slot: DeploymentSlot) -> None:
        """Send all live traffic to ``slot``. Raises RoutingError on failure."""

    def current_weights(self) -> builtins.dict[DeploymentSlot, int]:
        """Traffic weight per slot, in percent."""
        return {
            slot: 100 if slot is self.active_slot else 0 for slot in DeploymentSlot
        }


class InMemoryTrafficRouter(TrafficRouter):
    """Router that only records the routing target."""

    def __init__(self):
        super().__init__(RoutingBackend.MEMORY)
        self.applied: builtins.list[DeploymentSlot] = []

    def route_to(self, slot: DeploymentSlot) -> None:
        self.active_slot = slot
        self.applied.append(slot)
        logger.info("routing_applied", backend=self.backend.value, slot=slot.value)


class NginxUpstreamRouter(TrafficRouter):
    """
    NGINX upstream traffic router

    Renders an ``upstream`` block where the active slot serves traffic and the
    idle slot is marked ``backup``, then optionally runs a reload command.
    """

    def __init__(
        self,
        upstream_name: str,
        upstreams: builtins.list[SlotUpstream],
        config_path: str | Path,
        reload_command: builtins.list[str] | None = None,
    ):
        super().__init__(RoutingBackend.NGINX)
        self.upstream_name = upstream_name
        self.upstreams = {upstream.slot: upstream for upstream in upstreams}
        self.config_path = Path(config_path)
        self.reload_command = reload_command or []

        missing = [slot.value for slot in DeploymentSlot if slot not in self.upstreams]
        if missing:
            raise RoutingError(
                f"No upstream configured for slot(s): {', '.join(missing)}",
                {"missing": missing},
            )

    def render_upstream(self, slot: DeploymentSlot) -> str:
        """Build the NGINX upstream configuration for ``slot``."""
        active = self.upstreams[slot]
        idle = self.upstreams[slot.other]

        upstream_config = f"# active slot: {slot.value}\n"
        upstream_config += f"upstream {self.upstream_name} {{\n"
        upstream_config += f"    server {active.host}:{active.port};\n"
        upstream_config += f"    server {idle.host}:{idle.port} backup;\n"
        upstream_config += "}\n"
        return upstream_config

    def route_to(self, slot: DeploymentSlot) -> None:
        try:
            previous_config = (
                self.config_path.read_text(encoding="utf-8")
                if self.config_path.exists()
                else None
            )
        except (OSError, ValueError) as e:
            raise RoutingError(
                f"Failed to read NGINX upstream config {self.config_path}: {e}",
                {"path": str(self.config_path), "slot": slot.value},
            ) from e

        try:
            atomic_write(self.config_path, self.render_upstream(slot))
        except OSError as e:
            raise RoutingError(
                f"Failed to write NGINX upstream config {self.config_path}: {e}",
                {"path": str(self.config_path), "slot": slot.value},
            ) from e

        if self.reload_command:
            try:
                subprocess.run(
                    self.reload_command, capture_output=True, text=True, check=True
                )
            except (OSError, subprocess.CalledProcessError) as e:
                self._restore(previous_config)
                stderr = getattr(e, "stderr", None)
                raise RoutingError(
                    f"NGINX reload failed: {e}",
                    {"command": self.reload_command, "stderr": stderr},
                ) from e

        self.active_slot = slot
        logger.info(
            "routing_applied",
            backend=self.backend.value,
            slot=slot.value,
            upstream=self.upstream_name,
            path=str(self.config_path),
        )

    def _restore(self, previous_config: str | None) -> None:
        """Put back the config that was live before a failed reload."""
        try:
            if previous_config is None:
                self.config_path.unlink(missing_ok=True)
            else:
                atomic_write(self.config_path, previous_config)
        except OSError as e:
            logger.error("routing_config_restore_failed", path=str(self.config_path), error=str(e))
            raise RoutingError(
                f"NGINX reload failed and the previous upstream config could not be restored: {e}",
                {"path": str(self.config_path)},
            ) from e
        logger.warning("routing_config_restored", path=str(self.config_path))


def create_router(settings: "SlotSettings") -> TrafficRouter:
    """Create a traffic router for the configured backend."""
    if settings.router is RoutingBackend.NGINX:
        return NginxUpstreamRouter(
            upstream_name=settings.upstream_name,
            upstreams=settings.upstreams(),
            config_path=settings.nginx_config_path,
            reload_command=settings.nginx_reload_command,
        )
    return InMemoryTrafficRouter()
