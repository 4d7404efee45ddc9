"""Pre-switch health gate for deployment slots."""

import builtins
import time

import requests
import structlog

from .enums import DeploymentSlot
from .exceptions import SlotHealthCheckError
from .routing import SlotUpstream

logger = structlog.get_logger(__name__)


class HealthChecker:
    """Probe a slot's health endpoint before traffic is moved to it."""

    def __init__(
        self,
        upstreams: builtins.list[SlotUpstream],
        timeout: float = 5.0,
        retries: int = 3,
        retry_interval: float = 1.0,
        verify_ssl: bool = True,
    ):
        self.upstreams = {upstream.slot: upstream for upstream in upstreams}
        self.timeout = timeout
        self.retries = max(1, retries)
        self.retry_interval = retry_interval
        self.verify_ssl = verify_ssl

    def check(self, slot: DeploymentSlot) -> None:
        """Raise SlotHealthCheckError unless ``slot`` answers with a 2xx status."""
        upstream = self.upstreams.get(slot)
        if upstream is None:
            raise SlotHealthCheckError(
                f"No upstream configured for slot {slot.value}", {"slot": slot.value}
            )

        health_url = f"{upstream.base_url}{upstream.health_check_path}"
        last_error = None

        for attempt in range(1, self.retries + 1):
            try:
                response = requests.get(
                    health_url, timeout=self.timeout, verify=self.verify_ssl
                )
                if 200 <= response.status_code < 300:
                    logger.info(
                        "health_check_passed",
                        slot=slot.value,
                        url=health_url,
                        attempt=attempt,
                    )
                    return
                last_error = f"HTTP {response.status_code}"
            except requests.RequestException as e:
                last_error = str(e)

            logger.warning(
                "health_check_failed",
                slot=slot.value,
                url=health_url,
                attempt=attempt,
                error=last_error,
            )
            if attempt < self.retries and self.retry_interval > 0:
                time.sleep(self.retry_interval)

        raise SlotHealthCheckError(
            f"Slot {slot.value} failed health check at {health_url}: {last_error}",
            {"slot": slot.value, "url": health_url, "attempts": self.retries, "error": last_error},
        )
