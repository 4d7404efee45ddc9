"""
Blue/green slot coordinator.

Tracks which deployment slot receives live traffic and moves it:
- ``switch_to`` points traffic at a requested slot
- ``rollback`` restores the slot that was live before the last switch

Every state change goes through one lock, and the routing target is applied
before the new state is persisted, so a failed switch leaves state untouched.
"""

import builtins
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from .enums import DeploymentSlot, SwitchAction
from .exceptions import NoPriorSlotError, SlotHealthCheckError, StateStoreError
from .health import HealthChecker
from .models import RoutingState, SwitchRecord
from .routing import InMemoryTrafficRouter, TrafficRouter, create_router
from .store import InMemoryStateStore, JsonFileStateStore, StateStore

if TYPE_CHECKING:
    from .config import SlotSettings

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SlotCoordinator:
    """Owns the routing state for a pair of blue/green slots."""

    def __init__(
        self,
        store: StateStore | None = None,
        router: TrafficRouter | None = None,
        health_checker: HealthChecker | None = None,
        initial_slot: DeploymentSlot | str = DeploymentSlot.BLUE,
        history_size: int = 100,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store or InMemoryStateStore()
        self.router = router or InMemoryTrafficRouter()
        self.health_checker = health_checker
        self.initial_slot = DeploymentSlot.parse(initial_slot)
        self.history_size = max(1, history_size)
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: "SlotSettings") -> "SlotCoordinator":
        """Build a coordinator backed by the configured state file and router."""
        health_checker = None
        if settings.health_check_enabled:
            health_checker = HealthChecker(
                settings.upstreams(),
                timeout=settings.health_check_timeout,
                retries=settings.health_check_retries,
            )
        return cls(
            store=JsonFileStateStore(settings.state_file),
            router=create_router(settings),
            health_checker=health_checker,
            initial_slot=settings.initial_slot,
            history_size=settings.history_size,
        )

    @property
    def state(self) -> RoutingState:
        """Snapshot of the current routing state."""
        return self._load_state()

    @property
    def active_slot(self) -> DeploymentSlot:
        return self._load_state().active_slot

    def switch_to(
        self,
        target_slot: DeploymentSlot | str,
        operator: str | None = None,
        check_health: bool | None = None,
    ) -> RoutingState:
        """Send live traffic to ``target_slot``.

        Switching to the slot that is already live keeps it live but still
        refreshes ``last_switched_at``.

        Raises:
            InvalidSlotError: ``target_slot`` is not blue or green.
            SlotHealthCheckError: the health gate rejected the target.
            RoutingError: the router could not apply the target.
        """
        target = DeploymentSlot.parse(target_slot)

        if check_health is None:
            check_health = self.health_checker is not None
        if check_health:
            if self.health_checker is None:
                raise SlotHealthCheckError(
                    "Health check requested but no health checker is configured",
                    {"slot": target.value},
                )
            self.health_checker.check(target)

        with self._lock:
            current = self._load_state()
            new_state = self._apply(current, target, SwitchAction.SWITCH, operator)

        logger.info(
            "slot_switched",
            from_slot=current.active_slot.value,
            to_slot=target.value,
            operator=operator,
        )
        return new_state

    def rollback(self, operator: str | None = None) -> RoutingState:
        """Restore the slot that was live before the most recent switch.

        Raises:
            NoPriorSlotError: no switch has happened yet.
            RoutingError: the router could not apply the previous slot.
        """
        with self._lock:
            current = self._load_state()
            if current.previous_slot is None:
                raise NoPriorSlotError()
            new_state = self._apply(
                current, current.previous_slot, SwitchAction.ROLLBACK, operator
            )

        logger.info(
            "slot_rollback",
            from_slot=current.active_slot.value,
            to_slot=new_state.active_slot.value,
            operator=operator,
        )
        return new_state

    def history(self, limit: int | None = None) -> builtins.list[SwitchRecord]:
        """Return switch records, newest last."""
        records = self.store.load_history()
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def _load_state(self) -> RoutingState:
        state = self.store.load_state()
        if state is None:
            return RoutingState(active_slot=self.initial_slot)
        return state

    def _apply(
        self,
        current: RoutingState,
        target: DeploymentSlot,
        action: SwitchAction,
        operator: str | None,
    ) -> RoutingState:
        self.router.route_to(target)

        switched_at = self._clock()
        new_state = RoutingState(
            active_slot=target,
            previous_slot=current.active_slot,
            last_switched_at=switched_at,
        )
        record = SwitchRecord(
            action=action,
            from_slot=current.active_slot,
            to_slot=target,
            switched_at=switched_at,
            operator=operator,
        )
        try:
            self.store.record_switch(new_state, record, self.history_size)
        except StateStoreError:
            logger.error(
                "state_persist_failed",
                target=target.value,
                restoring=current.active_slot.value,
            )
            self.router.route_to(current.active_slot)
            raise
        return new_state
