"""Data models for slot routing state and switch history."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .enums import DeploymentSlot, SwitchAction
from .exceptions import SlotCoordinatorError, StateStoreError


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class RoutingState:
    """Which slot receives live traffic, and which one did before it."""

    active_slot: DeploymentSlot
    previous_slot: DeploymentSlot | None = None
    last_switched_at: datetime | None = None

    @property
    def has_prior_slot(self) -> bool:
        return self.previous_slot is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_slot": self.active_slot.value,
            "previous_slot": self.previous_slot.value if self.previous_slot else None,
            "last_switched_at": (
                self.last_switched_at.isoformat() if self.last_switched_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoutingState":
        if not isinstance(data, dict):
            raise StateStoreError(
                f"Malformed routing state: expected an object, got {type(data).__name__}",
                {"payload": data},
            )
        try:
            previous = data.get("previous_slot")
            return cls(
                active_slot=DeploymentSlot.parse(data["active_slot"]),
                previous_slot=DeploymentSlot.parse(previous) if previous else None,
                last_switched_at=_parse_timestamp(data.get("last_switched_at")),
            )
        except (KeyError, TypeError, ValueError, SlotCoordinatorError) as e:
            raise StateStoreError(
                f"Malformed routing state: {e}", {"payload": data}
            ) from e


@dataclass
class SwitchRecord:
    """A single entry in the switch history."""

    action: SwitchAction
    from_slot: DeploymentSlot
    to_slot: DeploymentSlot
    switched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operator: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            **asdict(self),
            "action": self.action.value,
            "from_slot": self.from_slot.value,
            "to_slot": self.to_slot.value,
            "switched_at": self.switched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SwitchRecord":
        if not isinstance(data, dict):
            raise StateStoreError(
                f"Malformed switch record: expected an object, got {type(data).__name__}",
                {"payload": data},
            )
        try:
            return cls(
                action=SwitchAction(data["action"]),
                from_slot=DeploymentSlot.parse(data["from_slot"]),
                to_slot=DeploymentSlot.parse(data["to_slot"]),
                switched_at=_parse_timestamp(data["switched_at"]),
                operator=data.get("operator"),
            )
        except (KeyError, TypeError, ValueError, SlotCoordinatorError) as e:
            raise StateStoreError(
                f"Malformed switch record: {e}", {"payload": data}
            ) from e
