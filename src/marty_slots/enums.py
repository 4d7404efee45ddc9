"""
Slot Coordinator Enums

Core enumeration types for deployment slots and switch history actions.
"""

from enum import Enum

from .exceptions import InvalidSlotError


class DeploymentSlot(Enum):
    """One of two interchangeable deployment environments."""

    BLUE = "blue"
    GREEN = "green"

    @classmethod
    def parse(cls, value: "DeploymentSlot | str") -> "DeploymentSlot":
        """Resolve a slot from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for slot in cls:
                if slot.value == normalized:
                    return slot
        raise InvalidSlotError(value, [slot.value for slot in cls])

    @property
    def other(self) -> "DeploymentSlot":
        """Return the opposite slot."""
        return DeploymentSlot.GREEN if self is DeploymentSlot.BLUE else DeploymentSlot.BLUE


class SwitchAction(Enum):
    """Kinds of routing changes recorded in switch history."""

    SWITCH = "switch"
    ROLLBACK = "rollback"
