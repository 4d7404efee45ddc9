"""
Slot Coordinator Exceptions

Error types raised by slot switching, rollback, persistence and routing.
Each error carries structured context and the process exit code the
operator CLI reports for it.
"""

from datetime import datetime, timezone
from typing import Any


class SlotCoordinatorError(Exception):
    """Base exception for slot coordinator failures."""

    exit_code = 1

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for structured output."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class InvalidSlotError(SlotCoordinatorError):
    """Raised when an unrecognized slot name is requested."""

    exit_code = 2

    def __init__(self, value: Any, allowed: list[str]):
        super().__init__(
            f"Unknown deployment slot {value!r}; expected one of: {', '.join(allowed)}",
            {"value": str(value), "allowed": allowed},
        )
        self.value = value
        self.allowed = allowed


class NoPriorSlotError(SlotCoordinatorError):
    """Raised when a rollback is attempted before any switch happened."""

    exit_code = 3

    def __init__(self, message: str = "No prior slot recorded; nothing to roll back to"):
        super().__init__(message)


class SlotHealthCheckError(SlotCoordinatorError):
    """Raised when the target slot fails its pre-switch health check."""

    exit_code = 4


class StateStoreError(SlotCoordinatorError):
    """Raised when routing state cannot be loaded or saved."""

    exit_code = 5


class RoutingError(SlotCoordinatorError):
    """Raised when a traffic router cannot apply a routing target."""

    exit_code = 6
