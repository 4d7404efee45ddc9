"""
Marty Slots

Blue/green deployment slot coordinator: tracks which slot receives live
traffic, switches it, and rolls it back.
"""

__version__ = "1.0.0"
__author__ = "Marty Framework Team"

from .coordinator import SlotCoordinator
from .enums import DeploymentSlot, SwitchAction
from .exceptions import (
    InvalidSlotError,
    NoPriorSlotError,
    RoutingError,
    SlotCoordinatorError,
    SlotHealthCheckError,
    StateStoreError,
)
from .models import RoutingState, SwitchRecord
from .store import InMemoryStateStore, JsonFileStateStore, StateStore

__all__ = [
    "__version__",
    "SlotCoordinator",
    "DeploymentSlot",
    "SwitchAction",
    "RoutingState",
    "SwitchRecord",
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
    # Errors
    "SlotCoordinatorError",
    "InvalidSlotError",
    "NoPriorSlotError",
    "SlotHealthCheckError",
    "StateStoreError",
    "RoutingError",
]
