"""
Routing state persistence.

Stores the current routing state and a bounded switch history. The JSON file
store lets separate ``slotctl`` invocations share one view of which slot is
live.
"""

import builtins
import json
import os
import tempfile
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Any

import structlog

from .exceptions import StateStoreError
from .models import RoutingState, SwitchRecord

logger = structlog.get_logger(__name__)


def atomic_write(path: Path, text: str) -> None:
    """Write text to a temp file beside ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class StateStore(ABC):
    """Base class for routing state stores."""

    @abstractmethod
    def load_state(self) -> RoutingState | None:
        """Return the persisted state, or None when nothing was saved yet."""

    @abstractmethod
    def save_state(self, state: RoutingState) -> None:
        """Persist the routing state."""

    @abstractmethod
    def load_history(self) -> builtins.list[SwitchRecord]:
        """Return switch records, oldest first."""

    @abstractmethod
    def append_history(self, record: SwitchRecord, max_entries: int) -> None:
        """Append a switch record, keeping at most ``max_entries``."""

    def record_switch(
        self, state: RoutingState, record: SwitchRecord, max_entries: int
    ) -> None:
        """Persist a new state together with the history entry that produced it."""
        self.save_state(state)
        self.append_history(record, max_entries)


class InMemoryStateStore(StateStore):
    """Process-local state store."""

    def __init__(self):
        self._state: RoutingState | None = None
        self._history: deque = deque()

    def load_state(self) -> RoutingState | None:
        if self._state is None:
            return None
        return RoutingState(**vars(self._state))

    def save_state(self, state: RoutingState) -> None:
        self._state = RoutingState(**vars(state))

    def load_history(self) -> builtins.list[SwitchRecord]:
        return list(self._history)

    def append_history(self, record: SwitchRecord, max_entries: int) -> None:
        self._history.append(record)
        while len(self._history) > max_entries:
            self._history.popleft()


class JsonFileStateStore(StateStore):
    """State store backed by a single JSON document on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load_state(self) -> RoutingState | None:
        payload = self._read()
        state = payload.get("state")
        if not state:
            return None
        if not isinstance(state, dict):
            raise StateStoreError(
                f"State file {self.path} has a malformed \"state\" entry",
                {"path": str(self.path)},
            )
        return RoutingState.from_dict(state)

    def save_state(self, state: RoutingState) -> None:
        payload = self._read()
        payload["state"] = state.to_dict()
        self._write(payload)

    def load_history(self) -> builtins.list[SwitchRecord]:
        payload = self._read()
        return [SwitchRecord.from_dict(item) for item in self._history(payload)]

    def append_history(self, record: SwitchRecord, max_entries: int) -> None:
        payload = self._read()
        history = self._history(payload)
        history.append(record.to_dict())
        payload["history"] = history[-max_entries:]
        self._write(payload)

    def record_switch(
        self, state: RoutingState, record: SwitchRecord, max_entries: int
    ) -> None:
        payload = self._read()
        history = self._history(payload)
        history.append(record.to_dict())
        payload["state"] = state.to_dict()
        payload["history"] = history[-max_entries:]
        self._write(payload)

    def _read(self) -> builtins.dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise StateStoreError(
                f"Cannot read state file {self.path}: {e}", {"path": str(self.path)}
            ) from e

        if not isinstance(payload, dict):
            raise StateStoreError(
                f"State file {self.path} does not contain a JSON object",
                {"path": str(self.path)},
            )
        return payload

    def _history(self, payload: builtins.dict[str, Any]) -> builtins.list[Any]:
        history = payload.get("history", [])
        if not isinstance(history, list):
            raise StateStoreError(
                f"State file {self.path} has a malformed \"history\" entry",
                {"path": str(self.path)},
            )
        return history

    def _write(self, payload: builtins.dict[str, Any]) -> None:
        try:
            atomic_write(self.path, json.dumps(payload, indent=2))
        except OSError as e:
            raise StateStoreError(
                f"Cannot write state file {self.path}: {e}", {"path": str(self.path)}
            ) from e

        logger.debug("state_file_written", path=str(self.path))
