"""Replicated state store: the snapshot every observer reads.

Writes are last-writer-wins on top-level fields. The draft session is the
only writer.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """A snapshot write did not reach the store."""


class StateStore:
    def get_snapshot(self) -> dict[str, Any]:
        raise NotImplementedError

    def commit(self, fields: dict[str, Any]) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self.commit_count = 0

    def get_snapshot(self) -> dict[str, Any]:
        return json.loads(json.dumps(self._data))

    def commit(self, fields: dict[str, Any]) -> None:
        self._data.update(json.loads(json.dumps(fields, default=str)))
        self.commit_count += 1

    def clear(self) -> None:
        self._data = {}


class JsonFileStateStore(StateStore):
    """Snapshot kept in a JSON file, e.g. backend/data/draft_state/current.json."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get_snapshot(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r") as f:
            return json.load(f)

    def commit(self, fields: dict[str, Any]) -> None:
        try:
            data = self.get_snapshot()
            data.update(fields)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except (OSError, ValueError) as e:
            raise SyncError(f"Could not write {self.path}: {e}") from e

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SyncError(f"Could not remove {self.path}: {e}") from e
