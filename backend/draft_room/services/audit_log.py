"""Audit trail of draft transitions as before/after field diffs."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger(__name__)


def calculate_changes(before: dict[str, Any], after: dict[str, Any]) -> list[dict]:
    """List top-level keys whose values differ as ``{key, prev, new}``."""
    changes = []
    for key in sorted(set(before) | set(after)):
        prev = before.get(key)
        new = after.get(key)
        if prev != new:
            changes.append({"key": key, "prev": prev, "new": new})
    return changes


class AuditLog:
    def __init__(self, room_id: str, max_entries: int = 500) -> None:
        self.room_id = room_id
        self._entries: deque = deque(maxlen=max_entries)

    def record(
        self,
        action: str,
        before: dict[str, Any],
        after: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[dict]:
        """Store a diff entry. Returns None when nothing changed or recording failed.

        Audit failures never reach the caller.
        """
        try:
            changes = calculate_changes(before, after)
            if not changes:
                return None
            entry = {
                "timestamp": datetime.now().isoformat(),
                "room_id": self.room_id,
                "action": action,
                "changes": changes,
                "metadata": dict(metadata or {}),
            }
            self._entries.append(entry)
            logger.info(f"[{self.room_id}] {action}: {', '.join(c['key'] for c in changes)}")
            return entry
        except Exception as e:
            logger.warning(f"Audit entry for '{action}' dropped: {e}")
            return None

    def recent(self, n: int = 10) -> list[dict]:
        return list(reversed(self._entries))[:n]

    def clear(self) -> None:
        self._entries.clear()
