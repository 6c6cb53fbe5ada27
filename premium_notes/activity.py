"""
Append-only activity trail.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from .connectivity import ConnectivityMonitor, requires_online
from .exceptions import RemoteError
from .logging import get_logger
from .remote import RemoteClient, parse_row
from .schemas import ActivityAction, ActivityLogEntry, RowId


logger = get_logger(__name__)

RECENT_LIMIT = 20


class ActivityLog:
    def __init__(
        self,
        remote: RemoteClient,
        connectivity: ConnectivityMonitor,
        user_id: Callable[[], Optional[str]],
    ) -> None:
        self.remote = remote
        self.connectivity = connectivity
        self.user_id = user_id

    def record(self, note_id: RowId, action: ActivityAction, details: str) -> None:
        """
        Append an entry for a mutation that already succeeded.

        The mutation stands even if the entry cannot be written, so a
        failure here is logged rather than raised.
        """
        if not self.connectivity.is_online:
            return
        try:
            self.remote.insert(
                "activity_logs",
                [{"note_id": note_id, "action": action, "details": details, "user_id": self.user_id()}],
            )
        except RemoteError as exc:
            logger.warning("Activity entry not recorded", note_id=note_id, action=action, error=exc.message)

    @requires_online("Logs require internet.")
    def recent(self, limit: int = RECENT_LIMIT) -> List[ActivityLogEntry]:
        filters = {"user_id": self.user_id()} if self.user_id() else None
        rows = self.remote.select(
            "activity_logs",
            filters=filters,
            order=[("created_at", True)],
            limit=limit,
        )
        return [parse_row(ActivityLogEntry, row) for row in rows]


__all__ = ["ActivityLog", "RECENT_LIMIT"]
