"""
Daily cost-report collection.

Each run pulls the trailing window from the cost API, stores a snapshot and
returns either the fresh breakdown or the owner's most recent snapshots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.cost_explorer import CostExplorerClient
from backend.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SYSTEM_OWNER = "system"


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


@dataclass
class CostReport:
    timestamp: str
    start_date: str
    end_date: str
    cost_data: list = field(default_factory=list)
    user_id: str = SYSTEM_OWNER

    @property
    def id(self) -> str:
        return f"cost_{self.timestamp}"

    def as_item(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "timestamp": self.timestamp,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "costData": self.cost_data,
        }


@dataclass
class CostReportCollector:
    store: KeyValueStore
    cost_client: CostExplorerClient
    table: str
    user_index: str
    window_days: int = 7
    history_limit: int = 7

    def collect(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> list:
        """
        Fetch and persist a report for the trailing window.

        A new row is written on every call. Without ``user_id`` the fresh
        breakdown is returned; with one, up to ``history_limit`` stored rows for
        that owner, newest first. The row written by this call may not be
        visible yet in the index.
        """
        now = now or datetime.now(timezone.utc)
        end = now.astimezone(timezone.utc).date()
        start = (now - timedelta(days=self.window_days)).astimezone(timezone.utc).date()

        cost_data = self.cost_client.get_daily_costs(start, end)
        report = CostReport(
            timestamp=_iso_timestamp(now),
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            cost_data=cost_data,
            user_id=user_id or SYSTEM_OWNER,
        )
        self.store.put_item(self.table, report.as_item())
        logger.info("Saved cost report %s for %s", report.id, report.user_id)

        if not user_id:
            return cost_data
        return self.list_reports(user_id)

    def list_reports(self, user_id: str) -> list[dict]:
        return self.store.query_index(
            self.table,
            self.user_index,
            "userId",
            user_id,
            newest_first=True,
            limit=self.history_limit,
        )
