"""
Cost analysis API client (AWS Cost Explorer) and an offline stand-in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from backend.errors import UpstreamError

logger = logging.getLogger(__name__)

COST_METRIC = "UnblendedCost"


class CostExplorerClient(Protocol):
    """Returns the daily cost breakdown for ``[start, end)``."""

    def get_daily_costs(self, start: date, end: date) -> list[dict]:
        ...


@dataclass
class StaticCostExplorerClient:
    """Offline client returning a fixed amount for every day of the window."""

    amount: str = "0"
    unit: str = "USD"

    def get_daily_costs(self, start: date, end: date) -> list[dict]:
        results = []
        day = start
        while day < end:
            results.append(
                {
                    "TimePeriod": {
                        "Start": day.isoformat(),
                        "End": (day + timedelta(days=1)).isoformat(),
                    },
                    "Total": {COST_METRIC: {"Amount": self.amount, "Unit": self.unit}},
                    "Groups": [],
                    "Estimated": True,
                }
            )
            day += timedelta(days=1)
        return results


@dataclass
class AwsCostExplorerClient:
    region: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        self._client = boto3.client(
            "ce",
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def get_daily_costs(self, start: date, end: date) -> list[dict]:
        kwargs: dict = {
            "TimePeriod": {"Start": start.isoformat(), "End": end.isoformat()},
            "Granularity": "DAILY",
            "Metrics": [COST_METRIC],
        }
        results: list[dict] = []
        try:
            while True:
                response = self._client.get_cost_and_usage(**kwargs)
                results.extend(response.get("ResultsByTime", []))
                token = response.get("NextPageToken")
                if not token:
                    break
                kwargs["NextPageToken"] = token
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "Cost Explorer call failed for %s..%s", start, end, exc_info=True
            )
            raise UpstreamError("Cost Explorer request failed") from exc
        return results
