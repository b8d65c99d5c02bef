"""
Key-value store abstraction for DynamoDB and in-memory testing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from backend.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Defines the table operations the handler needs."""

    def put_item(self, table: str, item: dict) -> None:
        ...

    def scan_eq(self, table: str, attribute: str, value: Any) -> list[dict]:
        ...

    def query_index(
        self,
        table: str,
        index: str,
        key_attribute: str,
        key_value: Any,
        *,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def count(self, table: str) -> int:
        ...


@dataclass
class InMemoryKeyValueStore:
    """
    Test double for DynamoDB tables.

    Items with the same primary key replace each other. Index queries return
    items in insertion order, reversed when ``newest_first`` is set.
    """

    key_attributes: dict[str, str] = field(default_factory=dict)
    tables: dict[str, list[dict]] = field(default_factory=dict)

    def put_item(self, table: str, item: dict) -> None:
        items = self.tables.setdefault(table, [])
        key = self.key_attributes.get(table)
        if key is not None:
            items[:] = [existing for existing in items if existing.get(key) != item.get(key)]
        items.append(dict(item))

    def scan_eq(self, table: str, attribute: str, value: Any) -> list[dict]:
        return [
            dict(item)
            for item in self.tables.get(table, [])
            if item.get(attribute) == value
        ]

    def query_index(
        self,
        table: str,
        index: str,
        key_attribute: str,
        key_value: Any,
        *,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        matches = self.scan_eq(table, key_attribute, key_value)
        if newest_first:
            matches.reverse()
        if limit is not None:
            matches = matches[:limit]
        return matches

    def count(self, table: str) -> int:
        return len(self.tables.get(table, []))


@dataclass
class DynamoKeyValueStore:
    """DynamoDB-backed implementation using the boto3 resource API."""

    region: str
    endpoint: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        self._resource = boto3.resource(
            "dynamodb",
            region_name=self.region,
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def _table(self, table: str):
        return self._resource.Table(table)

    def put_item(self, table: str, item: dict) -> None:
        try:
            self._table(table).put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            logger.error("put_item failed on table %s", table, exc_info=True)
            raise StorageError(f"put_item failed on {table}") from exc

    def scan_eq(self, table: str, attribute: str, value: Any) -> list[dict]:
        kwargs: dict = {"FilterExpression": Attr(attribute).eq(value)}
        items: list[dict] = []
        try:
            while True:
                response = self._table(table).scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "scan failed on table %s for %s", table, attribute, exc_info=True
            )
            raise StorageError(f"scan failed on {table}") from exc
        return items

    def query_index(
        self,
        table: str,
        index: str,
        key_attribute: str,
        key_value: Any,
        *,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict]:
        kwargs: dict = {
            "IndexName": index,
            "KeyConditionExpression": Key(key_attribute).eq(key_value),
            "ScanIndexForward": not newest_first,
        }
        if limit is not None:
            kwargs["Limit"] = limit
        try:
            response = self._table(table).query(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "query on %s.%s failed for %s", table, index, key_value, exc_info=True
            )
            raise StorageError(f"query failed on {table}") from exc
        return response.get("Items", [])

    def count(self, table: str) -> int:
        try:
            response = self._table(table).scan(Select="COUNT")
        except (ClientError, BotoCoreError) as exc:
            logger.error("count failed on table %s", table, exc_info=True)
            raise StorageError(f"count failed on {table}") from exc
        return response.get("Count", 0)
