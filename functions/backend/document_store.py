"""
Document store access for the ``user`` collection.

Provides the MongoDB collection in production and an in-memory collection that
understands the subset of the driver API the user repository relies on.
"""

from __future__ import annotations

import copy
import math
import re
from typing import Any, Iterator, Optional

from bson import ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from backend.config import Settings

USER_COLLECTION = "user"


def _matches_operators(value: Any, operators: dict) -> bool:
    for op, operand in operators.items():
        if op == "$regex":
            flags = re.IGNORECASE if "i" in operators.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
        elif op == "$options":
            continue
        elif op == "$gte":
            try:
                if value is None or not value >= operand:
                    return False
            except TypeError:
                return False
        else:
            raise ValueError(f"Unsupported query operator {op}")
    return True


def _values_equal(stored: Any, expected: Any) -> bool:
    # NaN equals NaN in Mongo queries.
    if isinstance(stored, float) and isinstance(expected, float):
        if math.isnan(stored) and math.isnan(expected):
            return True
    return stored == expected


def matches(doc: dict, criteria: dict) -> bool:
    """Return True when ``doc`` satisfies a Mongo-style ``criteria`` dict."""
    for key, condition in criteria.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            if not _matches_operators(doc.get(key), condition):
                return False
        elif not _values_equal(doc.get(key), condition):
            # {"field": None} matches both a null and a missing field.
            return False
    return True


class InMemoryCollection:
    """Simple in-memory stand-in for a pymongo collection."""

    def __init__(self):
        self.docs: list[dict] = []

    def find(self, criteria: Optional[dict] = None) -> Iterator[dict]:
        criteria = criteria or {}
        return iter(
            [copy.deepcopy(doc) for doc in self.docs if matches(doc, criteria)]
        )

    def find_one(self, criteria: Optional[dict] = None) -> Optional[dict]:
        return next(self.find(criteria), None)

    def insert_one(self, doc: dict) -> InsertOneResult:
        if "_id" not in doc:
            doc["_id"] = ObjectId()
        self.docs.append(copy.deepcopy(doc))
        return InsertOneResult(doc["_id"], True)

    def update_one(self, criteria: dict, update: dict) -> UpdateResult:
        for doc in self.docs:
            if not matches(doc, criteria):
                continue
            before = copy.deepcopy(doc)
            for op, fields in update.items():
                if op != "$set":
                    raise ValueError(f"Unsupported update operator {op}")
                doc.update(copy.deepcopy(fields))
            modified = 1 if doc != before else 0
            return UpdateResult({"n": 1, "nModified": modified}, True)
        return UpdateResult({"n": 0, "nModified": 0}, True)

    def delete_one(self, criteria: dict) -> DeleteResult:
        for index, doc in enumerate(self.docs):
            if matches(doc, criteria):
                del self.docs[index]
                return DeleteResult({"n": 1}, True)
        return DeleteResult({"n": 0}, True)


def get_user_collection(settings: Settings) -> Collection | InMemoryCollection:
    """Return the ``user`` collection for the configured backend."""
    if settings.use_in_memory_backends or not settings.mongo_url:
        return InMemoryCollection()
    client = MongoClient(settings.mongo_url, tz_aware=True)
    return client[settings.mongo_db_name][USER_COLLECTION]


def ensure_user_indexes(collection) -> str:
    """Create the unique username index. Run at provisioning time, not per request."""
    return collection.create_index([("username", ASCENDING)], unique=True)
