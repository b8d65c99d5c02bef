"""
CRUD operations for the ``user`` document collection.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional, Type, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from dacite import Config, DaciteError, from_dict
from pymongo.errors import PyMongoError

from backend.errors import NotFoundError, StorageError, ValidationError
from shared.api import NewUserFields, UpdatableUserFields, UserFilter
from shared.json_utils import convert_keys

logger = logging.getLogger(__name__)

# Bound on compare-and-set retries when the counter is raced.
MAX_COUNT_UPDATE_ATTEMPTS = 5

T = TypeVar("T")


def parse_fields(data_class: Type[T], data: dict) -> T:
    """
    Build one of the typed input records from a camelCase document.

    Keys that are not fields of ``data_class`` are dropped.
    """
    snake = convert_keys(dict(data), "camel_to_snake")
    if "_id" in snake:
        snake.setdefault("id", str(snake.pop("_id")))
    try:
        return from_dict(data_class=data_class, data=snake, config=Config(check_types=False))
    except DaciteError as exc:
        raise ValidationError(str(exc)) from exc


def build_criteria(user_filter: UserFilter) -> dict:
    criteria: dict = {}
    if user_filter.txt:
        txt_criteria = {"$regex": re.escape(user_filter.txt), "$options": "i"}
        criteria["$or"] = [
            {"username": txt_criteria},
            {"fullname": txt_criteria},
        ]
    if user_filter.min_balance is not None:
        criteria["score"] = {"$gte": user_filter.min_balance}
    return criteria


def _to_object_id(user_id: Any) -> ObjectId:
    if isinstance(user_id, ObjectId):
        return user_id
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError) as exc:
        raise ValidationError(f"Invalid user id: {user_id}") from exc


def _strip_password(user: dict) -> dict:
    user.pop("password", None)
    return user


def coerce_count(value: Any) -> int | float:
    """Read a stored counter as a number; anything non-numeric counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() else number


class UserRepository:
    """Repository over the ``user`` collection (pymongo or in-memory)."""

    def __init__(self, collection):
        self.collection = collection

    def query(self, user_filter: UserFilter | dict | None = None) -> list[dict]:
        if user_filter is None:
            user_filter = UserFilter()
        elif isinstance(user_filter, dict):
            user_filter = parse_fields(UserFilter, user_filter)
        criteria = build_criteria(user_filter)
        try:
            users = list(self.collection.find(criteria))
        except PyMongoError as exc:
            logger.error("cannot find users: %s", exc)
            raise StorageError("cannot find users") from exc
        for user in users:
            _strip_password(user)
            user["createdAt"] = ObjectId(user["_id"]).generation_time
        return users

    def get_by_id(self, user_id: str) -> dict:
        object_id = _to_object_id(user_id)
        try:
            user = self.collection.find_one({"_id": object_id})
        except PyMongoError as exc:
            logger.error("while finding user by id: %s: %s", user_id, exc)
            raise StorageError(f"cannot find user {user_id}") from exc
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return _strip_password(user)

    def get_by_username(self, username: str) -> Optional[dict]:
        """Return the full record, password hash included. Internal use only."""
        try:
            return self.collection.find_one({"username": username})
        except PyMongoError as exc:
            logger.error("while finding user by username: %s: %s", username, exc)
            raise StorageError(f"cannot find user {username}") from exc

    def remove(self, user_id: str) -> None:
        object_id = _to_object_id(user_id)
        try:
            self.collection.delete_one({"_id": object_id})
        except PyMongoError as exc:
            logger.error("cannot remove user %s: %s", user_id, exc)
            raise StorageError(f"cannot remove user {user_id}") from exc

    def update(self, user: UpdatableUserFields | dict) -> dict:
        fields = parse_fields(UpdatableUserFields, user) if isinstance(user, dict) else user
        object_id = _to_object_id(fields.id)
        user_to_save = {
            "fullname": fields.fullname,
            "username": fields.username,
            "password": fields.password,
            "imgUrl": fields.img_url,
            "count": fields.count,
        }
        if fields.is_owner is not None:
            user_to_save["isOwner"] = fields.is_owner
        try:
            self.collection.update_one({"_id": object_id}, {"$set": user_to_save})
        except PyMongoError as exc:
            logger.error("cannot update user %s: %s", fields.id, exc)
            raise StorageError(f"cannot update user {fields.id}") from exc
        saved = {"_id": object_id, **user_to_save}
        return _strip_password(saved)

    def add(self, user: NewUserFields | dict) -> dict:
        fields = parse_fields(NewUserFields, user) if isinstance(user, dict) else user
        user_to_add = {
            "username": fields.username,
            "password": fields.password,
            "fullname": fields.fullname,
            "imgUrl": fields.img_url,
            "count": 0,
        }
        if fields.is_owner is not None:
            user_to_add["isOwner"] = fields.is_owner
        try:
            self.collection.insert_one(user_to_add)
        except PyMongoError as exc:
            logger.error("cannot add user %s: %s", fields.username, exc)
            raise StorageError(f"cannot add user {fields.username}") from exc
        return _strip_password(user_to_add)

    def update_user_count(self, user_id: str) -> dict:
        """
        Increment the user's counter by exactly one.

        The write only applies if the counter still holds the value that was
        read, so concurrent increments retry instead of overwriting each other.
        """
        object_id = _to_object_id(user_id)
        try:
            for _ in range(MAX_COUNT_UPDATE_ATTEMPTS):
                user = self.collection.find_one({"_id": object_id})
                if user is None:
                    raise NotFoundError(f"User {user_id} not found")
                observed = user.get("count")
                new_count = coerce_count(observed) + 1
                result = self.collection.update_one(
                    {"_id": object_id, "count": observed},
                    {"$set": {"count": new_count}},
                )
                if result.matched_count:
                    user["count"] = new_count
                    return _strip_password(user)
                logger.info("count for user %s changed concurrently, retrying", user_id)
        except PyMongoError as exc:
            logger.error("Failed to update user count for user %s: %s", user_id, exc)
            raise StorageError(f"cannot update count for user {user_id}") from exc
        logger.error("Gave up updating count for user %s", user_id)
        raise StorageError(f"cannot update count for user {user_id}")
