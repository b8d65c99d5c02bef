import unittest
from unittest.mock import MagicMock, patch

from pymongo import ASCENDING

from backend.config import Settings
from backend.document_store import (
    InMemoryCollection,
    ensure_user_indexes,
    get_user_collection,
    matches,
)


class MatchesTests(unittest.TestCase):
    def test_nan_matches_nan(self):
        nan = float("nan")
        self.assertTrue(matches({"count": nan}, {"count": float("nan")}))
        self.assertFalse(matches({"count": nan}, {"count": 0}))

    def test_none_matches_missing_field(self):
        self.assertTrue(matches({}, {"count": None}))

    def test_unsupported_operators_are_rejected(self):
        with self.assertRaisesRegex(ValueError, r"\$lt"):
            matches({"score": 1}, {"score": {"$lt": 5}})

        collection = InMemoryCollection()
        result = collection.insert_one({"count": 1})
        with self.assertRaisesRegex(ValueError, r"\$inc"):
            collection.update_one({"_id": result.inserted_id}, {"$inc": {"count": 1}})


class GetUserCollectionTests(unittest.TestCase):
    def test_in_memory_without_url(self):
        collection = get_user_collection(Settings(mongo_url=None))
        self.assertIsInstance(collection, InMemoryCollection)

    @patch("backend.document_store.MongoClient")
    def test_does_not_touch_the_server(self, mock_client):
        settings = Settings(mongo_url="mongodb://db.example.test:27017", mongo_db_name="app")

        collection = get_user_collection(settings)

        mock_client.assert_called_once_with("mongodb://db.example.test:27017", tz_aware=True)
        collection.create_index.assert_not_called()

    def test_ensure_user_indexes(self):
        collection = MagicMock()
        collection.create_index.return_value = "username_1"

        self.assertEqual(ensure_user_indexes(collection), "username_1")
        collection.create_index.assert_called_once_with(
            [("username", ASCENDING)], unique=True
        )


if __name__ == "__main__":
    unittest.main()
