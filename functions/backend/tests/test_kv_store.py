import unittest
from unittest.mock import patch

from botocore.exceptions import ClientError

from backend.errors import StorageError
from backend.kv_store import DynamoKeyValueStore, InMemoryKeyValueStore


class InMemoryKeyValueStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore(key_attributes={"users": "userId"})

    def test_put_replaces_items_with_same_key(self):
        self.store.put_item("users", {"userId": "1", "username": "alice"})
        self.store.put_item("users", {"userId": "1", "username": "alice2"})
        self.store.put_item("users", {"userId": "2", "username": "bob"})
        self.assertEqual(self.store.count("users"), 2)
        self.assertEqual(
            self.store.scan_eq("users", "username", "alice2"),
            [{"userId": "1", "username": "alice2"}],
        )

    def test_tables_without_key_append(self):
        self.store.put_item("events", {"a": 1})
        self.store.put_item("events", {"a": 1})
        self.assertEqual(self.store.count("events"), 2)
        self.assertEqual(self.store.count("missing"), 0)

    def test_query_index_newest_first_with_limit(self):
        for i in range(5):
            self.store.put_item("reports", {"userId": "u1", "n": i})
        self.store.put_item("reports", {"userId": "u2", "n": 99})

        rows = self.store.query_index("reports", "idx", "userId", "u1", limit=3)
        self.assertEqual([row["n"] for row in rows], [4, 3, 2])

        oldest_first = self.store.query_index(
            "reports", "idx", "userId", "u1", newest_first=False
        )
        self.assertEqual([row["n"] for row in oldest_first], [0, 1, 2, 3, 4])

    def test_returned_items_are_copies(self):
        self.store.put_item("users", {"userId": "1", "username": "alice"})
        self.store.scan_eq("users", "userId", "1")[0]["username"] = "mallory"
        self.assertEqual(self.store.scan_eq("users", "userId", "1")[0]["username"], "alice")


class DynamoKeyValueStoreTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("backend.kv_store.boto3")
        self.mock_boto3 = patcher.start()
        self.addCleanup(patcher.stop)
        self.table = self.mock_boto3.resource.return_value.Table.return_value
        self.store = DynamoKeyValueStore(region="eu-west-1")

    def test_resource_uses_region(self):
        self.mock_boto3.resource.assert_called_once()
        self.assertEqual(
            self.mock_boto3.resource.call_args.kwargs["region_name"], "eu-west-1"
        )

    def test_put_item(self):
        self.store.put_item("users", {"userId": "1"})
        self.mock_boto3.resource.return_value.Table.assert_called_with("users")
        self.table.put_item.assert_called_once_with(Item={"userId": "1"})

    def test_scan_follows_pagination(self):
        self.table.scan.side_effect = [
            {"Items": [{"userId": "1"}], "LastEvaluatedKey": {"userId": "1"}},
            {"Items": [{"userId": "2"}]},
        ]
        items = self.store.scan_eq("users", "username", "alice")
        self.assertEqual(items, [{"userId": "1"}, {"userId": "2"}])
        second_call = self.table.scan.call_args_list[1].kwargs
        self.assertEqual(second_call["ExclusiveStartKey"], {"userId": "1"})
        self.assertNotIn("ExclusiveStartKey", self.table.scan.call_args_list[0].kwargs)

    def test_query_index(self):
        self.table.query.return_value = {"Items": [{"id": "cost_1"}]}
        items = self.store.query_index(
            "cost_reports", "UserReportsIndex", "userId", "u1", limit=7
        )
        self.assertEqual(items, [{"id": "cost_1"}])
        kwargs = self.table.query.call_args.kwargs
        self.assertEqual(kwargs["IndexName"], "UserReportsIndex")
        self.assertFalse(kwargs["ScanIndexForward"])
        self.assertEqual(kwargs["Limit"], 7)

    def test_count(self):
        self.table.scan.return_value = {"Count": 3}
        self.assertEqual(self.store.count("users"), 3)
        self.table.scan.assert_called_once_with(Select="COUNT")

    def test_client_errors_become_storage_errors(self):
        self.table.put_item.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}},
            "PutItem",
        )
        with self.assertLogs("backend.kv_store", level="ERROR"):
            with self.assertRaises(StorageError):
                self.store.put_item("users", {"userId": "1"})


if __name__ == "__main__":
    unittest.main()
