# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# Standard library imports
import json
import unittest
from unittest.mock import MagicMock, patch

# Third-party imports
from pymongo.errors import ServerSelectionTimeoutError

# Local application imports
import main
from backend.config import Settings
from backend.dependencies import build_services
from backend.router import ApiRouter


def in_memory_settings() -> Settings:
    return Settings(
        use_in_memory_backends=True,
        bcrypt_rounds=4,
        jwt_secret="test-secret",
    )


class TestMainHandler(unittest.TestCase):

    def setUp(self):
        main.get_router.cache_clear()
        self.addCleanup(main.get_router.cache_clear)

    @patch("main.get_settings")
    def test_router_is_built_once_per_process(self, mock_get_settings):
        mock_get_settings.return_value = in_memory_settings()

        first = main.get_router()
        second = main.get_router()

        self.assertIs(first, second)
        mock_get_settings.assert_called_once()

    @patch("main.get_router")
    def test_handler_delegates_to_router(self, mock_get_router):
        # Arrange: a router that echoes a canned envelope.
        envelope = {"statusCode": 200, "headers": {}, "body": "{}"}
        mock_get_router.return_value = MagicMock(handle=MagicMock(return_value=envelope))
        event = {"path": "/api/health", "httpMethod": "GET"}

        # Act
        result = main.handler(event, None)

        # Assert
        self.assertEqual(result, envelope)
        mock_get_router.return_value.handle.assert_called_once_with(event)

    @patch("main.get_router")
    def test_signup_login_through_handler(self, mock_get_router):
        mock_get_router.return_value = ApiRouter(build_services(in_memory_settings()))
        credentials = {"username": "alice", "password": "wonderland"}

        signup = main.handler(
            {
                "path": "/api/auth/signup",
                "httpMethod": "POST",
                "body": json.dumps({**credentials, "fullname": "Alice L"}),
            }
        )
        login = main.handler(
            {
                "path": "/api/auth/login",
                "httpMethod": "POST",
                "body": json.dumps(credentials),
            }
        )

        self.assertEqual(signup["statusCode"], 200)
        self.assertEqual(login["statusCode"], 200)
        self.assertEqual(
            json.loads(login["body"])["user"], json.loads(signup["body"])["user"]
        )

    @patch("main.get_settings")
    def test_health_does_not_wait_on_document_store(self, mock_get_settings):
        # Nothing listens on port 1, so any blocking Mongo call would fail.
        mock_get_settings.return_value = Settings(
            use_in_memory_backends=False,
            mongo_url="mongodb://127.0.0.1:1/?serverSelectionTimeoutMS=300",
        )

        result = main.handler({"path": "/api/health", "method": "GET"})

        self.assertEqual(result["statusCode"], 200)
        self.assertEqual(json.loads(result["body"])["status"], "healthy")

    @patch("main.build_services")
    @patch("main.get_settings")
    def test_router_build_failure_returns_server_error(
        self, mock_get_settings, mock_build_services
    ):
        mock_get_settings.return_value = in_memory_settings()
        mock_build_services.side_effect = ServerSelectionTimeoutError("unreachable")

        with self.assertLogs(level="ERROR"):
            result = main.handler({"path": "/api/health", "method": "GET"})

        self.assertEqual(result["statusCode"], 500)
        self.assertEqual(json.loads(result["body"]), {"error": "Internal Server Error"})
        self.assertEqual(
            result["headers"]["Access-Control-Allow-Origin"],
            in_memory_settings().cors_allowed_origin,
        )
        self.assertEqual(result["headers"]["Access-Control-Allow-Credentials"], "true")

    @patch("main.get_router")
    def test_unmatched_event_is_not_found(self, mock_get_router):
        mock_get_router.return_value = ApiRouter(build_services(in_memory_settings()))

        result = main.handler({"path": "/api/nothing", "httpMethod": "DELETE"})

        self.assertEqual(result["statusCode"], 404)
        self.assertIn("Access-Control-Allow-Origin", result["headers"])


if __name__ == "__main__":
    unittest.main()
