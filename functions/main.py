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


# Cloud function entry point for the API backend.
#
# Deployed as an AWS Lambda function; the handler must be `main.handler`.

# Standard library imports
import logging
from functools import lru_cache

# Third-party imports
from pydantic import ValidationError

# Local application imports
from backend.config import Settings, get_settings
from backend.dependencies import build_services
from backend.router import ApiRouter, server_error

logger = logging.getLogger()
logger.setLevel(logging.INFO)


@lru_cache(maxsize=1)
def get_router() -> ApiRouter:
    """
    Builds the router and its clients once per process.

    Warm invocations of the same Lambda container reuse the clients.
    """
    settings = get_settings()
    return ApiRouter(build_services(settings))


def handler(event: dict, context=None) -> dict:
    """
    Handles one API Gateway proxy event or scheduled trigger.

    Args:
        event (dict): `{path, method | httpMethod, body, queryStringParameters}`,
            or an EventBridge scheduled event.
        context: The Lambda context object (unused).

    Returns:
        A dict with `statusCode`, `headers` and a JSON string `body`.
    """
    try:
        router = get_router()
    except Exception:
        logger.exception("Failed to build the API router")
        return server_error(_allowed_origin())
    return router.handle(event)


def _allowed_origin() -> str:
    try:
        return get_settings().cors_allowed_origin
    except ValidationError:
        return Settings.model_fields["cors_allowed_origin"].default
