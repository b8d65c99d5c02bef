"""
Verify a deployment: function, tables and trigger exist, and one live call works.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.aws import session_from_settings
from backend.config import Settings, get_settings
from backend.errors import StorageError
from backend.kv_store import DynamoKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

COSTS_EVENT = {"path": "/api/costs", "httpMethod": "GET"}


class DeploymentCheckError(RuntimeError):
    pass


def check_function(lambda_client, settings: Settings) -> dict:
    response = lambda_client.get_function(FunctionName=settings.function_name)
    configuration = response.get("Configuration", {})
    logger.info("Function %s exists", settings.function_name)
    logger.info("Runtime: %s", configuration.get("Runtime"))
    logger.info("Last modified: %s", configuration.get("LastModified"))
    return configuration


def check_tables(store: KeyValueStore, settings: Settings) -> dict[str, int]:
    counts = {}
    for table in (settings.users_table, settings.cost_reports_table):
        counts[table] = store.count(table)
        logger.info("Table %s is accessible (%d items)", table, counts[table])
    return counts


def check_rule(events, settings: Settings) -> dict:
    rule = events.describe_rule(Name=settings.cost_report_rule_name)
    logger.info("Rule %s exists", settings.cost_report_rule_name)
    logger.info("Schedule: %s", rule.get("ScheduleExpression"))
    logger.info("State: %s", rule.get("State"))
    return rule


def invoke_function(lambda_client, settings: Settings) -> dict:
    response = lambda_client.invoke(
        FunctionName=settings.function_name,
        Payload=json.dumps(COSTS_EVENT),
    )
    payload = json.loads(response["Payload"].read())
    if response.get("FunctionError"):
        raise DeploymentCheckError(f"Function raised: {payload}")
    if payload.get("statusCode") != 200:
        raise DeploymentCheckError(f"Unexpected response: {payload}")
    logger.info("Function executed successfully: %s", payload.get("body"))
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check a deployed function")
    parser.add_argument(
        "--skip-invoke",
        action="store_true",
        help="Do not perform the live invocation",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    session = session_from_settings(settings)
    lambda_client = session.client("lambda")
    store = DynamoKeyValueStore(
        region=settings.aws_region,
        endpoint=settings.dynamodb_endpoint,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )

    try:
        check_function(lambda_client, settings)
        check_tables(store, settings)
        check_rule(session.client("events"), settings)
        if not args.skip_invoke:
            invoke_function(lambda_client, settings)
    except (ClientError, BotoCoreError, StorageError, DeploymentCheckError) as exc:
        logger.exception("Deployment check failed: %s", exc)
        return 1

    logger.info("All deployment checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
