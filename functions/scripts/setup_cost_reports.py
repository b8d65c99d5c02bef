"""
Provision the cost-report table, the daily trigger that invokes the function and
the unique username index on the user collection.

Safe to re-run: resources that already exist are left alone.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError
from pymongo.errors import PyMongoError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.aws import error_code, function_arn, session_from_settings
from backend.config import Settings, get_settings
from backend.document_store import ensure_user_indexes, get_user_collection

logger = logging.getLogger(__name__)

TRIGGER_TARGET_ID = "CostReportLambda"
THROUGHPUT = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}


def create_cost_reports_table(dynamodb, settings: Settings) -> bool:
    """Create the table and its per-user index. Returns False if it existed."""
    try:
        dynamodb.create_table(
            TableName=settings.cost_reports_table,
            AttributeDefinitions=[
                {"AttributeName": "id", "AttributeType": "S"},
                {"AttributeName": "userId", "AttributeType": "S"},
                {"AttributeName": "timestamp", "AttributeType": "S"},
            ],
            KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": settings.cost_reports_user_index,
                    "KeySchema": [
                        {"AttributeName": "userId", "KeyType": "HASH"},
                        {"AttributeName": "timestamp", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                    "ProvisionedThroughput": THROUGHPUT,
                }
            ],
            ProvisionedThroughput=THROUGHPUT,
        )
    except ClientError as exc:
        if error_code(exc) == "ResourceInUseException":
            logger.info(
                "Table %s already exists, skipping creation",
                settings.cost_reports_table,
            )
            return False
        raise
    logger.info("Created table %s", settings.cost_reports_table)
    return True


def create_daily_trigger(events, lambda_client, settings: Settings) -> str:
    """Create (or update) the schedule rule and point it at the function."""
    rule = events.put_rule(
        Name=settings.cost_report_rule_name,
        ScheduleExpression=settings.cost_report_schedule,
        State="ENABLED",
        Description="Triggers the function to collect daily cost reports",
    )
    events.put_targets(
        Rule=settings.cost_report_rule_name,
        Targets=[{"Id": TRIGGER_TARGET_ID, "Arn": function_arn(settings)}],
    )
    try:
        lambda_client.add_permission(
            FunctionName=settings.function_name,
            StatementId=f"{settings.cost_report_rule_name}-invoke",
            Action="lambda:InvokeFunction",
            Principal="events.amazonaws.com",
            SourceArn=rule["RuleArn"],
        )
    except ClientError as exc:
        if error_code(exc) != "ResourceConflictException":
            raise
        logger.info("Invoke permission for %s already present", settings.function_name)
    logger.info(
        "Rule %s scheduled at %s",
        settings.cost_report_rule_name,
        settings.cost_report_schedule,
    )
    return rule["RuleArn"]


def create_user_indexes(settings: Settings) -> bool:
    """Index the Mongo user collection. Returns False when no Mongo URL is set."""
    if not settings.mongo_url or settings.use_in_memory_backends:
        logger.info("No document store configured, skipping user indexes")
        return False
    name = ensure_user_indexes(get_user_collection(settings))
    logger.info("Ensured index %s on the user collection", name)
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Provision cost report resources")
    parser.add_argument(
        "--skip-trigger",
        action="store_true",
        help="Only create the table and indexes",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    logger.info("Region: %s", settings.aws_region)
    logger.info("Account: %s", settings.aws_account_id or "missing")
    logger.info(
        "Access key: %s", "present" if settings.aws_access_key_id else "missing"
    )

    session = session_from_settings(settings)
    try:
        create_cost_reports_table(session.client("dynamodb"), settings)
        create_user_indexes(settings)
        if not args.skip_trigger:
            create_daily_trigger(
                session.client("events"), session.client("lambda"), settings
            )
    except (ClientError, BotoCoreError, PyMongoError, ValueError) as exc:
        logger.exception("Setup failed: %s", exc)
        return 1

    logger.info("Setup completed successfully")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
