"""
Helpers shared by the operational scripts for talking to AWS.
"""

from __future__ import annotations

import boto3
from botocore.exceptions import ClientError

from backend.config import Settings


def session_from_settings(settings: Settings) -> boto3.session.Session:
    return boto3.session.Session(
        region_name=settings.aws_region,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
    )


def error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def function_arn(settings: Settings) -> str:
    if not settings.aws_account_id:
        raise ValueError("AWS_ACCOUNT_ID is required to build the function ARN")
    return (
        f"arn:aws:lambda:{settings.aws_region}:{settings.aws_account_id}"
        f":function:{settings.function_name}"
    )
