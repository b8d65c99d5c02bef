"""
End-to-end smoke test: trigger the function, then hit the public API and frontend.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import requests
from botocore.exceptions import BotoCoreError, ClientError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.aws import session_from_settings
from backend.config import get_settings
from scripts.check_deployment import DeploymentCheckError, invoke_function

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


def fetch_costs(api_url: str) -> dict:
    response = requests.get(
        f"{api_url.rstrip('/')}/costs", timeout=REQUEST_TIMEOUT_SECONDS
    )
    response.raise_for_status()
    return response.json()


def check_frontend(frontend_url: str) -> bool:
    response = requests.get(frontend_url, timeout=REQUEST_TIMEOUT_SECONDS)
    return response.ok


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="End-to-end deployment test")
    parser.add_argument(
        "--wait-seconds",
        type=float,
        default=5.0,
        help="Seconds to wait after triggering the function",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    if not settings.api_url:
        logger.error("API_URL is not configured")
        return 1

    try:
        invoke_function(session_from_settings(settings).client("lambda"), settings)
        logger.info("Function triggered successfully")
        time.sleep(args.wait_seconds)

        data = fetch_costs(settings.api_url)
        logger.info("API returned data: %s", data)

        if settings.frontend_url:
            if not check_frontend(settings.frontend_url):
                raise DeploymentCheckError("Frontend is not accessible")
            logger.info("Frontend is accessible")
    except (
        ClientError,
        BotoCoreError,
        requests.RequestException,
        DeploymentCheckError,
    ) as exc:
        logger.exception("E2E test failed: %s", exc)
        return 1

    logger.info("E2E test completed successfully")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
