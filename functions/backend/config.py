"""
Configuration and settings for the API backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the cloud function and its scripts."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # AWS
    aws_region: str = Field(default="eu-west-1")
    aws_account_id: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    dynamodb_endpoint: Optional[str] = Field(default=None)

    # Credentials
    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_minutes: int = Field(default=24 * 60)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # CORS
    cors_allowed_origin: str = Field(
        default="http://backend-dydb-app-2025.s3-website-eu-west-1.amazonaws.com"
    )

    # Document store (MongoDB)
    mongo_url: Optional[str] = Field(default=None)
    mongo_db_name: str = Field(default="app_db")

    # Key-value tables (DynamoDB)
    users_table: str = Field(default="users")
    customers_table: str = Field(default="customers")
    cost_reports_table: str = Field(default="cost_reports")
    cost_reports_user_index: str = Field(default="UserReportsIndex")

    # Cost reports
    cost_report_window_days: int = Field(default=7, ge=1)
    cost_report_history_limit: int = Field(default=7, ge=1)

    # Deployment
    function_name: str = Field(default="CustomerAPI")
    cost_report_rule_name: str = Field(default="DailyCostReportTrigger")
    cost_report_schedule: str = Field(default="cron(0 2 * * ? *)")
    api_url: Optional[str] = Field(default=None)
    frontend_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    def table_keys(self) -> dict[str, str]:
        """Primary key attribute per key-value table."""
        return {
            self.users_table: "userId",
            self.customers_table: "customerId",
            self.cost_reports_table: "id",
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
