"""
Dependency wiring for the handler and the local server.

Clients are built once by `build_services` and passed down explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend.config import Settings
from backend.cost_explorer import (
    AwsCostExplorerClient,
    CostExplorerClient,
    StaticCostExplorerClient,
)
from backend.cost_reports import CostReportCollector
from backend.credentials import CredentialAdapter
from backend.document_store import get_user_collection
from backend.kv_store import DynamoKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from backend.user_repository import UserRepository


@dataclass
class Services:
    settings: Settings
    store: KeyValueStore
    credentials: CredentialAdapter
    cost_reports: CostReportCollector
    users: UserRepository


def get_kv_store(settings: Settings) -> KeyValueStore:
    if settings.use_in_memory_backends:
        return InMemoryKeyValueStore(key_attributes=settings.table_keys())
    return DynamoKeyValueStore(
        region=settings.aws_region,
        endpoint=settings.dynamodb_endpoint,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )


def get_cost_client(settings: Settings) -> CostExplorerClient:
    if settings.use_in_memory_backends:
        return StaticCostExplorerClient()
    return AwsCostExplorerClient(
        region=settings.aws_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )


def build_services(
    settings: Settings,
    *,
    store: KeyValueStore | None = None,
    cost_client: CostExplorerClient | None = None,
    user_collection=None,
) -> Services:
    """Construct every collaborator; explicit arguments override the defaults."""
    store = store if store is not None else get_kv_store(settings)
    cost_client = cost_client if cost_client is not None else get_cost_client(settings)
    if user_collection is None:
        user_collection = get_user_collection(settings)
    return Services(
        settings=settings,
        store=store,
        credentials=CredentialAdapter.from_settings(settings),
        cost_reports=CostReportCollector(
            store=store,
            cost_client=cost_client,
            table=settings.cost_reports_table,
            user_index=settings.cost_reports_user_index,
            window_days=settings.cost_report_window_days,
            history_limit=settings.cost_report_history_limit,
        ),
        users=UserRepository(user_collection),
    )
