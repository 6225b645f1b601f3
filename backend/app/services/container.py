"""Per-application service container built at startup."""

from __future__ import annotations

from dataclasses import dataclass

from app.core.config import AppSettings
from app.core.db import Database, resolve_repo_path
from app.core.logging import get_logger
from app.services.config_store import ConfigStore
from app.services.registry import FigureRegistry
from app.services.sessions import SessionStore, load_users
from app.services.storage import DocumentStore
from app.services.workspace_client import WorkspaceClient, build_workspace_client

logger = get_logger(__name__)


@dataclass(slots=True)
class AppServices:
    """Container for the long-lived components shared by request handlers."""

    settings: AppSettings
    database: Database
    registry: FigureRegistry
    workspace_client: WorkspaceClient
    document_store: DocumentStore
    config_store: ConfigStore
    session_store: SessionStore


async def build_services(settings: AppSettings) -> AppServices:
    database = Database(settings.registry_db_url)
    await database.create_all()

    users = load_users(resolve_repo_path(settings.auth_users_file)) if settings.auth_enabled else {}

    services = AppServices(
        settings=settings,
        database=database,
        registry=FigureRegistry(database),
        workspace_client=build_workspace_client(settings),
        document_store=DocumentStore(resolve_repo_path(settings.storage_dir)),
        config_store=ConfigStore(resolve_repo_path(settings.config_dir)),
        session_store=SessionStore(users, ttl_seconds=settings.session_ttl_seconds),
    )
    logger.info(
        "services.ready",
        registry_db=database.url,
        mock_workspace=settings.use_mock_data,
        auth_enabled=settings.auth_enabled,
    )
    return services


async def close_services(services: AppServices) -> None:
    services.session_store.clear()
    services.workspace_client.close()
    await services.database.dispose()
