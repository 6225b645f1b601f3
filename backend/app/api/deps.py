"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, Request

from app.core.config import AppSettings
from app.core.errors import AuthenticationError
from app.services.adapters import DirectUploadExtractor, WorkspaceChatAdapter
from app.services.config_store import ConfigStore
from app.services.container import AppServices
from app.services.questions import QuestionAnalyzer
from app.services.registry import FigureRegistry
from app.services.sessions import SESSION_COOKIE, SessionStore
from app.services.storage import DocumentStore
from app.services.workspace_client import WorkspaceClient


def get_services(request: Request) -> AppServices:
    """Return the service container created by the lifespan hook."""

    return request.app.state.services


def get_app_settings(services: AppServices = Depends(get_services)) -> AppSettings:
    """Expose application settings as a dependency."""

    return services.settings


def get_registry(services: AppServices = Depends(get_services)) -> FigureRegistry:
    return services.registry


def get_workspace_client(services: AppServices = Depends(get_services)) -> WorkspaceClient:
    return services.workspace_client


def get_document_store(services: AppServices = Depends(get_services)) -> DocumentStore:
    return services.document_store


def get_config_store(services: AppServices = Depends(get_services)) -> ConfigStore:
    return services.config_store


def get_session_store(services: AppServices = Depends(get_services)) -> SessionStore:
    return services.session_store


def get_workspace_adapter(client: WorkspaceClient = Depends(get_workspace_client)) -> WorkspaceChatAdapter:
    return WorkspaceChatAdapter(client)


def get_direct_upload_extractor(settings: AppSettings = Depends(get_app_settings)) -> DirectUploadExtractor:
    """Build the OpenAI extractor; fails with a configuration error when no key is set."""

    return DirectUploadExtractor.from_settings(settings)


def get_question_analyzer(
    client: WorkspaceClient = Depends(get_workspace_client),
    store: ConfigStore = Depends(get_config_store),
) -> QuestionAnalyzer:
    return QuestionAnalyzer(client, store)


def require_session(
    request: Request,
    settings: AppSettings = Depends(get_app_settings),
    sessions: SessionStore = Depends(get_session_store),
) -> str | None:
    """Reject requests without a live session cookie when authentication is enabled."""

    if not settings.auth_enabled:
        return None

    username = sessions.validate(request.cookies.get(SESSION_COOKIE))
    if username is None:
        raise AuthenticationError("Authentication required")
    return username
