from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.config import AppSettings
from app.core.db import Database
from app.main import create_app
from app.models.figures import FigureDefinition
from app.services.registry import FigureRegistry


def make_settings(tmp_path: Path, **overrides) -> AppSettings:
    values = {
        "registry_db_url": f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}",
        "config_dir": str(tmp_path / "config"),
        "storage_dir": str(tmp_path / "storage"),
        "auth_users_file": str(tmp_path / "config" / "auth.json"),
        "use_mock_data": True,
        "enable_tracing": False,
        "openai_api_key": None,
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def settings_factory(tmp_path: Path):
    return lambda **overrides: make_settings(tmp_path, **overrides)


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return make_settings(tmp_path)


@pytest.fixture
def client(settings: AppSettings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def registry(tmp_path: Path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    await database.create_all()
    try:
        yield FigureRegistry(database)
    finally:
        await database.dispose()


@pytest.fixture
def revenue_figure() -> FigureDefinition:
    return FigureDefinition(
        id="revenue",
        name="Revenue",
        description="Total revenue for the period",
        enabled=True,
        order=1,
    )
