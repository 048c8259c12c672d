"""Shared pytest fixtures."""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Settings require a secret key; set one before anything reads them
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import scenes.db.models  # noqa: E402,F401 - register all models on Base
from scenes.config import get_settings  # noqa: E402
from scenes.db.base import Base  # noqa: E402
from scenes.db.services.display_mode_service import seed_display_modes  # noqa: E402
from scenes.lib.storage import LocalAssetStore  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start each test from a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'scenes.db'}"


@pytest.fixture
async def engine(db_url):
    engine = create_async_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    """A session on a fresh database with the display-mode vocabularies seeded."""
    async with session_maker() as session:
        await seed_display_modes(session)
        yield session


@pytest.fixture
def store(tmp_path):
    return LocalAssetStore(tmp_path / "assets")


@pytest.fixture
def make_file(tmp_path):
    """Factory that writes a source file and returns its path."""
    source_dir = tmp_path / "source"

    def _make(name: str = "photo.jpg", content: bytes = b"image bytes") -> Path:
        source_dir.mkdir(exist_ok=True)
        path = source_dir / name
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def count_rows(db_session):
    """Async helper returning the number of rows of a model."""

    async def _count(model) -> int:
        return await db_session.scalar(select(func.count()).select_from(model))

    return _count


@pytest.fixture
def temp_app_yaml(tmp_path):
    """Create a temporary app.yaml file for testing."""
    config_path = tmp_path / "app.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def mock_connection_factory():
    """Factory fixture that returns mock connections with a session in scope."""

    def _make(session=None):
        connection = MagicMock()
        connection.scope = {"session": session} if session is not None else {}
        return connection

    return _make
