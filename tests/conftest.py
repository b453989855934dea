"""Pytest configuration and shared fixtures."""

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ORACLE_ENABLED", "false")
os.environ.setdefault("ORACLE_API_KEY", "")
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="paper-review-tests-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from paper_review.core.database import DatabaseClient, build_engine, build_session_maker
from paper_review.core.oracle_client import AnalysisOracle
from paper_review.services.artifact_store import ArtifactStore
from paper_review.services.storage_service import LocalStorageService


@pytest_asyncio.fixture
async def store():
    """Artifact Store backed by a fresh in-memory SQLite database.

    Returns:
        ArtifactStore: Store with all tables created
    """
    engine = build_engine("sqlite+aiosqlite:///:memory:", echo=False)
    client = DatabaseClient(engine)
    await client.connect()
    await client.create_tables()
    yield ArtifactStore(build_session_maker(engine))
    await client.disconnect()


@pytest.fixture
def storage(tmp_path) -> LocalStorageService:
    """Local file storage rooted in a per-test directory."""
    return LocalStorageService(root=tmp_path)


@pytest.fixture
def mock_oracle() -> AsyncMock:
    """Oracle double whose ``request_json`` is an AsyncMock."""
    oracle = AsyncMock(spec=AnalysisOracle)
    return oracle
