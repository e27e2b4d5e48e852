"""
Fabtrack Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: Mock AsyncSession for service unit tests
    ├── sample_form_payload: A valid POST /submit-form body
    ├── make_form: Builds Form ORM instances with every column set
    ├── database: Connected Database on a temporary SQLite file
    └── test_client: HTTPX AsyncClient bound to an app using `database`
"""

import os

# Override settings for testing BEFORE any fabtrack imports
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["CORS_ORIGINS"] = "https://frontline-client-two.vercel.app,http://localhost:5173"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("DB_URI", None)

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fabtrack.database import Database
from fabtrack.models.form import Form


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = form
        result = await form_service.get_form(mock_db_session, str(form.id))
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_form_payload():
    """A complete submission as the frontend sends it (no id, no code)."""
    return {
        "areticalNo": "ART-1042",
        "name": "Cotton poplin 40s",
        "date": "2024-03-18",
        "warpDetails": [
            {"count": "40s", "ends": 5600, "weight": "12.5"},
            {"count": "2/40s", "ends": 120, "weight": "0.8"},
        ],
        "weftDetails": [{"count": "40s", "picks": 92, "weight": "10.1"}],
        "dyingMillName": "Shree Dyeing Works",
        "fabricsShortage": "2%",
    }


@pytest.fixture
def make_form():
    """Factory for fully-populated Form instances (not attached to a session)."""

    def _make(**overrides) -> Form:
        now = datetime.now(timezone.utc)
        values = {
            "id": uuid.uuid4(),
            "aretical_no": "ART-1042",
            "name": "Cotton poplin 40s",
            "date": "2024-03-18",
            "warp_details": [{"count": "40s", "ends": 5600}],
            "weft_details": [{"count": "40s", "picks": 92}],
            "dying_mill_name": "Shree Dyeing Works",
            "fabrics_shortage": "2%",
            "code": "data:image/png;base64,iVBORw0KGgo=",
            "warp_rate": None,
            "weft_rate": None,
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return Form(**values)

    return _make


@pytest_asyncio.fixture
async def database(tmp_path):
    """
    A connected Database backed by a fresh SQLite file.

    Why a file (not :memory:): every pooled aiosqlite connection to
    :memory: would see its own empty database.
    """
    db = Database()
    await db.connect(f"sqlite+aiosqlite:///{tmp_path / 'fabtrack_test.db'}")
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def test_client(database):
    """
    Provides an async HTTP test client for endpoint testing.

    ASGITransport does not run the lifespan, so the app is handed an
    already-connected Database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from fabtrack.main import create_app

    app = create_app(database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
