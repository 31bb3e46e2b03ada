"""Pytest configuration and shared fixtures."""

import json
from typing import Dict
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fishregs.core.database import Base
from fishregs.database import models  # noqa: F401
from fishregs.database.models import State
from fishregs.main import app


SPECIAL_REGULATIONS_TEXT = """2026 Minnesota Fishing Regulations

TABLE OF CONTENTS
Waters With Experimental and Special Regulations .......... 40
Border Waters .......... 60

General fishing rules apply statewide unless a water body is listed below.

WATERS WITH EXPERIMENTAL AND
SPECIAL REGULATIONS
TEST LAKE ALPHA (Mock County)
Walleye: daily limit 6, possession limit 12.
Northern pike: all from 24-36 inches must be immediately released.
TEST LAKE BETA (Sample County)
Northern pike: protected slot 28-36 inches (1 fish allowed).
Walleye: daily limit 6, possession limit 3.
BORDER WATERS
Lake of the Woods and Rainy River rules are listed here.
"""


def completion_for(lake_name: str, county: str, items) -> str:
    """Completion payload in the camelCase shape the extraction prompt asks for."""
    return json.dumps(
        {
            "lakeName": lake_name,
            "county": county,
            "regulations": {
                "specialRegulations": items,
                "generalNotes": None,
                "isExperimental": False,
            },
        }
    )


SAMPLE_COMPLETIONS: Dict[str, str] = {
    "TEST LAKE ALPHA": completion_for(
        "Test Lake Alpha",
        "Mock County",
        [
            {
                "species": "Walleye",
                "regulationType": "DailyLimit",
                "dailyLimit": 6,
                "possessionLimit": 12,
            },
            {
                "species": "Northern Pike",
                "regulationType": "ProtectedSlot",
                "protectedSlot": "24-36 inches",
            },
        ],
    ),
    "TEST LAKE BETA": completion_for(
        "Test Lake Beta",
        "Sample County",
        [
            {
                "species": "pike",
                "regulationType": "ProtectedSlot",
                "protectedSlot": "28-36 inches (1 fish allowed)",
            },
            {
                "species": "Walleye",
                "regulationType": "DailyLimit",
                "dailyLimit": 6,
                "possessionLimit": 3,
            },
        ],
    ),
}


@pytest.fixture
async def engine():
    """In-memory SQLite engine with working savepoints.

    pysqlite's own transaction handling breaks SAVEPOINT, so BEGIN is emitted
    explicitly.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    """Create a database session.

    Yields:
        AsyncSession: Session bound to the in-memory database
    """
    async with session_maker() as session:
        yield session


@pytest.fixture
async def state(session) -> State:
    """Seed the Minnesota state row."""
    state = State(code="MN", name="Minnesota", country="US")
    session.add(state)
    await session.commit()
    return state


@pytest.fixture
def regulation_text() -> str:
    return SPECIAL_REGULATIONS_TEXT


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Completion client answering from ``SAMPLE_COMPLETIONS`` by water body name.

    Returns:
        AsyncMock: Client exposing ``generate_content``
    """
    async def generate_content(contents, system_instruction=None, generation_config=None):
        for name, completion in SAMPLE_COMPLETIONS.items():
            if f"Water body: {name}\n" in contents:
                return completion
        return "I could not find any regulations."

    client = AsyncMock()
    client.generate_content = AsyncMock(side_effect=generate_content)
    return client


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Sample PDF content for testing.

    Returns:
        bytes: Sample PDF content
    """
    # Minimal valid PDF header
    return b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<\n/Type /Catalog\n/Pages 2 0 R\n>>\nendobj\n"
