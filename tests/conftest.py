"""Shared fixtures: in-memory SQLite database and an ASGI test client."""

import os

# Settings are read at import time; point them at SQLite before the app loads.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["ADMIN_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from watchauth.api.deps import get_database
from watchauth.db.models import Base
from watchauth.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_db):
    """HTTP client against the app with the database dependency overridden."""
    async def get_test_database():
        yield test_db

    app.dependency_overrides[get_database] = get_test_database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


def submariner_record(**overrides):
    """Create payload for the 116610LN reference."""
    record = {
        "brand": "Rolex",
        "model_name": "Submariner",
        "collection_family": "Oyster Perpetual",
        "reference_number": "116610LN",
        "physical_observations": {
            "case_material": "Stainless Steel 904L",
            "dial_color": "Black",
            "bracelet_type": "Oyster bracelet",
            "bezel_type": "Unidirectional rotating",
            "crystal_material": "Sapphire",
            "case_shape": "Round",
        },
        "authenticity_indicators": {
            "positive_signs": [
                "Perfect cyclops magnification (2.5x)",
                "Sharp rehaut engraving with correct font",
            ],
            "red_flags": [],
        },
        "verification_status": "verified",
        "source": "manufacturer_docs",
    }
    record.update(overrides)
    return record


def submariner_extraction(**identity_overrides):
    """Extraction dict as the AI provider would return it for a Submariner."""
    identity = {
        "brand": "Rolex",
        "model_name": "Submariner",
        "reference_number": "116610LN",
        "dial_variant": "",
    }
    identity.update(identity_overrides)
    return {
        "watch_identity": identity,
        "physical_observations": {
            "case_material": "Stainless Steel",
            "dial_color": "Black",
            "bracelet_type": "Oyster",
            "bezel_type": "Unidirectional rotating",
            "crystal_material": "Sapphire",
            "case_shape": "Round",
        },
        "condition_assessment": {"overall_grade": "excellent"},
        "authenticity_indicators": {
            "positive_signs": ["Cyclops magnification 2.5x looks correct"],
            "red_flags": [],
            "confidence_level": "high",
        },
    }
