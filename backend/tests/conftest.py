"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh database (SQLite file under tmp_path unless
TEST_DATABASE_URL points somewhere else) with every table created up front.
"""

import os

# Settings are cached on first use; the catalog cache stays off under test
os.environ.setdefault("REDIS_ENABLED", "false")

from datetime import datetime
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from zoo_api.main import app
from zoo_api.api.deps import get_database
from zoo_api.core.security import create_access_token
from zoo_api.db.session import Database
from zoo_api.models.animal import Animal
from zoo_api.models.facility import Facility, Attraction, Ride, TrainerAssignment
from zoo_api.models.user import User, ROLE_VISITOR, ROLE_TRAINER, ROLE_ADMIN


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Create tables, yield the database, then drop everything for isolation."""
    url = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/test.db")
    db = Database(url)
    await db.drop_all()
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test database."""
    app.dependency_overrides[get_database] = lambda: database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _bearer(username: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': username})}"}


@pytest_asyncio.fixture
async def accounts(database: Database) -> dict:
    """Two visitors, one trainer and one admin."""
    async with database.session() as db:
        db.add_all([
            User(username="budi", email="budi@example.com", nama_depan="Budi", role=ROLE_VISITOR),
            User(username="sari", email="sari@example.com", nama_depan="Sari", role=ROLE_VISITOR),
            User(
                username="rina",
                email="rina@example.com",
                nama_depan="Rina",
                nama_belakang="Wijaya",
                role=ROLE_TRAINER,
            ),
            User(username="admin", email="admin@example.com", nama_depan="Admin", role=ROLE_ADMIN),
        ])
    return {"visitor": "budi", "other_visitor": "sari", "trainer": "rina", "admin": "admin"}


@pytest_asyncio.fixture
async def visitor_headers(accounts: dict) -> dict:
    return _bearer(accounts["visitor"])


@pytest_asyncio.fixture
async def other_visitor_headers(accounts: dict) -> dict:
    return _bearer(accounts["other_visitor"])


@pytest_asyncio.fixture
async def admin_headers(accounts: dict) -> dict:
    return _bearer(accounts["admin"])


@pytest_asyncio.fixture
async def animals(database: Database) -> list[str]:
    async with database.session() as db:
        db.add_all([
            Animal(id="a-001", nama="Moby", spesies="Paus Orca"),
            Animal(id="a-002", nama="Dodo", spesies="Lumba-lumba"),
        ])
    return ["a-001", "a-002"]


@pytest_asyncio.fixture
async def whale_pool(database: Database, accounts: dict) -> str:
    """Attraction "Kolam Paus" with 50 tickets per day."""
    async with database.session() as db:
        db.add(Facility(nama="Kolam Paus", jadwal=datetime(2024, 6, 1, 10, 0), kapasitas_max=50))
        await db.flush()
        db.add(Attraction(nama_atraksi="Kolam Paus", lokasi="Zona Laut"))
        await db.flush()
        db.add(TrainerAssignment(
            username_lh=accounts["trainer"],
            nama_atraksi="Kolam Paus",
            tgl_penugasan=datetime(2024, 5, 1, 8, 0),
        ))
    return "Kolam Paus"


@pytest_asyncio.fixture
async def carousel(database: Database) -> str:
    """Ride "Komidi Putar" with 10 tickets per day."""
    async with database.session() as db:
        db.add(Facility(nama="Komidi Putar", jadwal=datetime(2024, 6, 1, 13, 0), kapasitas_max=10))
        await db.flush()
        db.add(Ride(nama_wahana="Komidi Putar", peraturan="Tinggi minimal 120 cm"))
    return "Komidi Putar"
