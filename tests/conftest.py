from __future__ import annotations

import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

# settings are read at import time, so the database has to be chosen first
_DB_DIR = tempfile.mkdtemp(prefix="ecotour-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/ecotour.db"
os.environ.pop("BOOTSTRAP_ADMIN_EMAIL", None)

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ecotour_svc.db import async_session_maker, close_db, engine
from ecotour_svc.main import app
from ecotour_svc.models import Account, AccountRole, Base, Event, EventCategory
from ecotour_svc.services import auth_service

PASSWORD = "secret123"


@pytest_asyncio.fixture
async def db_engine():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await close_db()


@pytest_asyncio.fixture
async def session(db_engine):
    async with async_session_maker() as s:
        yield s


@pytest_asyncio.fixture
async def client(db_engine):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def make_account(
    session,
    *,
    role: AccountRole = AccountRole.USER,
    email: str | None = None,
    name: str = "Test Person",
    password: str = PASSWORD,
) -> Account:
    return await auth_service.create_account(
        session,
        name=name,
        email=email or f"{uuid.uuid4().hex[:10]}@example.com",
        password=password,
        role=role,
    )


def bearer(account: Account) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_service.issue_token(account)}"}


async def make_event(session, owner: Account, *, max_participants: int = 10, days: float = 14, **fields) -> Event:
    """Inserted directly so tests can also create events in the past."""
    event = Event(
        title=fields.pop("title", "Mangrove Kayak Trail"),
        description=fields.pop("description", "Paddle through the mangroves at dawn."),
        category=fields.pop("category", EventCategory.NATURE_TREK),
        date=datetime.now(timezone.utc) + timedelta(days=days),
        location=fields.pop("location", "Sungei Buloh"),
        max_participants=max_participants,
        current_participants=fields.pop("current_participants", 0),
        price=fields.pop("price", 45.0),
        duration_hours=fields.pop("duration_hours", 3.0),
        created_by=owner.id,
        **fields,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


@pytest_asyncio.fixture
async def admin(session) -> Account:
    return await make_account(session, role=AccountRole.ADMIN, name="Ranger Admin")


@pytest_asyncio.fixture
async def other_admin(session) -> Account:
    return await make_account(session, role=AccountRole.ADMIN, name="Other Admin")


@pytest_asyncio.fixture
async def alice(session) -> Account:
    return await make_account(session, name="Alice")


@pytest_asyncio.fixture
async def bob(session) -> Account:
    return await make_account(session, name="Bob")
