import base64
import os
import time

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["CLERK_JWT_KEY"] = "test-secret"
os.environ["CLERK_JWT_ALGORITHM"] = "HS256"
os.environ["CLERK_WEBHOOK_SECRET"] = "whsec_" + base64.b64encode(b"test-webhook-secret").decode()

import pytest
from httpx import AsyncClient, ASGITransport
from jose import jwt

from rfpflow.db.database import Base, engine, AsyncSessionLocal
from rfpflow.core.limiter import limiter
from rfpflow.main import app
from rfpflow.models.organization import Organization
from rfpflow.models.user import User, UserRole
from rfpflow.services.realtime import manager

limiter.enabled = False


def make_token(user_id: str, **claims) -> str:
    payload = {"sub": user_id, "exp": int(time.time()) + 3600, **claims}
    return jwt.encode(payload, os.environ["CLERK_JWT_KEY"], algorithm="HS256")


def auth_headers(user) -> dict:
    user_id = user if isinstance(user, str) else user.id
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    manager.active_connections.clear()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def org(db):
    organization = Organization(name="Acme Bids", slug="default", is_active=True)
    db.add(organization)
    await db.commit()
    return organization


async def _make_user(db, org, user_id, email, role, first_name):
    user = User(
        id=user_id,
        organization_id=org.id,
        email=email,
        first_name=first_name,
        last_name="Test",
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin(db, org):
    return await _make_user(db, org, "user_admin", "admin@example.com", UserRole.ADMIN, "Ada")


@pytest.fixture
async def manager_user(db, org):
    return await _make_user(db, org, "user_manager", "manager@example.com", UserRole.MANAGER, "Max")


@pytest.fixture
async def member(db, org):
    return await _make_user(db, org, "user_member", "member@example.com", UserRole.MEMBER, "Mia")


@pytest.fixture
async def other_member(db, org):
    return await _make_user(db, org, "user_other", "other@example.com", UserRole.MEMBER, "Otto")


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    return auth_headers
