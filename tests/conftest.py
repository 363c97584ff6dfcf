import os
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

TEST_JWT_SECRET = "test-secret-key-do-not-use-in-production"

# Settings() must be constructible before the app module is imported
os.environ.setdefault("JWT_SECRET_KEY", TEST_JWT_SECRET)

from cissp_mastery.core.config import Settings  # noqa: E402
from cissp_mastery.db.base import Base  # noqa: E402
from cissp_mastery.db.session import Database  # noqa: E402
from cissp_mastery.main import create_app  # noqa: E402
from cissp_mastery.services.audit import AuditLogger  # noqa: E402
from tests.factories import add_user, build_class_tree  # noqa: E402


# --- In-memory test database ---
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create test database engine with in-memory SQLite"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_db(test_engine):
    return Database(test_engine)


@pytest.fixture
async def test_session(test_db):
    """Create test database session"""
    async with test_db.sessionmaker() as session:
        yield session


@pytest.fixture
def audit(test_db):
    return AuditLogger(test_db.sessionmaker)


@pytest.fixture
def test_settings():
    """Application settings for tests"""
    return Settings(
        jwt_secret_key=TEST_JWT_SECRET,
        jwt_algorithm="HS256",
        database_url=TEST_DATABASE_URL,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test_123",
        stripe_price_pro_monthly="price_monthly_123",
        stripe_price_pro_yearly="price_yearly_123",
        stripe_price_lifetime="price_lifetime_123",
        frontend_url="https://cissp.example.com",
    )


@pytest.fixture
def app(test_settings, test_db):
    return create_app(test_settings, test_db)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_token():
    """Build a signed identity token the way the auth provider would"""

    def _make_token(sub: str, email: str | None = None, expires_in: timedelta = timedelta(hours=1), **claims):
        payload = {
            "sub": sub,
            "email": email or f"{sub}@example.com",
            "exp": datetime.now(timezone.utc) + expires_in,
            **claims,
        }
        return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token):
    def _auth_headers(sub: str, **claims):
        return {"Authorization": f"Bearer {make_token(sub, **claims)}"}

    return _auth_headers


# --- Sample data fixtures ---
@pytest.fixture
async def admin_user(test_session):
    return await add_user(test_session, "admin-1", role="admin")


@pytest.fixture
async def regular_user(test_session):
    return await add_user(test_session, "user-1")


@pytest.fixture
async def paid_user(test_session):
    return await add_user(test_session, "paid-1", plan_type="pro_monthly", status="active")


@pytest.fixture
async def class_tree(test_session, admin_user):
    return await build_class_tree(test_session, admin_user.auth_user_id)
