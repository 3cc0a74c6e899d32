"""Service test fixtures: async DB, FastAPI test client, tokens and seed data.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so readiness checks hit the test engine
    - Rate limiter counters and the response cache start empty for every test

Design Decisions:
    - SQLite in-memory with StaticPool: the test session and the app's sessions share
      one connection, so rows seeded through test_db are visible to the routes
    - Tokens are minted with PyJWT against the configured secret, exactly as the
      auth provider would sign them
    - Seed helpers commit immediately; the app's sessions reset the shared connection
      when they close, so anything uncommitted would be lost
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from loophub.config import get_settings
from loophub.db.base import Base
from loophub.infrastructure.cache import cache
from loophub.infrastructure.database import get_db, DatabaseSessionManager
from loophub.infrastructure.rate_limit import limiter
import loophub.infrastructure.database as db_module
from loophub.main import app
from loophub.models.forum import Forum
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from loophub.models.comment import Comment


# ─── Database & Client ──────────────────────────────────────────

@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture(autouse=True)
def _reset_shared_state():
    limiter.reset()
    cache.clear()
    yield
    limiter.reset()
    cache.clear()


# ─── Auth ───────────────────────────────────────────────────────

def _make_token(user_id, email: str | None = None, expires_in: int = 3600, **claims) -> str:
    settings = get_settings()
    payload = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        **claims,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm="HS256")


def _auth_headers(user_or_id) -> dict[str, str]:
    user_id = getattr(user_or_id, "id", user_or_id)
    return {"Authorization": f"Bearer {_make_token(user_id)}"}


@pytest.fixture
def make_token():
    return _make_token


@pytest.fixture
def auth_headers():
    """auth_headers(profile_or_id) -> Authorization header with a valid bearer token."""
    return _auth_headers


# ─── Seed Data ──────────────────────────────────────────────────

@pytest.fixture
def make_profile(test_db):
    async def _make(
        username: str | None = None, reputation: int = 0, is_admin: bool = False,
    ) -> Profile:
        profile = Profile(
            id=uuid.uuid4(),
            username=username or f"user_{uuid.uuid4().hex[:8]}",
            reputation=reputation,
            is_admin=is_admin,
        )
        test_db.add(profile)
        await test_db.commit()
        return profile
    return _make


@pytest.fixture
def make_forum(test_db):
    async def _make(slug: str = "general", name: str | None = None) -> Forum:
        forum = Forum(name=name or slug.title(), slug=slug, description=f"{slug} talk")
        test_db.add(forum)
        await test_db.commit()
        return forum
    return _make


@pytest.fixture
def make_thread(test_db):
    async def _make(
        forum: Forum, author: Profile | None, title: str = "A thread",
        content: str = "Thread body", **fields,
    ) -> Thread:
        thread = Thread(
            forum_id=forum.id,
            user_id=author.id if author else None,
            title=title,
            content=content,
            **fields,
        )
        test_db.add(thread)
        await test_db.commit()
        return thread
    return _make


@pytest.fixture
def make_comment(test_db):
    async def _make(
        thread: Thread, author: Profile | None, content: str = "A comment",
        parent: Comment | None = None,
    ) -> Comment:
        comment = Comment(
            thread_id=thread.id,
            user_id=author.id if author else None,
            parent_id=parent.id if parent else None,
            content=content,
        )
        test_db.add(comment)
        await test_db.commit()
        return comment
    return _make


@pytest.fixture
def reload(test_db):
    """Fetch a fresh copy of a row, bypassing the test session's identity map."""
    async def _reload(model, ident):
        return await test_db.scalar(
            select(model)
            .where(model.id == ident)
            .execution_options(populate_existing=True)
        )
    return _reload


@pytest.fixture
async def forum(make_forum):
    return await make_forum("general")


@pytest.fixture
async def author(make_profile):
    return await make_profile("author")


@pytest.fixture
async def reader(make_profile):
    return await make_profile("reader")


@pytest.fixture
async def admin(make_profile):
    return await make_profile("admin", is_admin=True)
