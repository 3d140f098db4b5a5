"""
Test configuration for LEMtool tests.

sys.path is configured so 'from lemtool...' resolves when pytest is run from
the repository root or from inside lemtool/.

API fixtures replace the lifespan resources:
  - get_db      → in-memory aiosqlite database (tables created from metadata)
  - redis       → FakeRedis (dict-backed get / setex / delete)
  - mistral     → None (analyses use the fallback unless a test patches it)
  - screenshots → fetch_screenshot patched to return None
"""
import asyncio
import sys
from pathlib import Path

import pytest_asyncio

_project_root = Path(__file__).parent.parent.parent     # repository root

if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import lemtool.models  # noqa: E402,F401
from lemtool.database import Base, get_db  # noqa: E402
from lemtool.main import app  # noqa: E402
from lemtool.tests.sample_data import FakeRedis  # noqa: E402


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_engine, monkeypatch):
    """Async httpx client using ASGI transport — no live server needed."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def no_screenshot(url, client=None):
        return None

    monkeypatch.setattr("lemtool.analysis.service.fetch_screenshot", no_screenshot)

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = FakeRedis()
    app.state.mistral = None
    app.state.analysis_semaphore = asyncio.Semaphore(2)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
