import os

# Settings are read at import time; point everything at throwaway local resources first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PUSH_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from solfeed.core.security import create_access_token
from solfeed.db.base import Base
from solfeed.db.session import get_db
from solfeed.main import app
from solfeed.models.post import Post
from solfeed.models.user import User


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'solfeed.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    async def _make_user(username: str) -> User:
        user = User(username=username, display_name=username.title())
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_post(db_session):
    async def _make_post(author: User, content: str = "gm") -> Post:
        post = Post(user_id=author.id, content=content)
        db_session.add(post)
        await db_session.commit()
        return post

    return _make_post


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers
