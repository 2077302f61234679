"""Celery task bodies, called the way a worker calls them (one event loop per run)."""
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from solfeed.core.config import settings
from solfeed.db.base import Base
from solfeed.models.post import Post
from solfeed.models.user import User
from solfeed.workers import notifications as worker


def _seed(url: str) -> None:
    async def seed():
        engine = create_async_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with AsyncSession(engine) as db:
            user = User(username="alice", display_name="Alice")
            db.add(user)
            await db.flush()
            db.add(Post(user_id=user.id, content="gm", likes_count=3, comments_count=1))
            await db.commit()
        await engine.dispose()

    asyncio.run(seed())


def test_reconcile_task_runs_repeatedly_with_fresh_engines(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}"
    _seed(url)
    monkeypatch.setattr(settings, "DATABASE_URL", url)
    engines = []

    def tracking_engine(*args, **kwargs):
        engine = create_async_engine(*args, **kwargs)
        engines.append(engine)
        return engine

    monkeypatch.setattr(worker, "create_async_engine", tracking_engine)

    assert worker.reconcile_post_counters() == 1
    assert worker.reconcile_post_counters() == 0
    assert worker.reconcile_post_counters() == 0

    assert len(engines) == 3
    assert len({id(e) for e in engines}) == 3
    assert all(isinstance(e.sync_engine.pool, NullPool) for e in engines)


def test_send_push_notification_logs(caplog):
    with caplog.at_level("INFO", logger=worker.__name__):
        worker.send_push_notification("u1", "SolFeed", "Your post was liked.")

    assert "Push to user u1" in caplog.text
