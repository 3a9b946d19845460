"""Shared database fixtures."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sample_models import Base, Comment, Event, Label, Organization, Task, User

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _seed(session: AsyncSession) -> None:
    """Seed 5 tasks with statuses A, A, B, C, A."""
    acme = Organization(id=1, name="Acme", secret="s1")
    globex = Organization(id=2, name="Globex", secret="s2")
    alice = User(id=1, full_name="alice", email="alice@acme.io", organization=acme)
    bob = User(id=2, full_name="bob", email="bob@globex.io", organization=globex)
    urgent = Label(id=1, name="urgent")
    session.add_all(
        [
            acme,
            globex,
            alice,
            bob,
            urgent,
            Event(id=1, day="2024-01-05"),
            Event(id=2, day="2024-01-06"),
            Task(
                id=1,
                title="Write docs",
                description="user guide",
                status="A",
                priority=1,
                estimate=1.5,
                done=True,
                created_at=datetime(2024, 1, 1, 10, 0, 0),
                owner=alice,
                comments=[Comment(id=1, body="first"), Comment(id=2, body="second")],
                labels=[urgent],
            ),
            Task(
                id=2,
                title="Fix bug",
                description="crash on start",
                status="A",
                priority=3,
                estimate=2.0,
                done=False,
                created_at=datetime(2024, 1, 2, 10, 0, 0),
                owner=bob,
            ),
            Task(
                id=3,
                title="Review PR",
                description=None,
                status="B",
                priority=2,
                estimate=0.5,
                done=False,
                created_at=datetime(2024, 1, 3, 10, 0, 0),
                owner=alice,
                comments=[Comment(id=3, body="lgtm")],
            ),
            Task(
                id=4,
                title="Deploy",
                description="prod rollout 100%",
                status="C",
                priority=5,
                estimate=4.0,
                done=True,
                created_at=datetime(2024, 1, 4, 10, 0, 0),
                owner=None,
            ),
            Task(
                id=5,
                title="Plan sprint",
                description="docs and goals",
                status="A",
                priority=2,
                estimate=1.0,
                done=False,
                created_at=datetime(2024, 1, 5, 10, 0, 0),
                owner=bob,
            ),
        ]
    )


@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        _seed(sess)
        await sess.commit()
        yield sess
