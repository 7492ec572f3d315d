# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Each test gets its own SQLite database (aiosqlite) under tmp_path."""

from dataclasses import dataclass

import pytest
from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from proposals.database import init_db, make_engine, make_session_maker
from proposals.registry import ResourceRegistry, SQLAlchemyResourceRepository
from proposals.services.proposal_tokens import ProposalTokens


class TargetBase(DeclarativeBase):
    pass


class User(TargetBase):
    """Stand-in for the application's proposable records."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)


@dataclass
class Team:
    """Owning resource; only its id and class name matter."""

    id: int


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(anyio_backend, tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'proposals.db'}")
    await init_db(engine)
    async with engine.begin() as conn:
        await conn.run_sync(TargetBase.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
async def db(anyio_backend, session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def registry(db):
    return ResourceRegistry.from_repository(SQLAlchemyResourceRepository(db, {"User": User}))


@pytest.fixture
def store(db, registry):
    return ProposalTokens(db, registry)
