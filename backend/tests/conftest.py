from __future__ import annotations

from collections.abc import AsyncGenerator

import aiosqlite
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from flashstudy import create_app
from flashstudy.db import sqlite as store
from flashstudy.deps import get_llm
from flashstudy.models.card import Card
from flashstudy.services.session_registry import study_sessions, test_sessions, tutor_sessions
from tests.fakes import FakeLLM, make_card


@pytest.fixture
def cards() -> list[Card]:
    """Five cards; c0, c2 and c4 are starred."""
    return [make_card(i, starred=(i % 2 == 0)) for i in range(5)]


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest_asyncio.fixture
async def db(tmp_path) -> AsyncGenerator[aiosqlite.Connection, None]:
    await store.init_sqlite(tmp_path)
    async for conn in store.get_db():
        yield conn


@pytest_asyncio.fixture
async def client(tmp_path, fake_llm) -> AsyncGenerator[AsyncClient, None]:
    """API client over a fresh database, with the LLM replaced by fake_llm."""
    await store.init_sqlite(tmp_path)
    app = create_app()
    app.dependency_overrides[get_llm] = lambda: fake_llm

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    for registry in (test_sessions, study_sessions, tutor_sessions):
        registry.clear()
