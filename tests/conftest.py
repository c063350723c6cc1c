from __future__ import annotations

import os
import sys
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./boardpilot_test.db")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.chat.service import create_session
from boardpilot.config import settings
from boardpilot.db import SessionLocal, engine
from boardpilot.main import app
from boardpilot.models import ApiToken, Base, ChatSession, User
from boardpilot.security import api_token_hash, api_token_hint, new_api_token


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  db_name = settings.database_url.rsplit("/", 1)[-1]
  if "test" not in db_name:
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. boardpilot_test)."
    )
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)
  await engine.dispose()


@pytest.fixture
async def db(anyio_backend) -> AsyncSession:
  await _reset_db()
  async with SessionLocal() as session:
    yield session
  await engine.dispose()


@pytest.fixture
async def client(db) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def make_user(db: AsyncSession, email: str = "owner@example.com", name: str = "Owner") -> User:
  u = User(email=email, name=name)
  db.add(u)
  await db.flush()
  return u


async def make_chat(db: AsyncSession, user: User, title: str = "Planning") -> ChatSession:
  return await create_session(db, user.id, title)


async def make_token(db: AsyncSession, user: User) -> str:
  token = new_api_token()
  db.add(ApiToken(user_id=user.id, name="test", token_hash=api_token_hash(token), token_hint=api_token_hint(token)))
  await db.flush()
  return token


def auth(token: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {token}"}
