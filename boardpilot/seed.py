from __future__ import annotations

import asyncio
import os

from sqlalchemy import select

from boardpilot.db import SessionLocal
from boardpilot.models import ApiToken, User
from boardpilot.security import api_token_hash, api_token_hint, new_api_token


async def seed() -> None:
  email = (os.getenv("SEED_USER_EMAIL") or "owner@boardpilot.local").strip().lower()
  name = (os.getenv("SEED_USER_NAME") or "Owner").strip()
  async with SessionLocal() as db:
    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()
    if not user:
      user = User(email=email, name=name)
      db.add(user)
      await db.flush()

    # A fresh token on every run; earlier ones stay valid until revoked.
    token = new_api_token()
    db.add(ApiToken(user_id=user.id, name="seed", token_hash=api_token_hash(token), token_hint=api_token_hint(token)))
    await db.commit()
    print("Boardpilot seed user ready:")
    print(f"  {email} (id={user.id})")
    print(f"  API token: {token}")


def main() -> None:
  asyncio.run(seed())


if __name__ == "__main__":
  main()
