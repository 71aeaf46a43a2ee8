# tests/unit/test_user_service.py
"""UserService.upsert issues one idempotent statement and commits."""
from unittest.mock import AsyncMock

from src.pm_gateway.user.service import UserService


async def test_upsert_commits() -> None:
    db = AsyncMock()
    assert await UserService().upsert(db, 42, "ada", "Ada") == 42
    sql, params = db.execute.call_args.args
    assert "ON CONFLICT (id) DO UPDATE" in str(sql)
    assert params == {"user_id": 42, "username": "ada", "first_name": "Ada"}
    db.commit.assert_awaited_once()
