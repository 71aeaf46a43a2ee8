"""User upsert from the chat transport's identity.

The chat platform owns user identity; this table only mirrors it so stakes
have a foreign key target. The upsert is idempotent and runs in its own
transaction before any stake that references the user.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import unit_of_work

_UPSERT_USER_SQL = text("""
    INSERT INTO users (id, username, first_name)
    VALUES (:user_id, :username, :first_name)
    ON CONFLICT (id) DO UPDATE
        SET username = EXCLUDED.username,
            first_name = EXCLUDED.first_name
        WHERE users.username IS DISTINCT FROM EXCLUDED.username
           OR users.first_name IS DISTINCT FROM EXCLUDED.first_name
""")


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def upsert(
        self,
        db: AsyncSession,
        user_id: int,
        username: str | None,
        first_name: str | None,
    ) -> int:
        async with unit_of_work(db):
            await db.execute(
                _UPSERT_USER_SQL,
                {"user_id": user_id, "username": username, "first_name": first_name},
            )
        return user_id
