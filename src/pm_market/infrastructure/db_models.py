"""SQLAlchemy ORM models for the markets and bets tables.

Not used for queries (persistence.py uses raw text() SQL); the metadata is
exposed to alembic for schema drift checks.
Alembic migrations (002_create_markets.py, 003_create_bets.py) are the
authoritative DDL source.
"""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, Double, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class MarketORM(Base):
    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    underlying: Mapped[str] = mapped_column(Text, nullable=False)
    period_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    up_pool: Mapped[float] = mapped_column(Double, nullable=False)
    down_pool: Mapped[float] = mapped_column(Double, nullable=False)
    opened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    open_price: Mapped[float | None] = mapped_column(Double)
    last_price: Mapped[float | None] = mapped_column(Double)
    winning_side: Mapped[str | None] = mapped_column(Text)
    payout_multiplier: Mapped[float | None] = mapped_column(Double)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BetORM(Base):
    __tablename__ = "bets"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    market_id: Mapped[str] = mapped_column(Text, ForeignKey("markets.id"), nullable=False)
    side: Mapped[str] = mapped_column(Text, nullable=False)
    stake: Mapped[float] = mapped_column(Double, nullable=False)
    payout: Mapped[float | None] = mapped_column(Double)
    settlement: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
