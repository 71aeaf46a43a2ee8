"""002: create markets table

Revision ID: 002
Revises: 001
Create Date: 2025-11-10
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                  TEXT                PRIMARY KEY,
            underlying          TEXT                NOT NULL,
            period_date         DATE                NOT NULL,
            status              TEXT                NOT NULL DEFAULT 'OPEN',
            up_pool             DOUBLE PRECISION    NOT NULL DEFAULT 0,
            down_pool           DOUBLE PRECISION    NOT NULL DEFAULT 0,
            opened_at           TIMESTAMPTZ,
            locked_at           TIMESTAMPTZ,
            resolved_at         TIMESTAMPTZ,
            open_price          DOUBLE PRECISION,
            last_price          DOUBLE PRECISION,
            winning_side        TEXT,
            payout_multiplier   DOUBLE PRECISION,
            created_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_markets_underlying_period  UNIQUE (underlying, period_date),
            CONSTRAINT ck_markets_up_pool_gte_0      CHECK (up_pool >= 0),
            CONSTRAINT ck_markets_down_pool_gte_0    CHECK (down_pool >= 0),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('OPEN', 'LOCKED', 'RESOLVED')
            ),
            CONSTRAINT ck_markets_winning_side CHECK (
                winning_side IS NULL OR winning_side IN ('UP', 'DOWN')
            ),
            CONSTRAINT ck_markets_resolution CHECK (
                (status = 'RESOLVED') = (winning_side IS NOT NULL AND resolved_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status ON markets (underlying, status, period_date DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'One UP/DOWN pari-mutuel market per underlying per period';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
