"""003: create bets table

Revision ID: 003
Revises: 002
Create Date: 2025-11-10
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id              BIGSERIAL           PRIMARY KEY,
            user_id         BIGINT              NOT NULL REFERENCES users(id),
            market_id       TEXT                NOT NULL REFERENCES markets(id),
            side            TEXT                NOT NULL,
            stake           DOUBLE PRECISION    NOT NULL,
            payout          DOUBLE PRECISION,
            settlement      TEXT                NOT NULL DEFAULT 'PENDING',
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_side         CHECK (side IN ('UP', 'DOWN')),
            CONSTRAINT ck_bets_stake_gt_0   CHECK (stake > 0),
            CONSTRAINT ck_bets_payout_gte_0 CHECK (payout IS NULL OR payout >= 0),
            CONSTRAINT ck_bets_settlement CHECK (
                settlement IN ('PENDING', 'WON', 'LOST', 'REFUNDED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_bets_market_created ON bets (market_id, created_at, id);")
    op.execute("CREATE INDEX idx_bets_user ON bets (user_id);")
    op.execute("COMMENT ON TABLE bets IS 'Stake ledger: append-only, one settlement write per row';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
