"""004: create bets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id                  VARCHAR(32)     PRIMARY KEY,
            address             VARCHAR(128)    NOT NULL,
            asset               VARCHAR(10)     NOT NULL,
            amount              BIGINT          NOT NULL,
            direction           VARCHAR(4)      NOT NULL,
            multiplier_bps      INTEGER         NOT NULL,
            price_change_target BIGINT          NOT NULL,
            reference_price     BIGINT          NOT NULL,
            placed_at_ms        BIGINT          NOT NULL,
            deadline_ms         BIGINT          NOT NULL,
            status              VARCHAR(10)     NOT NULL DEFAULT 'PENDING',
            target_id           VARCHAR(32),
            end_price           BIGINT,
            end_price_at_ms     BIGINT,
            payout              BIGINT          NOT NULL DEFAULT 0,
            settled_at_ms       BIGINT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bets_amount_gt_0      CHECK (amount > 0),
            CONSTRAINT ck_bets_multiplier_gt_1  CHECK (multiplier_bps > 10000),
            CONSTRAINT ck_bets_direction        CHECK (direction IN ('UP', 'DOWN')),
            CONSTRAINT ck_bets_status           CHECK (status IN ('PENDING', 'WON', 'LOST')),
            CONSTRAINT ck_bets_payout_gte_0     CHECK (payout >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_bets_updated_at
            BEFORE UPDATE ON bets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("CREATE INDEX idx_bets_status_deadline ON bets (status, deadline_ms);")
    op.execute("CREATE INDEX idx_bets_address_placed ON bets (address, placed_at_ms);")
    op.execute("COMMENT ON TABLE bets IS 'Timed price bets — PENDING until settled exactly once';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
