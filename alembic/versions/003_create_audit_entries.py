"""003: create audit_entries table

Revision ID: 003
Revises: 002
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE audit_entries (
            id                  BIGSERIAL       PRIMARY KEY,
            address             VARCHAR(128)    NOT NULL REFERENCES accounts (address),
            operation_type      VARCHAR(20)     NOT NULL,
            amount              BIGINT          NOT NULL,
            balance_before      BIGINT          NOT NULL,
            balance_after       BIGINT          NOT NULL,
            transaction_hash    VARCHAR(128),
            bet_id              VARCHAR(64),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_audit_operation_type CHECK (
                operation_type IN ('deposit', 'withdrawal', 'bet_placed', 'bet_won', 'bet_lost')
            ),
            CONSTRAINT ck_audit_amount_gte_0        CHECK (amount >= 0),
            CONSTRAINT ck_audit_balance_after_gte_0 CHECK (balance_after >= 0),
            CONSTRAINT uq_audit_tx_operation        UNIQUE (transaction_hash, operation_type)
        );
    """)
    op.execute("CREATE INDEX idx_audit_address_id ON audit_entries (address, id);")
    op.execute("""
        CREATE INDEX idx_audit_bet_id
        ON audit_entries (bet_id)
        WHERE bet_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_audit_entries_append_only
            BEFORE UPDATE OR DELETE ON audit_entries
            FOR EACH ROW EXECUTE FUNCTION fn_reject_audit_mutation();
    """)
    op.execute("COMMENT ON TABLE audit_entries IS 'Balance audit trail, append-only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_entries CASCADE;")
