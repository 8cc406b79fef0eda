"""001: create common functions

fn_update_timestamp keeps updated_at current on mutable tables.
fn_reject_audit_mutation makes audit_entries append-only at the database level.

Revision ID: 001
Revises: 
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_reject_audit_mutation()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'audit_entries is append-only (% on id %)', TG_OP, OLD.id;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_reject_audit_mutation();")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
