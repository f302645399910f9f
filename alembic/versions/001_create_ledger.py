"""001: create ledger tables (balances, transfers, events)

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE balances (
            holder      VARCHAR(128)    NOT NULL,
            denom       VARCHAR(128)    NOT NULL,
            amount      NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (holder, denom),
            CONSTRAINT ck_balances_amount_gte_0 CHECK (amount >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE transfers (
            id          BIGSERIAL       PRIMARY KEY,
            sender      VARCHAR(128)    NOT NULL,
            recipient   VARCHAR(128)    NOT NULL,
            denom       VARCHAR(128)    NOT NULL,
            amount      NUMERIC(39, 0)  NOT NULL,
            reason      VARCHAR(32)     NOT NULL,
            reference   VARCHAR(256),
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transfers_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_transfers_reason CHECK (reason IN (
                'EXTERNAL_DEPOSIT', 'AUCTION_DEPOSIT', 'AUCTION_WITHDRAW',
                'BID_PAYMENT', 'BID_FILL', 'BID_REFUND',
                'SETTLEMENT_PAYOUT', 'SETTLEMENT_REFUND'
            ))
        );
    """)
    op.execute("CREATE INDEX idx_transfers_sender ON transfers (sender, created_at);")
    op.execute("CREATE INDEX idx_transfers_recipient ON transfers (recipient, created_at);")
    op.execute("""
        CREATE TABLE events (
            id          BIGSERIAL       PRIMARY KEY,
            event_type  VARCHAR(64)     NOT NULL,
            subject     VARCHAR(256)    NOT NULL,
            payload     JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_events_subject ON events (subject, id DESC);")
    op.execute("COMMENT ON TABLE transfers IS 'Append-only journal of every balance movement';")
    op.execute("COMMENT ON TABLE events IS 'Append-only structured events';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS events CASCADE;")
    op.execute("DROP TABLE IF EXISTS transfers CASCADE;")
    op.execute("DROP TABLE IF EXISTS balances CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
