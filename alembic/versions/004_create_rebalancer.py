"""004: create rebalancer tables and seed the system status row

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE rebalancer_configs (
            account     VARCHAR(128)    PRIMARY KEY,
            config      JSONB           NOT NULL,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TABLE rebalancer_paused_configs (
            account      VARCHAR(128)    PRIMARY KEY,
            pauser       VARCHAR(128)    NOT NULL,
            reason       VARCHAR(20)     NOT NULL,
            reason_text  TEXT,
            config       JSONB           NOT NULL,
            created_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_paused_reason CHECK (reason IN ('EMPTY_BALANCE', 'ACCOUNT_REASON'))
        );
    """)
    op.execute("""
        CREATE TABLE denom_whitelist (
            denom  VARCHAR(128)  PRIMARY KEY
        );
    """)
    op.execute("""
        CREATE TABLE base_denom_whitelist (
            denom              VARCHAR(128)    PRIMARY KEY,
            min_balance_limit  NUMERIC(39, 0)  NOT NULL DEFAULT 0
        );
    """)
    op.execute("""
        CREATE TABLE rebalancer_system (
            id            SMALLINT        PRIMARY KEY DEFAULT 1,
            status        VARCHAR(20)     NOT NULL,
            status_time   BIGINT          NOT NULL,
            cursor        VARCHAR(128),
            prices        JSONB,
            cycle_period  BIGINT          NOT NULL,
            updated_at    TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_rebalancer_system_singleton CHECK (id = 1),
            CONSTRAINT ck_rebalancer_system_status CHECK (
                status IN ('NOT_STARTED', 'PROCESSING', 'FINISHED')
            ),
            CONSTRAINT ck_rebalancer_system_period CHECK (cycle_period > 0)
        );
    """)
    op.execute("""
        INSERT INTO rebalancer_system (id, status, status_time, cycle_period)
        VALUES (1, 'NOT_STARTED', 0, 86400);
    """)
    op.execute("""
        CREATE TRIGGER trg_rebalancer_configs_updated_at
            BEFORE UPDATE ON rebalancer_configs
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS rebalancer_system CASCADE;")
    op.execute("DROP TABLE IF EXISTS base_denom_whitelist CASCADE;")
    op.execute("DROP TABLE IF EXISTS denom_whitelist CASCADE;")
    op.execute("DROP TABLE IF EXISTS rebalancer_paused_configs CASCADE;")
    op.execute("DROP TABLE IF EXISTS rebalancer_configs CASCADE;")
