"""002: create prices table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE prices (
            sell_denom   VARCHAR(128)    NOT NULL,
            buy_denom    VARCHAR(128)    NOT NULL,
            price        NUMERIC(38, 18) NOT NULL,
            observed_at  BIGINT          NOT NULL,
            updated_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (sell_denom, buy_denom),
            CONSTRAINT ck_prices_pair CHECK (sell_denom <> buy_denom),
            CONSTRAINT ck_prices_price_gt_0 CHECK (price > 0)
        );
    """)
    op.execute("COMMENT ON TABLE prices IS 'Manual price feed: buy denom per 1 sell denom';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS prices CASCADE;")
