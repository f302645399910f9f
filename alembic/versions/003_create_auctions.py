"""003: create auction tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auction_pairs (
            sell_denom              VARCHAR(128)    NOT NULL,
            buy_denom               VARCHAR(128)    NOT NULL,
            paused                  BOOLEAN         NOT NULL DEFAULT FALSE,
            chain_halt_cap          BIGINT          NOT NULL,
            chain_halt_block_avg    BIGINT          NOT NULL,
            freshness_limit         NUMERIC(38, 18) NOT NULL,
            freshness_multipliers   JSONB           NOT NULL DEFAULT '[]'::jsonb,
            start_price_perc        INTEGER         NOT NULL,
            end_price_perc          INTEGER         NOT NULL,
            curr_id                 BIGINT          NOT NULL DEFAULT 0,
            next_id                 BIGINT          NOT NULL DEFAULT 1,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (sell_denom, buy_denom),
            CONSTRAINT ck_auction_pairs_pair CHECK (sell_denom <> buy_denom),
            CONSTRAINT ck_auction_pairs_start_perc CHECK (start_price_perc > 0),
            CONSTRAINT ck_auction_pairs_end_perc CHECK (end_price_perc > 0 AND end_price_perc < 10000)
        );
    """)
    op.execute("""
        CREATE TABLE active_auctions (
            sell_denom              VARCHAR(128)    NOT NULL,
            buy_denom               VARCHAR(128)    NOT NULL,
            status                  VARCHAR(20)     NOT NULL,
            start_block             BIGINT          NOT NULL DEFAULT 0,
            end_block               BIGINT          NOT NULL DEFAULT 0,
            start_price             NUMERIC(38, 18) NOT NULL DEFAULT 0,
            end_price               NUMERIC(38, 18) NOT NULL DEFAULT 0,
            available_amount        NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            resolved_amount         NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            total_amount            NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            leftover_sell           NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            leftover_buy            NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            last_checked_height     BIGINT          NOT NULL DEFAULT 0,
            last_checked_time       BIGINT          NOT NULL DEFAULT 0,
            closing_last_provider   VARCHAR(128),
            closing_sold_sent       NUMERIC(39, 0),
            closing_bought_sent     NUMERIC(39, 0),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (sell_denom, buy_denom),
            FOREIGN KEY (sell_denom, buy_denom)
                REFERENCES auction_pairs (sell_denom, buy_denom) ON DELETE CASCADE,
            CONSTRAINT ck_active_auctions_status CHECK (
                status IN ('STARTED', 'FINISHED', 'CLOSING', 'AUCTION_CLOSED')
            )
        );
    """)
    op.execute("""
        CREATE TABLE auction_funds (
            sell_denom   VARCHAR(128)    NOT NULL,
            buy_denom    VARCHAR(128)    NOT NULL,
            auction_id   BIGINT          NOT NULL,
            provider     VARCHAR(128)    NOT NULL,
            amount       NUMERIC(39, 0)  NOT NULL,
            PRIMARY KEY (sell_denom, buy_denom, auction_id, provider),
            CONSTRAINT ck_auction_funds_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("""
        CREATE TABLE auction_fund_sums (
            sell_denom   VARCHAR(128)    NOT NULL,
            buy_denom    VARCHAR(128)    NOT NULL,
            auction_id   BIGINT          NOT NULL,
            amount       NUMERIC(39, 0)  NOT NULL DEFAULT 0,
            PRIMARY KEY (sell_denom, buy_denom, auction_id),
            CONSTRAINT ck_auction_fund_sums_amount_gte_0 CHECK (amount >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE twap_prices (
            sell_denom   VARCHAR(128)    NOT NULL,
            buy_denom    VARCHAR(128)    NOT NULL,
            position     SMALLINT        NOT NULL,
            price        NUMERIC(38, 18) NOT NULL,
            observed_at  BIGINT          NOT NULL,
            PRIMARY KEY (sell_denom, buy_denom, position),
            CONSTRAINT ck_twap_prices_position CHECK (position >= 0 AND position < 10)
        );
    """)
    op.execute("""
        CREATE TABLE min_auction_amounts (
            denom                 VARCHAR(128)    PRIMARY KEY,
            send_amount           NUMERIC(39, 0)  NOT NULL,
            start_auction_amount  NUMERIC(39, 0)  NOT NULL,
            updated_at            TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_auction_pairs_updated_at
            BEFORE UPDATE ON auction_pairs
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TRIGGER trg_active_auctions_updated_at
            BEFORE UPDATE ON active_auctions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS min_auction_amounts CASCADE;")
    op.execute("DROP TABLE IF EXISTS twap_prices CASCADE;")
    op.execute("DROP TABLE IF EXISTS auction_fund_sums CASCADE;")
    op.execute("DROP TABLE IF EXISTS auction_funds CASCADE;")
    op.execute("DROP TABLE IF EXISTS active_auctions CASCADE;")
    op.execute("DROP TABLE IF EXISTS auction_pairs CASCADE;")
