"""003: create payment_cards table

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
        CREATE TABLE payment_cards (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             BIGINT          NOT NULL,
            number              VARCHAR(19)     NOT NULL,
            holder              VARCHAR(255)    NOT NULL,
            expiration_date     DATE            NOT NULL,
            active              BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_payment_cards_number  UNIQUE (number),
            CONSTRAINT fk_payment_cards_user    FOREIGN KEY (user_id)
                REFERENCES users (id) ON DELETE CASCADE,
            CONSTRAINT ck_payment_cards_number_format
                CHECK (number ~ '^[0-9]{4}-[0-9]{4}-[0-9]{4}-[0-9]{4}$')
        );
    """)
    op.execute("CREATE INDEX idx_payment_cards_user_id ON payment_cards (user_id);")
    op.execute("""
        CREATE TRIGGER trg_payment_cards_updated_at
            BEFORE UPDATE ON payment_cards
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE payment_cards IS 'Payment cards; at most 5 per user, enforced by the service';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payment_cards CASCADE;")
