"""002: create users table

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
        CREATE TABLE users (
            id              BIGSERIAL       PRIMARY KEY,
            name            VARCHAR(255)    NOT NULL,
            surname         VARCHAR(255)    NOT NULL,
            birth_date      DATE            NOT NULL,
            email           VARCHAR(255)    NOT NULL,
            active          BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email       UNIQUE (email),
            CONSTRAINT ck_users_name_len    CHECK (LENGTH(name) >= 3),
            CONSTRAINT ck_users_surname_len CHECK (LENGTH(surname) >= 3)
        );
    """)
    op.execute("CREATE INDEX idx_users_surname_name ON users (LOWER(surname), LOWER(name));")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Registered users; owners of payment cards';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
