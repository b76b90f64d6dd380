"""User business constants."""

# Must match alembic/versions/002_create_users.py
EMAIL_UNIQUE_CONSTRAINT = "uq_users_email"

MAX_PAGE_SIZE = 100
