"""Card business constants."""

MAX_CARDS_PER_USER = 5

CARD_NUMBER_PATTERN = r"^[0-9]{4}-[0-9]{4}-[0-9]{4}-[0-9]{4}$"

# Must match alembic/versions/003_create_payment_cards.py
CARD_NUMBER_UNIQUE_CONSTRAINT = "uq_payment_cards_number"
CARD_OWNER_FK_CONSTRAINT = "fk_payment_cards_user"
