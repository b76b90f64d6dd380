"""SQLAlchemy ORM model for the payment_cards table.

Table is created by Alembic migration: alembic/versions/003_create_payment_cards.py
DO NOT add/remove columns here without a corresponding migration.
"""

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.us_common.database import Base


class CardORM(Base):
    __tablename__ = "payment_cards"
    __table_args__ = (UniqueConstraint("number", name="uq_payment_cards_number"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE", name="fk_payment_cards_user"),
        nullable=False,
        index=True,
    )
    number: Mapped[str] = mapped_column(String(19), nullable=False)
    holder: Mapped[str] = mapped_column(String(255), nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
