"""Profile model — the subset of user profile fields the advisor flow updates.

Keyed by the auth provider's user id.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cardsense.models.base import Base, TimestampMixin


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    email: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    employment_type: Mapped[str | None] = mapped_column(String(30))
    primary_bank: Mapped[str | None] = mapped_column(String(100))
    credit_score: Mapped[int | None] = mapped_column(Integer)
    annual_income: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    existing_cards: Mapped[list[str] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<Profile id={self.id}>"
