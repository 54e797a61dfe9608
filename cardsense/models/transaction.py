"""SpendingTransaction model — user transactions imported from statements.

Only read here: recent totals per category enrich sparse spend declarations.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from cardsense.models.base import Base, TimestampMixin, UUIDKeyMixin


class SpendingTransaction(UUIDKeyMixin, TimestampMixin, Base):
    __tablename__ = "spending_transactions"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    merchant: Mapped[str | None] = mapped_column(String(150))
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(30), default="manual", nullable=False)

    def __repr__(self) -> str:
        return f"<SpendingTransaction user={self.user_id} {self.category}={self.amount}>"
