"""CreditScoreHistory model — credit scores captured from the advisor flow."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cardsense.models.base import Base, TimestampMixin, UUIDKeyMixin


class CreditScoreHistory(UUIDKeyMixin, TimestampMixin, Base):
    __tablename__ = "credit_score_history"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    credit_score: Mapped[int] = mapped_column(Integer, nullable=False)
    score_date: Mapped[date] = mapped_column(Date, nullable=False)
    score_source: Mapped[str] = mapped_column(String(30), default="manual", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<CreditScoreHistory user={self.user_id} score={self.credit_score}>"
