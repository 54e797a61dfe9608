"""Recommendation model — one persisted result per completed questionnaire.

Superseded (not merged) by the next submission; deletable on "start over".
Older deployments use different column names; see persistence.recommendations.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cardsense.models.base import Base, TimestampMixin, UUIDKeyMixin


class Recommendation(UUIDKeyMixin, TimestampMixin, Base):
    """A ranked card list with its analysis text."""

    __tablename__ = "recommendations"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    recommendation_type: Mapped[str] = mapped_column(String(30), nullable=False, comment="beginner, experienced")

    input_snapshot: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    recommended_cards: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False)
    ai_analysis_text: Mapped[str | None] = mapped_column(Text)
    application_guide: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    model_used: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<Recommendation id={self.id} user={self.user_id} type={self.recommendation_type}>"
