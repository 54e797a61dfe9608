"""CreditCard model — the card catalog table.

Read-only from the engine's point of view. Rows are seeded externally and
may come from older schemas, so the catalog provider reads raw mappings and
normalizes them instead of relying on these attributes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cardsense.models.base import Base, TimestampMixin


class CreditCard(TimestampMixin, Base):
    """A credit card product offered by an Indian issuer."""

    __tablename__ = "credit_cards"

    id: Mapped[str] = mapped_column(String(80), primary_key=True, comment="Slug, e.g. hdfc-millennia")

    bank_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    card_name: Mapped[str] = mapped_column(String(150), nullable=False)
    card_network: Mapped[str | None] = mapped_column(String(30))
    card_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # Fees (INR)
    joining_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    annual_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    annual_fee_waiver_spend: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    # Eligibility
    min_income_salaried: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), comment="Annual INR")
    min_income_self_employed: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), comment="Annual INR")
    min_cibil_score: Mapped[int | None] = mapped_column(Integer)
    min_age: Mapped[int | None] = mapped_column(Integer)
    max_age: Mapped[int | None] = mapped_column(Integer)

    # Rewards
    reward_rate_default: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=1, nullable=False)
    reward_rate_categories: Mapped[dict[str, Any] | None] = mapped_column(JSONB, comment="category -> percent")
    lounge_access: Mapped[str | None] = mapped_column(String(30), comment="none, domestic, international, unlimited")

    # Feature flags
    fuel_surcharge_waiver: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    emi_conversion: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    golf_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    concierge: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Copy
    description: Mapped[str | None] = mapped_column(Text)
    pros: Mapped[list[str] | None] = mapped_column(JSONB)
    cons: Mapped[list[str] | None] = mapped_column(JSONB)
    best_for: Mapped[list[str] | None] = mapped_column(JSONB)

    popularity_score: Mapped[int] = mapped_column(Integer, default=50, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<CreditCard id={self.id} bank={self.bank_name}>"
