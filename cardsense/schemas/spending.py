"""Spending transaction and credit score history schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cardsense.engine.categories import normalize_spend_category

# Numeric(12, 2) column bound
MAX_TRANSACTION_AMOUNT = 9_999_999_999.99


class TransactionCreate(BaseModel):
    """Body of POST /api/spending. The category is stored under its canonical key."""

    model_config = ConfigDict(allow_inf_nan=False)

    amount: float = Field(gt=0, le=MAX_TRANSACTION_AMOUNT)
    category: str = Field(min_length=1, max_length=50)
    merchant: str | None = Field(default=None, max_length=150)
    transaction_date: date = Field(default_factory=date.today)
    source: Literal["manual", "bank_statement"] = "manual"

    @field_validator("category")
    @classmethod
    def _canonical_category(cls, value: str) -> str:
        return normalize_spend_category(value)

    @field_validator("merchant")
    @classmethod
    def _blank_merchant(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: float
    category: str
    merchant: str | None = None
    transaction_date: date
    source: str
    created_at: datetime | None = None


class SpendingAggregates(BaseModel):
    total: float = 0
    by_category: dict[str, float] = Field(default_factory=dict)
    count: int = 0

    @classmethod
    def of(cls, transactions: list[TransactionOut]) -> SpendingAggregates:
        by_category: dict[str, float] = {}
        for txn in transactions:
            key = normalize_spend_category(txn.category)
            by_category[key] = round(by_category.get(key, 0.0) + txn.amount, 2)
        return cls(
            total=round(sum(txn.amount for txn in transactions), 2),
            by_category=by_category,
            count=len(transactions),
        )


class SpendingListResponse(BaseModel):
    transactions: list[TransactionOut]
    aggregates: SpendingAggregates


class CreditScoreEntry(BaseModel):
    credit_score: int
    score_date: date
    score_source: str = "manual"
    notes: str | None = None


class CreditScoreHistoryResponse(BaseModel):
    history: list[CreditScoreEntry]
