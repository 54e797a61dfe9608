"""SQLAlchemy ORM models for CardSense.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from cardsense.models.audit import AuditLog
from cardsense.models.base import Base
from cardsense.models.card import CreditCard
from cardsense.models.credit_score import CreditScoreHistory
from cardsense.models.profile import Profile
from cardsense.models.recommendation import Recommendation
from cardsense.models.transaction import SpendingTransaction

__all__ = [
    "Base",
    "AuditLog",
    "CreditCard",
    "CreditScoreHistory",
    "Profile",
    "Recommendation",
    "SpendingTransaction",
]
