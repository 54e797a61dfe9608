"""Eligibility filter — which catalog cards a profile plausibly qualifies for.

Hard bank-side constraints (credit score, age window) are never relaxed.
Income is self-reported and often zero for students, so it is the only
constraint dropped when the strict pool comes back empty.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from cardsense.schemas.cards import CardRecord
from cardsense.schemas.profile import UserProfile


class EligibilityPool(BaseModel):
    """Cards to score, and whether the income constraint had to be dropped."""

    cards: tuple[CardRecord, ...]
    relaxed: bool = False


def passes_base_rules(card: CardRecord, profile: UserProfile, age: int | None, owned: set[str]) -> bool:
    """Dedup against owned cards, then credit score, then age window."""
    if card.normalized_name in owned:
        return False
    if card.min_cibil_score and profile.credit_score is not None and profile.credit_score < card.min_cibil_score:
        return False
    if age is not None and not card.admits_age(age):
        return False
    return True


def meets_income(card: CardRecord, profile: UserProfile) -> bool:
    threshold = card.min_income_for(profile.employment_type.is_self_employed)
    return not threshold or profile.annual_income >= threshold


def filter_eligible(
    profile: UserProfile,
    catalog: Sequence[CardRecord],
    age: int | None = None,
) -> EligibilityPool:
    """Strict pool if non-empty, else the income-relaxed pool, else the whole catalog.

    Never returns an empty pool for a non-empty catalog. `age` overrides
    `profile.age` (the advisor flow estimates it from an age band).
    """
    applicant_age = age if age is not None else profile.age
    owned = profile.normalized_existing_cards()

    base = [card for card in catalog if passes_base_rules(card, profile, applicant_age, owned)]
    strict = [card for card in base if meets_income(card, profile)]

    if strict:
        return EligibilityPool(cards=tuple(strict))
    if base:
        return EligibilityPool(cards=tuple(base), relaxed=True)
    return EligibilityPool(cards=tuple(catalog), relaxed=True)


def age_eligible(catalog: Sequence[CardRecord], age: int | None) -> tuple[CardRecord, ...]:
    """Beginner pool: cards whose age window admits the applicant, else the whole catalog."""
    if age is None:
        return tuple(catalog)
    admitted = tuple(card for card in catalog if card.admits_age(age))
    return admitted or tuple(catalog)
