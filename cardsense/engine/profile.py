"""Profile normalizer — raw questionnaire payloads to a canonical UserProfile.

Two entry shapes exist: the loosely-typed beginner questionnaire (coerced
field by field, never rejected) and the validated advisor body. Both end up
as the same UserProfile with canonical spend categories.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from cardsense.coerce import as_bool, as_mapping, as_number, as_string, as_string_list, finite_or, finite_sum
from cardsense.engine.categories import normalize_spend_category
from cardsense.schemas.cards import CardType
from cardsense.schemas.profile import (
    EmploymentType,
    FlowType,
    RecommendationInput,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Fewer positive categories than this counts as a sparse declaration
SPARSE_CATEGORY_THRESHOLD = 3


def canonical_spend(breakdown: Mapping[str, Any]) -> dict[str, float]:
    """Fold a category → amount mapping onto canonical keys.

    Synonyms (`online_shopping`, `shopping`) are summed. Non-numeric or
    negative amounts become 0, and so does a category total that overflows.
    """
    merged: dict[str, float] = {}
    for category, raw_amount in breakdown.items():
        key = normalize_spend_category(str(category))
        amount = max(0.0, as_number(raw_amount))
        merged[key] = finite_or(merged.get(key, 0.0) + amount)
    return merged


def _preferred_card_type(value: Any) -> CardType | None:
    key = as_string(value).strip().lower().replace("-", "_")
    if not key:
        return None
    try:
        return CardType(key)
    except ValueError:
        return None


def _unique_categories(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        key = normalize_spend_category(value)
        if key not in seen:
            seen.append(key)
    return seen


# ── Beginner questionnaire ──────────────────────────────────────────


def normalize_beginner(raw: Mapping[str, Any]) -> UserProfile:
    """Build a profile from the beginner questionnaire body.

    Never raises: wrong types fall back to zero, empty string or empty list.
    """
    monthly_income = max(0.0, as_number(raw.get("monthlyIncome")))
    annual_income = max(0.0, as_number(raw.get("annualIncome"))) or finite_or(monthly_income * 12)

    spend = canonical_spend(as_mapping(raw.get("spendingBreakdown") or raw.get("spending")))
    declared_categories = _unique_categories(as_string_list(raw.get("primarySpendCategories")))

    monthly_spend = max(0.0, as_number(raw.get("averageMonthlySpend")))
    if not monthly_spend:
        monthly_spend = finite_sum(spend.values())

    age = int(as_number(raw.get("age")))
    goals = as_string_list(raw.get("creditGoals") or raw.get("goals"))
    fd_amount = max(0.0, as_number(raw.get("fdAmount")))

    return UserProfile(
        flow=FlowType.BEGINNER,
        age=age if age > 0 else None,
        monthly_income=monthly_income,
        annual_income=annual_income,
        employment_type=EmploymentType.parse(raw.get("employmentType")),
        city=as_string(raw.get("city")),
        primary_bank=as_string(raw.get("primaryBank")).strip(),
        has_bank_account=as_bool(raw.get("hasBankAccount", raw.get("hasSavingsAccount")), default=True),
        existing_cards=as_string_list(raw.get("existingCards")),
        has_fixed_deposit=as_bool(raw.get("hasFD", raw.get("hasFixedDeposits"))) or fd_amount > 0,
        fd_amount=fd_amount,
        spend_by_category=spend,
        monthly_spend=monthly_spend,
        primary_spend_categories=declared_categories,
        primary_goal=goals[0] if goals else None,
        credit_goals=goals,
        preferred_card_type=_preferred_card_type(raw.get("preferredCardType")),
    )


# ── Advisor body ────────────────────────────────────────────────────


def normalize_advisor(payload: RecommendationInput) -> UserProfile:
    """Build a profile from a validated /api/ai/recommend body.

    Statement-derived category totals are blended in the same way as
    transaction history.
    """
    spend = canonical_spend(payload.spending_breakdown)
    monthly_spend = payload.monthly_spending or finite_sum(spend.values())
    if not monthly_spend and payload.parsed_statement and payload.parsed_statement.total_spending:
        monthly_spend = payload.parsed_statement.total_spending

    goals = list(payload.credit_goals)
    profile = UserProfile(
        flow=FlowType.ADVISOR,
        age=payload.age,
        monthly_income=payload.monthly_income,
        annual_income=payload.annual_income or finite_or(payload.monthly_income * 12),
        employment_type=EmploymentType.parse(payload.employment_type),
        city=payload.city.strip(),
        primary_bank=payload.primary_bank.strip(),
        existing_cards=list(payload.existing_cards),
        has_fixed_deposit=payload.has_fixed_deposits or (payload.fd_amount or 0) > 0,
        fd_amount=payload.fd_amount or 0,
        spend_by_category=spend,
        monthly_spend=monthly_spend,
        primary_goal=payload.primary_goal or (goals[0] if goals else None),
        credit_goals=goals,
        credit_score=int(payload.cibil_score),
        follow_up_answers={k: v for k, v in payload.follow_up_answers.items() if v},
    )

    statement = payload.parsed_statement
    if statement and statement.category_breakdown:
        profile = blend_spend_history(profile, statement.category_breakdown)
    return profile


# ── Transaction history blending ────────────────────────────────────


def is_sparse(profile: UserProfile) -> bool:
    positive = [amount for amount in profile.spend_by_category.values() if amount > 0]
    return len(positive) < SPARSE_CATEGORY_THRESHOLD


def blend_spend_history(profile: UserProfile, history: Mapping[str, Any]) -> UserProfile:
    """Add observed per-category totals on top of declared amounts.

    Only applied when the declared breakdown is sparse. Declared amounts are
    never replaced, so a category the user stated keeps at least its
    declared value.
    """
    observed = canonical_spend(history)
    if not observed or not is_sparse(profile):
        return profile

    merged = dict(profile.spend_by_category)
    for category, amount in observed.items():
        merged[category] = finite_or(merged.get(category, 0.0) + amount)

    update: dict[str, Any] = {"spend_by_category": merged}
    if not profile.monthly_spend:
        update["monthly_spend"] = finite_sum(merged.values())

    logger.debug(
        "Blended %d observed categories into %s profile",
        len(observed),
        profile.flow.value,
    )
    return profile.model_copy(update=update)
