"""Persona detector — first-match priority list over the advisor questionnaire.

Thin-file and credit-risk signals are checked before employment, and
employment before spend patterns: a high-income freelancer who travels is
still `self_employed`.
"""

from __future__ import annotations

from cardsense.advisor.state import AdvisorFormState, CreditScoreRange, PrimaryGoal
from cardsense.engine.categories import normalize_spend_category
from cardsense.schemas.profile import EmploymentType, Persona

HIGH_INCOME_MONTHLY = 150_000
CASHBACK_INCOME_MONTHLY = 80_000
FIRST_TIMER_MAX_AGE = 23


def detect_persona(state: AdvisorFormState) -> Persona:
    employment = EmploymentType.parse(state.employment_type)
    goal = state.primary_goal
    no_history = state.credit_score == CreditScoreRange.NO_HISTORY
    categories = {normalize_spend_category(c) for c in state.top_spending_categories}

    if employment == EmploymentType.STUDENT or (state.age <= FIRST_TIMER_MAX_AGE and no_history):
        return Persona.STUDENT_FIRSTTIME

    if (
        goal in (PrimaryGoal.CREDIT_BUILDING, PrimaryGoal.DEBT_MANAGEMENT)
        or state.credit_score == CreditScoreRange.BELOW_600
        or no_history
    ):
        return Persona.CREDIT_BUILDER

    if employment.is_self_employed:
        return Persona.SELF_EMPLOYED

    if goal == PrimaryGoal.TRAVEL_PERKS or "travel" in categories:
        return Persona.FREQUENT_TRAVELLER

    if goal == PrimaryGoal.ONLINE_SHOPPING or "shopping" in categories:
        return Persona.ONLINE_SHOPPER

    if (
        goal == PrimaryGoal.PREMIUM_LIFESTYLE
        or state.monthly_income >= HIGH_INCOME_MONTHLY
        or (goal == PrimaryGoal.REWARDS_CASHBACK and state.monthly_income >= CASHBACK_INCOME_MONTHLY)
    ):
        return Persona.REWARDS_MAXIMIZER

    return Persona.SALARIED_EVERYDAY
