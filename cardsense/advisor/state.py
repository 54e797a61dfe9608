"""Serializable questionnaire state for the advisor and beginner flows.

The state object is passed through the steps explicitly and saved or
loaded through advisor.store; nothing here touches storage.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from cardsense.coerce import finite_sum
from cardsense.engine.categories import normalize_spend_category
from cardsense.engine.questions import top_spend_categories
from cardsense.schemas.profile import Persona, RecommendationInput

MAX_SPENDING_CATEGORIES = 5


class CreditScoreRange(str, Enum):
    NO_HISTORY = "no_history"
    BELOW_600 = "below_600"
    FROM_600_TO_649 = "600_649"
    FROM_650_TO_699 = "650_699"
    FROM_700_TO_749 = "700_749"
    FROM_750_TO_799 = "750_799"
    ABOVE_800 = "800_plus"


# Representative score per band; no_history sits at the bottom of the valid range
CREDIT_BAND_SCORES: dict[CreditScoreRange, int] = {
    CreditScoreRange.NO_HISTORY: 300,
    CreditScoreRange.BELOW_600: 550,
    CreditScoreRange.FROM_600_TO_649: 625,
    CreditScoreRange.FROM_650_TO_699: 675,
    CreditScoreRange.FROM_700_TO_749: 725,
    CreditScoreRange.FROM_750_TO_799: 775,
    CreditScoreRange.ABOVE_800: 850,
}


def credit_band_for_score(score: float | None) -> CreditScoreRange:
    """Band for a numeric score; 300 and below (or unknown) means no history."""
    if score is None or score <= 300:
        return CreditScoreRange.NO_HISTORY
    if score < 600:
        return CreditScoreRange.BELOW_600
    if score < 650:
        return CreditScoreRange.FROM_600_TO_649
    if score < 700:
        return CreditScoreRange.FROM_650_TO_699
    if score < 750:
        return CreditScoreRange.FROM_700_TO_749
    if score < 800:
        return CreditScoreRange.FROM_750_TO_799
    return CreditScoreRange.ABOVE_800


class PrimaryGoal(str, Enum):
    REWARDS_CASHBACK = "rewards_cashback"
    LOW_INTEREST = "low_interest"
    CREDIT_BUILDING = "credit_building"
    TRAVEL_PERKS = "travel_perks"
    FUEL_SAVINGS = "fuel_savings"
    ONLINE_SHOPPING = "online_shopping"
    PREMIUM_LIFESTYLE = "premium_lifestyle"
    DEBT_MANAGEMENT = "debt_management"


# ── Advisor ─────────────────────────────────────────────────────────


class AdvisorFormState(BaseModel):
    """Everything the advisor questionnaire collects, grouped by phase."""

    # Basics
    credit_score: CreditScoreRange = CreditScoreRange.FROM_700_TO_749
    employment_type: str = "salaried"
    monthly_income: float = Field(default=50_000, ge=0)
    age: int = Field(default=28, ge=0, le=120)
    city: str = ""
    primary_bank: str = ""

    # Financial habits
    payment_behavior: str = "full_always"
    apr_tolerance: str = "doesnt_matter"
    annual_fee_tolerance: str = "under_2000"
    discipline_level: str = "very_disciplined"
    interested_in_intro_offers: bool = False

    # Spending
    top_spending_categories: list[str] = Field(default_factory=list)
    spending_amounts: dict[str, float] = Field(default_factory=dict)
    uses_card_abroad: bool = False
    monthly_spend_estimate: float = Field(default=30_000, ge=0)
    desired_credit_limit: float = Field(default=100_000, ge=0)

    # Goals
    primary_goal: PrimaryGoal = PrimaryGoal.REWARDS_CASHBACK
    secondary_goals: list[str] = Field(default_factory=list)
    card_complexity: str = "one_simple"

    # Persona-specific
    detected_persona: Persona | None = None
    existing_cards: list[str] = Field(default_factory=list)
    has_emergency_fund: bool = True
    has_fd: bool = False
    fd_amount: float = Field(default=0, ge=0)
    preferred_reward_type: str = "cashback"
    travel_frequency: str = "rarely"
    preferred_airlines: list[str] = Field(default_factory=list)
    preferred_platforms: list[str] = Field(default_factory=list)
    wants_separate_business_card: bool = False
    business_expense_categories: list[str] = Field(default_factory=list)
    debt_reduction_primary: bool = False
    willing_secured_card: bool = False
    upgrade_path_important: bool = False

    # Navigation
    current_step: int = 0
    completed_steps: list[int] = Field(default_factory=list)

    def set_step(self, step: int) -> None:
        self.current_step = step

    def mark_step_complete(self, step: int) -> None:
        if step not in self.completed_steps:
            self.completed_steps.append(step)

    def toggle_spending_category(self, category: str) -> None:
        """Add or remove a top category; adding beyond the maximum is ignored."""
        if category in self.top_spending_categories:
            self.top_spending_categories.remove(category)
        elif len(self.top_spending_categories) < MAX_SPENDING_CATEGORIES:
            self.top_spending_categories.append(category)

    def toggle_secondary_goal(self, goal: str) -> None:
        if goal in self.secondary_goals:
            self.secondary_goals.remove(goal)
        else:
            self.secondary_goals.append(goal)

    def update_spending_amount(self, category: str, amount: float) -> None:
        self.spending_amounts[category] = max(0.0, amount)

    def total_monthly_spend(self) -> float:
        return finite_sum(self.spending_amounts.values())

    @property
    def numeric_credit_score(self) -> int:
        return CREDIT_BAND_SCORES[self.credit_score]

    def to_api_payload(self) -> dict[str, Any]:
        """Body for POST /api/ai/recommend (camelCase, as the client sends it)."""
        return {
            "cibilScore": self.numeric_credit_score,
            "age": self.age,
            "city": self.city,
            "primaryBank": self.primary_bank,
            "employmentType": self.employment_type,
            "monthlyIncome": self.monthly_income,
            "annualIncome": self.monthly_income * 12,
            "paymentBehavior": self.payment_behavior,
            "aprTolerance": self.apr_tolerance,
            "annualFeeTolerance": self.annual_fee_tolerance,
            "topSpendingCategories": list(self.top_spending_categories),
            "spendingBreakdown": dict(self.spending_amounts),
            "monthlySpending": self.total_monthly_spend(),
            "usesCardAbroad": self.uses_card_abroad,
            "desiredCreditLimit": self.desired_credit_limit,
            "primaryGoal": self.primary_goal.value,
            "secondaryGoals": list(self.secondary_goals),
            "creditGoals": [self.primary_goal.value, *self.secondary_goals],
            "detectedPersona": self.detected_persona.value if self.detected_persona else None,
            "existingCards": list(self.existing_cards),
            "hasFixedDeposits": self.has_fd,
            "fdAmount": self.fd_amount,
            "preferredRewardType": self.preferred_reward_type,
            "travelFrequency": self.travel_frequency,
            "willingSecuredCard": self.willing_secured_card,
        }

    @classmethod
    def from_recommendation_input(cls, payload: RecommendationInput) -> AdvisorFormState:
        """Rebuild enough state from a recommend body to run persona detection.

        Without declared top categories the largest spendingBreakdown entries stand in.
        """
        goal = payload.primary_goal or (payload.credit_goals[0] if payload.credit_goals else "")
        try:
            primary_goal = PrimaryGoal(goal)
        except ValueError:
            primary_goal = PrimaryGoal.REWARDS_CASHBACK
        return cls(
            credit_score=credit_band_for_score(payload.cibil_score),
            employment_type=payload.employment_type,
            monthly_income=payload.monthly_income,
            age=payload.age if payload.age is not None else 28,
            city=payload.city,
            primary_bank=payload.primary_bank,
            top_spending_categories=(
                list(payload.top_spending_categories) or top_spend_categories(payload.spending_breakdown)
            ),
            spending_amounts=dict(payload.spending_breakdown),
            primary_goal=primary_goal,
            secondary_goals=[g for g in payload.credit_goals if g != goal],
            existing_cards=list(payload.existing_cards),
            has_fd=payload.has_fixed_deposits,
            fd_amount=payload.fd_amount or 0,
        )


# ── Beginner ────────────────────────────────────────────────────────


def _default_beginner_spending() -> dict[str, float]:
    return {
        "groceries": 5000,
        "dining": 3000,
        "online_shopping": 4000,
        "fuel": 2000,
        "utilities": 2000,
        "entertainment": 2000,
        "travel": 3000,
        "healthcare": 1000,
        "education": 0,
        "other": 1000,
    }


class BeginnerFormState(BaseModel):
    age: int = Field(default=25, ge=0, le=120)
    city: str = ""
    employment_type: str = "salaried"
    monthly_income: float = Field(default=30_000, ge=0)
    primary_bank: str = ""
    has_savings_account: bool = True
    has_fd: bool = False
    fd_amount: float | None = None
    spending: dict[str, float] = Field(default_factory=_default_beginner_spending)
    goals: list[str] = Field(default_factory=list)
    current_step: int = 0

    @property
    def annual_income(self) -> float:
        return self.monthly_income * 12

    def update_spending(self, category: str, amount: float) -> None:
        self.spending[category] = max(0.0, amount)

    def total_monthly_spend(self) -> float:
        return finite_sum(self.spending.values())

    def to_beginner_input(self) -> dict[str, Any]:
        """Body for POST /api/ai/beginner."""
        employment = self.employment_type
        if employment in ("business", "freelancer"):
            employment = "self_employed"

        ranked = sorted(self.spending.items(), key=lambda item: item[1], reverse=True)[:3]
        primary = [normalize_spend_category(category) for category, amount in ranked if amount > 0]

        return {
            "age": self.age,
            "city": self.city,
            "employmentType": employment,
            "monthlyIncome": self.monthly_income,
            "primaryBank": self.primary_bank,
            "hasBankAccount": self.has_savings_account,
            "averageMonthlySpend": self.total_monthly_spend(),
            "primarySpendCategories": primary,
            "spendingBreakdown": dict(self.spending),
            "creditGoals": list(self.goals),
            "hasFD": self.has_fd,
            "fdAmount": self.fd_amount or 0,
        }
