"""User profile schemas: the validated advisor request and the normalized profile.

RecommendationInput is the strict request body for /api/ai/recommend.
UserProfile is the canonical per-request snapshot both engine flows score against.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cardsense.schemas.cards import CardType


class FlowType(str, Enum):
    """Which questionnaire produced the profile."""

    BEGINNER = "beginner"
    ADVISOR = "experienced"


class EmploymentType(str, Enum):
    SALARIED = "salaried"
    SELF_EMPLOYED = "self_employed"
    BUSINESS_OWNER = "business_owner"
    FREELANCER = "freelancer"
    STUDENT = "student"
    UNEMPLOYED = "unemployed"
    HOMEMAKER = "homemaker"
    RETIRED = "retired"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> EmploymentType:
        """Map free-form employment text onto a member; unknown text becomes OTHER."""
        if isinstance(value, EmploymentType):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        if not key:
            return cls.OTHER
        alias = _EMPLOYMENT_ALIASES.get(key)
        if alias is not None:
            return alias
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER

    @property
    def is_self_employed(self) -> bool:
        return self in (EmploymentType.SELF_EMPLOYED, EmploymentType.BUSINESS_OWNER, EmploymentType.FREELANCER)


_EMPLOYMENT_ALIASES: dict[str, EmploymentType] = {
    "business": EmploymentType.BUSINESS_OWNER,
    "businessman": EmploymentType.BUSINESS_OWNER,
    "self_employed_professional": EmploymentType.SELF_EMPLOYED,
    "selfemployed": EmploymentType.SELF_EMPLOYED,
    "freelance": EmploymentType.FREELANCER,
    "salary": EmploymentType.SALARIED,
    "employed": EmploymentType.SALARIED,
    "not_working": EmploymentType.UNEMPLOYED,
}


class Persona(str, Enum):
    """User archetypes that tailor follow-up questions and result narrative."""

    STUDENT_FIRSTTIME = "student_firsttime"
    CREDIT_BUILDER = "credit_builder"
    SELF_EMPLOYED = "self_employed"
    FREQUENT_TRAVELLER = "frequent_traveller"
    ONLINE_SHOPPER = "online_shopper"
    REWARDS_MAXIMIZER = "rewards_maximizer"
    SALARIED_EVERYDAY = "salaried_everyday"


# ── Advisor request body ─────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class ParsedStatement(_CamelModel):
    """Totals extracted from an uploaded bank statement (parsed upstream)."""

    total_spending: float | None = Field(default=None, ge=0)
    category_breakdown: dict[str, float] | None = None

    @field_validator("category_breakdown")
    @classmethod
    def _non_negative(cls, v: dict[str, float] | None) -> dict[str, float] | None:
        if v is not None and any(amount < 0 for amount in v.values()):
            msg = "Statement category amounts must be non-negative"
            raise ValueError(msg)
        return v


class RecommendationInput(_CamelModel):
    """Validated body of POST /api/ai/recommend."""

    cibil_score: float = Field(ge=300, le=900)
    monthly_income: float = Field(ge=0)
    annual_income: float = Field(ge=0)
    employment_type: str = Field(min_length=1)
    primary_bank: str = Field(min_length=1)
    city: str = Field(min_length=1)
    existing_cards: list[str] = Field(default_factory=list)
    has_fixed_deposits: bool = False
    fd_amount: float | None = Field(default=None, ge=0)
    monthly_spending: float | None = Field(default=None, ge=0)
    spending_breakdown: dict[str, float] = Field(default_factory=dict)
    credit_goals: list[str] = Field(default_factory=list)
    parsed_statement: ParsedStatement | None = None
    follow_up_answers: dict[str, str] = Field(default_factory=dict)

    # Sent by the advisor questionnaire; used for persona detection only
    age: int | None = Field(default=None, ge=0, le=120)
    primary_goal: str | None = None
    top_spending_categories: list[str] = Field(default_factory=list)
    detected_persona: Persona | None = None

    @field_validator("spending_breakdown")
    @classmethod
    def _non_negative_spend(cls, v: dict[str, float]) -> dict[str, float]:
        negative = [category for category, amount in v.items() if amount < 0]
        if negative:
            msg = f"Spending amounts must be non-negative: {', '.join(negative)}"
            raise ValueError(msg)
        return v


# ── Normalized profile ───────────────────────────────────────────────


class UserProfile(BaseModel):
    """Canonical financial snapshot for a single recommendation request.

    Spend keys are canonical categories (see engine.categories); incomes are INR.
    Not persisted directly.
    """

    flow: FlowType
    age: int | None = None
    monthly_income: float = 0
    annual_income: float = 0
    employment_type: EmploymentType = EmploymentType.OTHER
    city: str = ""
    primary_bank: str = ""
    has_bank_account: bool = True
    existing_cards: list[str] = Field(default_factory=list)
    has_fixed_deposit: bool = False
    fd_amount: float = 0
    spend_by_category: dict[str, float] = Field(default_factory=dict)
    monthly_spend: float = 0
    primary_spend_categories: list[str] = Field(default_factory=list)
    primary_goal: str | None = None
    credit_goals: list[str] = Field(default_factory=list)
    preferred_card_type: CardType | None = None
    credit_score: int | None = None
    follow_up_answers: dict[str, str] = Field(default_factory=dict)

    @field_validator("spend_by_category")
    @classmethod
    def _non_negative_spend(cls, v: dict[str, float]) -> dict[str, float]:
        if any(amount < 0 for amount in v.values()):
            msg = "spend_by_category amounts must be non-negative"
            raise ValueError(msg)
        return v

    def top_categories(self, limit: int = 3) -> list[str]:
        """Categories with positive spend, highest first (stable on ties)."""
        ranked = sorted(
            ((category, amount) for category, amount in self.spend_by_category.items() if amount > 0),
            key=lambda item: item[1],
            reverse=True,
        )
        return [category for category, _ in ranked[:limit]]

    @property
    def is_low_income_or_student(self) -> bool:
        return self.annual_income <= 300_000 or self.employment_type in (
            EmploymentType.STUDENT,
            EmploymentType.UNEMPLOYED,
            EmploymentType.OTHER,
            EmploymentType.HOMEMAKER,
        )

    def focus_categories(self, limit: int = 3) -> list[str]:
        """Categories the user asked to optimize; declared first, then by spend."""
        return list(self.primary_spend_categories) or self.top_categories(limit)

    def normalized_existing_cards(self) -> set[str]:
        return {" ".join(name.lower().split()) for name in self.existing_cards if name.strip()}
