"""Recommendation output schemas for both questionnaire flows.

Card items serialize with camelCase keys; response envelopes keep the
snake_case keys clients already depend on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cardsense.schemas.cards import CardRecord
from cardsense.schemas.profile import FlowType, Persona


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScoredCard(BaseModel):
    """A card with the bounded integer score it earned for one profile."""

    model_config = ConfigDict(frozen=True)

    card: CardRecord
    score: int


# ── Beginner flow ────────────────────────────────────────────────────


class BeginnerRecommendationItem(_CamelModel):
    card_id: str
    card_name: str
    bank: str
    score: int
    reasoning: str
    annual_value: int
    key_perks: list[str] = Field(default_factory=list)
    benefit_summary: list[str] = Field(default_factory=list)


class ApplicationGuide(BaseModel):
    steps: list[str]
    documents_needed: list[str]
    tips: list[str]


class CreditEducation(BaseModel):
    topics: list[str]
    tips: list[str]


class BeginnerResult(BaseModel):
    recommendations: list[BeginnerRecommendationItem]
    application_guide: ApplicationGuide
    credit_education: CreditEducation
    overall_analysis: str


class BeginnerResponse(BaseModel):
    success: bool = True
    recommendation_id: str | None = None
    fallback_catalog: bool = False
    fallback_reason: str | None = None
    data: BeginnerResult


# ── Advisor flow ─────────────────────────────────────────────────────


class AdvisorCardItem(_CamelModel):
    id: str
    name: str
    bank: str
    score: int
    reason: str
    annual_fee: float
    pros: list[str] = Field(default_factory=list)
    best_categories: list[str] = Field(default_factory=list)
    annual_value: int = 0


class AdvisorResult(BaseModel):
    cards: list[AdvisorCardItem]
    analysis: str
    used_relaxed_eligibility: bool = False
    model: str = "rule_based"


class FollowUpOption(BaseModel):
    value: str = Field(min_length=1)
    label: str = Field(min_length=1)
    description: str = Field(min_length=4)


class FollowUpQuestion(BaseModel):
    id: str = Field(min_length=2)
    question: str = Field(min_length=10)
    why: str = Field(min_length=8)
    options: list[FollowUpOption] = Field(min_length=2, max_length=5)


class AdvisorMetadata(_CamelModel):
    model: str
    catalog_source: str
    fallback_reason: str | None = None


class NeedsMoreInfoResponse(BaseModel):
    status: Literal["needs_more_info"] = "needs_more_info"
    questions: list[FollowUpQuestion]
    persona: Persona | None = None
    metadata: AdvisorMetadata


class AdvisorSuccessResponse(_CamelModel):
    status: Literal["success"] = "success"
    cards: list[AdvisorCardItem]
    analysis: str
    recommendation_id: str | None = None
    persona: Persona | None = None
    metadata: AdvisorMetadata


# ── Persisted bundle ─────────────────────────────────────────────────


class RecommendationRecord(BaseModel):
    """Canonical persisted recommendation; storage shapes are adapted from this."""

    user_id: str
    flow: FlowType
    input_snapshot: dict[str, Any]
    cards: list[dict[str, Any]]
    analysis: str
    model: str
    application_guide: dict[str, Any] | None = None
    persona: Persona | None = None


class LatestRecommendation(_CamelModel):
    id: str
    cards: list[dict[str, Any]]
    analysis: str | None = None
    created_at: datetime | None = None


class LatestRecommendationResponse(BaseModel):
    recommendation: LatestRecommendation | None = None
