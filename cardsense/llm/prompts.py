"""Prompt templates for LLM-assisted questions and recommendations.

System prompts carry the instructions and the required JSON shape; the
builders render the per-request user message (profile plus catalog) as JSON.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from cardsense.engine.assembler import format_inr
from cardsense.engine.questions import REQUIRED_FOLLOW_UP_IDS, top_spend_categories
from cardsense.schemas.cards import CardRecord
from cardsense.schemas.profile import RecommendationInput, UserProfile

ADVISOR_CATALOG_CONTEXT_LIMIT = 80

IDENTITY = """You are an expert credit card advisor for Indian users. \
You only recommend cards that appear in the catalog you are given, and you always answer with JSON only."""

BEGINNER_RECOMMENDATION_PROMPT = IDENTITY + """

Analyze the beginner user's profile and recommend the top 3 credit cards from the available cards
(already pre-filtered by eligibility).

Respond with JSON in this structure:
{
  "recommendations": [
    {"cardId": "catalog id", "cardName": "Card Name", "score": 85, "reasoning": "Why this card suits this beginner..."}
  ],
  "application_guide": {"steps": ["..."], "documents_needed": ["PAN card", "..."], "tips": ["..."]},
  "credit_education": {"topics": ["Credit utilization", "..."], "tips": ["Pay full balance every month", "..."]},
  "overall_analysis": "Summary of the user's profile and recommendation strategy..."
}

Important:
- Focus on entry-level cards with low fees and easy approval.
- Prioritize cards with simple reward structures.
- Consider cards from their primary bank for easier approval.
- Keep reasoning beginner-friendly and encouraging.
- Use Indian currency formatting (INR, lakh notation where appropriate).
- Assess realistic approval likelihood based on age, income, employment and banking relationship."""

FOLLOW_UP_QUESTIONS_PROMPT = IDENTITY + """

You are designing follow-up questions for a credit card recommendation flow in India.
Ask 5 concise multiple-choice questions that will improve recommendation precision.

Respond with JSON in this structure:
{
  "questions": [
    {
      "id": "age_band",
      "question": "Question text",
      "why": "Why this matters",
      "options": [{"value": "value_1", "label": "Option label", "description": "impact/tradeoff"}]
    }
  ]
}

Rules:
- Keep exactly 5 questions.
- Use these exact IDs, in this exact order: """ + ", ".join(REQUIRED_FOLLOW_UP_IDS) + """.
- age_band must include 18_20.
- income_profile must include no_personal_income and stipend_or_part_time options.
- secured_card_readiness must capture FD-backed willingness (have_fd_now, can_start_fd, unsecured_only).
- primary_spend_focus options must reflect the user's top spending categories.
- value_priority options must cover low-fee credit building, cashback, travel, and UPI convenience.
- Every question must have 3 or 4 options.
- Keep wording simple and specific for Indian users.
- Questions must be realistic for students, including users with zero personal income."""

ADVISOR_RECOMMENDATION_PROMPT = IDENTITY + """

Recommend the best 3 to 5 cards for this user based on their profile and follow-up preferences.
Do not recommend cards already owned by the user.
Prioritize realistic eligibility and practical net value.

Respond with JSON in this structure:
{
  "analysis": "4-8 sentence practical analysis.",
  "cards": [
    {
      "cardName": "Exact card name",
      "bank": "Bank name",
      "score": 0-100,
      "reason": "Why this card is suitable in 2-4 lines.",
      "keyPerks": ["perk 1", "perk 2", "perk 3"]
    }
  ]
}

Rules:
- Recommend only 3 to 5 cards.
- Avoid cards clearly ineligible based on income/CIBIL.
- For age 18-20 or no personal income, prioritize realistic FD-backed or secured options.
- Mention fee-value tradeoffs clearly.
- Keep recommendations aligned to follow-up answers."""


def format_inr_compact(amount: float) -> str:
    """Crore / lakh notation for large amounts, Indian grouping otherwise."""
    if amount >= 10_000_000:
        return f"{amount / 10_000_000:.2f} Cr"
    if amount >= 100_000:
        return f"{amount / 100_000:.2f} L"
    return format_inr(amount)


def _rupees(amount: float | None) -> str:
    return f"INR {format_inr_compact(amount)}" if amount else "Not specified"


def _dump(label: str, value: Any) -> str:
    return f"{label}:\n{json.dumps(value, indent=2, ensure_ascii=False, default=str)}"


def _beginner_card(card: CardRecord) -> dict[str, Any]:
    return {
        "id": card.id,
        "bank": card.bank_name,
        "name": card.card_name,
        "type": card.card_type.value,
        "joiningFee": _rupees(card.joining_fee) if card.joining_fee else "INR 0",
        "annualFee": _rupees(card.annual_fee) if card.annual_fee else "INR 0",
        "feeWaiverSpend": _rupees(card.annual_fee_waiver_spend) if card.annual_fee_waiver_spend else "N/A",
        "minIncome": f"{_rupees(card.min_income_salaried)}/year" if card.min_income_salaried else "Not specified",
        "rewardRate": card.reward_rate_default,
        "loungeAccess": card.lounge_access.value,
        "fuelSurchargeWaiver": card.fuel_surcharge_waiver,
        "bestFor": list(card.best_for),
        "pros": list(card.pros),
        "cons": list(card.cons),
    }


def build_beginner_prompt(profile: UserProfile, cards: Sequence[CardRecord]) -> str:
    formatted_profile = {
        "age": profile.age,
        "city": profile.city,
        "employmentType": profile.employment_type.value,
        "monthlyIncome": _rupees(profile.monthly_income),
        "annualIncome": _rupees(profile.annual_income),
        "primaryBank": profile.primary_bank,
        "hasBankAccount": profile.has_bank_account,
        "spendingProfile": {
            "averageMonthlySpend": _rupees(profile.monthly_spend),
            "primaryCategories": profile.focus_categories(),
        },
        "goals": profile.credit_goals,
        "preferredCardType": profile.preferred_card_type.value if profile.preferred_card_type else "Not specified",
    }
    return "\n\n".join([
        _dump("User Profile", formatted_profile),
        _dump("Available Cards", [_beginner_card(card) for card in cards]),
    ])


def build_questions_prompt(payload: RecommendationInput) -> str:
    snapshot = {
        "cibilScore": payload.cibil_score,
        "annualIncome": payload.annual_income,
        "employmentType": payload.employment_type,
        "primaryBank": payload.primary_bank,
        "monthlySpending": payload.monthly_spending,
        "topSpendingCategories": top_spend_categories(payload.spending_breakdown),
        "goals": payload.credit_goals,
        "existingCards": payload.existing_cards,
    }
    return _dump("User Profile Snapshot", snapshot)


def _advisor_card(card: CardRecord) -> dict[str, Any]:
    return {
        "id": card.id,
        "cardName": card.card_name,
        "bank": card.bank_name,
        "cardType": card.card_type.value,
        "joiningFee": card.joining_fee,
        "annualFee": card.annual_fee,
        "minIncome": card.min_income_salaried,
        "minCreditScore": card.min_cibil_score,
        "rewardRate": card.reward_rate_default,
        "bestFor": list(card.best_for),
        "perks": list(card.pros[:4]),
    }


def build_recommendation_prompt(payload: RecommendationInput, cards: Sequence[CardRecord]) -> str:
    profile = payload.model_dump(
        mode="json",
        by_alias=True,
        exclude={"detected_persona", "top_spending_categories", "primary_goal"},
    )
    catalog = [_advisor_card(card) for card in cards[:ADVISOR_CATALOG_CONTEXT_LIMIT]]
    return "\n\n".join([
        _dump("User Profile", profile),
        _dump("Available Catalog Cards", catalog),
    ])
