"""Follow-up question protocol for the advisor flow.

Scoring only proceeds once the five refinements below are answered. Until
then /api/ai/recommend returns these questions, worded for the user's
income situation, top spend category and goals.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from cardsense.engine.categories import (
    SPEND_FOCUS_DETAILS,
    SPEND_FOCUS_FALLBACK_ORDER,
    normalize_spend_category,
    spend_label,
)
from cardsense.engine.profile import canonical_spend
from cardsense.schemas.profile import RecommendationInput
from cardsense.schemas.recommendation import FollowUpOption, FollowUpQuestion

REQUIRED_FOLLOW_UP_IDS: tuple[str, ...] = (
    "age_band",
    "income_profile",
    "secured_card_readiness",
    "primary_spend_focus",
    "value_priority",
)

SPEND_FOCUS_OPTION_COUNT = 4
LOW_INCOME_ANNUAL = 300_000

_LOW_INCOME_EMPLOYMENT = re.compile(r"student|unemployed|other|homemaker", re.IGNORECASE)
_TRAVEL_GOAL = re.compile(r"travel|lounge|vacation|miles", re.IGNORECASE)


def _question(qid: str, question: str, why: str, options: list[tuple[str, str, str]]) -> FollowUpQuestion:
    return FollowUpQuestion(
        id=qid,
        question=question,
        why=why,
        options=[FollowUpOption(value=v, label=label, description=d) for v, label, d in options],
    )


DEFAULT_QUESTIONS: tuple[FollowUpQuestion, ...] = (
    _question(
        "age_band",
        "What is your age bracket?",
        "Some Indian cards are available from 18+, while many unsecured cards start at 21+.",
        [
            ("18_20", "18-20", "Prioritize FD-backed or secured card options."),
            ("21_24", "21-24", "Entry-level and starter unsecured cards are considered."),
            ("25_30", "25-30", "Broader set of cashback, rewards, and travel cards."),
            ("31_plus", "31+", "Include wider premium eligibility where relevant."),
        ],
    ),
    _question(
        "income_profile",
        "Which income situation best matches you right now?",
        "Income stability affects unsecured card eligibility and approval odds.",
        [
            ("no_personal_income", "No personal income", "Prioritize FD-backed or secured cards."),
            ("stipend_or_part_time", "Stipend/part-time income", "Mix of low-fee unsecured and secured cards."),
            ("stable_income_upto_6l", "Stable income up to INR 6L", "Entry-level unsecured cards become more realistic."),
            (
                "stable_income_above_6l",
                "Stable income above INR 6L",
                "Broader unsecured and premium options can be considered.",
            ),
        ],
    ),
    _question(
        "secured_card_readiness",
        "Are you open to FD-backed cards if they improve approval chance?",
        "For many first-time users under 21 or with low income, secured cards are the practical path.",
        [
            ("have_fd_now", "Yes, I already have FD", "Recommend secured cards first for faster approval."),
            ("can_start_fd", "Can start an FD soon", "Show both secured now and unsecured alternatives."),
            ("unsecured_only", "No, only unsecured cards", "Recommend unsecured cards only."),
        ],
    ),
    _question(
        "primary_spend_focus",
        "Which spending area should this card optimize first?",
        "The best card changes based on your dominant spend category.",
        [
            ("groceries", "Groceries & essentials", "Maximize everyday household cashback."),
            ("dining", "Dining & delivery", "Focus on food and app-order rewards."),
            ("shopping", "Online shopping", "Prioritize ecommerce and sale-season rewards."),
            ("travel", "Travel & commute", "Optimize travel and transport spends."),
        ],
    ),
    _question(
        "value_priority",
        "What outcome matters most from this card?",
        "This decides whether we optimize for low fees, cashback, travel, or UPI usage.",
        [
            ("build_credit_low_fee", "Build credit with low fees", "Keep costs low and improve credit history safely."),
            ("cashback_everyday", "Max cashback on regular spends", "Best for routine categories and simple savings."),
            ("travel_perks", "Travel and lounge benefits", "Prioritize cards with flight and lounge value."),
            ("upi_qr_rewards", "UPI QR convenience", "Prioritize RuPay/UPI-on-credit compatibility."),
        ],
    ),
)


def has_follow_up_answers(answers: Mapping[str, str]) -> bool:
    """True when every required id is answered, or at least five answers of any kind exist."""
    if all(answers.get(qid) for qid in REQUIRED_FOLLOW_UP_IDS):
        return True
    return sum(1 for value in answers.values() if value) >= len(REQUIRED_FOLLOW_UP_IDS)


def top_spend_categories(breakdown: Mapping[str, float], limit: int = 3) -> list[str]:
    spend = canonical_spend(breakdown)
    ranked = sorted(((c, a) for c, a in spend.items() if a > 0), key=lambda item: item[1], reverse=True)
    return [category for category, _ in ranked[:limit]]


def spend_focus_options(top_categories: list[str]) -> list[FollowUpOption]:
    """The user's top categories first, padded from the fallback order, four in total."""
    chosen: list[str] = []
    for category in [*(normalize_spend_category(c) for c in top_categories), *SPEND_FOCUS_FALLBACK_ORDER]:
        if category not in chosen:
            chosen.append(category)
        if len(chosen) == SPEND_FOCUS_OPTION_COUNT:
            break
    options = []
    for category in chosen:
        label, description = SPEND_FOCUS_DETAILS.get(category, SPEND_FOCUS_DETAILS["other"])
        options.append(FollowUpOption(value=category, label=label, description=description))
    return options


def is_low_income_or_student(payload: RecommendationInput) -> bool:
    return payload.annual_income <= LOW_INCOME_ANNUAL or bool(_LOW_INCOME_EMPLOYMENT.search(payload.employment_type))


def build_contextual_questions(payload: RecommendationInput) -> list[FollowUpQuestion]:
    """The five default questions, reworded for this user."""
    top = top_spend_categories(payload.spending_breakdown)
    low_income = is_low_income_or_student(payload)
    travel_goal = any(_TRAVEL_GOAL.search(goal) for goal in payload.credit_goals)

    questions: list[FollowUpQuestion] = []
    for question in DEFAULT_QUESTIONS:
        update: dict[str, object] = {}
        if question.id == "income_profile" and low_income:
            update["question"] = "Which option best describes your current personal income setup?"
        elif question.id == "secured_card_readiness" and low_income:
            update["why"] = "Low/no personal income users usually get better approval odds via FD-backed cards."
        elif question.id == "primary_spend_focus":
            label = spend_label(top[0] if top else None)
            update["question"] = f"For your {label} spending, what should this card optimize first?"
            update["options"] = spend_focus_options(top)
        elif question.id == "value_priority" and travel_goal:
            update["question"] = "You mentioned travel goals. What should this card optimize most?"
        questions.append(question.model_copy(update=update, deep=True))
    return questions
