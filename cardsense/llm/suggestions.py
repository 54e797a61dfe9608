"""LLM-assisted follow-up questions and card picks.

Model replies are validated and then anchored to the catalog: every card
the model names must resolve to a catalog record, otherwise it is dropped
and the deterministic ranking fills the gap. Callers catch `LLMError` (and
the validation errors it wraps) and fall back to the rule-based engine.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cardsense.coerce import as_mapping, as_number, as_string, as_string_list
from cardsense.engine.assembler import (
    DEFAULT_APPLICATION_GUIDE,
    DEFAULT_CREDIT_EDUCATION,
    CardSuggestion,
    build_advisor_item,
    rank_advisor,
)
from cardsense.engine.questions import REQUIRED_FOLLOW_UP_IDS
from cardsense.engine.scoring import ScoringPreferences
from cardsense.llm.client import OllamaClient
from cardsense.llm.prompts import (
    ADVISOR_RECOMMENDATION_PROMPT,
    BEGINNER_RECOMMENDATION_PROMPT,
    FOLLOW_UP_QUESTIONS_PROMPT,
    build_beginner_prompt,
    build_questions_prompt,
    build_recommendation_prompt,
)
from cardsense.schemas.cards import CardRecord
from cardsense.schemas.profile import RecommendationInput, UserProfile
from cardsense.schemas.recommendation import (
    AdvisorResult,
    ApplicationGuide,
    CreditEducation,
    FollowUpQuestion,
)

logger = logging.getLogger(__name__)

DEFAULT_OVERALL_ANALYSIS = "Recommendations generated from your profile, eligibility, and spending patterns."


# ── Card resolution ──────────────────────────────────────────────────


def _normalize_name(name: str) -> str:
    return " ".join(name.lower().split())


def resolve_card(
    catalog: Sequence[CardRecord],
    *,
    card_id: str = "",
    name: str = "",
) -> CardRecord | None:
    """Match a model-named card to the catalog: id, exact name, then containment either way."""
    if card_id:
        for card in catalog:
            if card.id == card_id:
                return card

    wanted = _normalize_name(name)
    if not wanted:
        return None
    for card in catalog:
        if card.normalized_name == wanted:
            return card
    for card in catalog:
        if wanted in card.normalized_name or card.normalized_name in wanted:
            return card
    return None


# ── Follow-up questions ──────────────────────────────────────────────


class AIQuestionSet(BaseModel):
    questions: list[FollowUpQuestion] = Field(min_length=5, max_length=5)

    @field_validator("questions")
    @classmethod
    def _required_ids(cls, v: list[FollowUpQuestion]) -> list[FollowUpQuestion]:
        ids = [question.id for question in v]
        if len(set(ids)) != len(ids):
            msg = "Question ids must be unique"
            raise ValueError(msg)
        missing = [qid for qid in REQUIRED_FOLLOW_UP_IDS if qid not in ids]
        if missing:
            msg = f"Missing required question ids: {', '.join(missing)}"
            raise ValueError(msg)
        return v


async def generate_follow_up_questions(
    client: OllamaClient,
    payload: RecommendationInput,
) -> tuple[list[FollowUpQuestion], str]:
    """Model-worded follow-up questions and the model that wrote them."""
    question_set, model = await client.generate_json(
        FOLLOW_UP_QUESTIONS_PROMPT,
        build_questions_prompt(payload),
        AIQuestionSet.model_validate,
    )
    return question_set.questions, model


# ── Advisor recommendations ──────────────────────────────────────────


class AIRecommendedCard(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    card_name: str = Field(min_length=2)
    bank: str = Field(min_length=2)
    score: float = Field(ge=0, le=100)
    reason: str = Field(min_length=12)
    key_perks: list[str] = Field(default_factory=list)


class AIRecommendationReply(BaseModel):
    analysis: str = Field(min_length=20)
    cards: list[AIRecommendedCard] = Field(min_length=3, max_length=5)


async def generate_advisor_result(
    client: OllamaClient,
    payload: RecommendationInput,
    profile: UserProfile,
    prefs: ScoringPreferences,
    catalog: Sequence[CardRecord],
    *,
    count: int,
) -> AdvisorResult:
    """Model-picked advisor cards anchored to the catalog, topped up from the ranking."""
    reply, model = await client.generate_json(
        ADVISOR_RECOMMENDATION_PROMPT,
        build_recommendation_prompt(payload, catalog),
        AIRecommendationReply.model_validate,
    )

    owned = profile.normalized_existing_cards()
    items = []
    used: set[str] = set()
    for picked in reply.cards:
        card = resolve_card(catalog, name=picked.card_name)
        if card is None:
            logger.info("Dropping unresolved model card %r", picked.card_name)
            continue
        if card.id in used or card.normalized_name in owned:
            continue
        used.add(card.id)
        items.append(build_advisor_item(profile, card, picked.score, picked.reason, picked.key_perks))

    ranked, relaxed = rank_advisor(profile, prefs, catalog, count)
    for entry in ranked:
        if len(items) >= count:
            break
        if entry.card.id in used:
            continue
        used.add(entry.card.id)
        items.append(build_advisor_item(profile, entry.card, entry.score, _backfill_reason(entry.card)))

    return AdvisorResult(cards=items, analysis=reply.analysis, used_relaxed_eligibility=relaxed, model=model)


def _backfill_reason(card: CardRecord) -> str:
    return f"{card.card_name} rounds out your shortlist on eligibility and fee-versus-benefit fit."


# ── Beginner recommendations ─────────────────────────────────────────


class BeginnerAISuggestions(BaseModel):
    """Normalized beginner reply: resolved card picks plus guide and education text."""

    suggestions: list[CardSuggestion]
    application_guide: ApplicationGuide
    credit_education: CreditEducation
    overall_analysis: str
    model: str


def _first_string(entry: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = as_string(entry.get(key)).strip()
        if value:
            return value
    return ""


def _list_or_default(value: Any, default: list[str]) -> list[str]:
    items = as_string_list(value)
    return items or list(default)


def normalize_application_guide(value: Any) -> ApplicationGuide:
    raw = as_mapping(value)
    return ApplicationGuide(
        steps=_list_or_default(raw.get("steps"), DEFAULT_APPLICATION_GUIDE.steps),
        documents_needed=_list_or_default(raw.get("documents_needed"), DEFAULT_APPLICATION_GUIDE.documents_needed),
        tips=_list_or_default(raw.get("tips"), DEFAULT_APPLICATION_GUIDE.tips),
    )


def normalize_credit_education(value: Any) -> CreditEducation:
    raw = as_mapping(value)
    return CreditEducation(
        topics=_list_or_default(raw.get("topics"), DEFAULT_CREDIT_EDUCATION.topics),
        tips=_list_or_default(raw.get("tips"), DEFAULT_CREDIT_EDUCATION.tips),
    )


def parse_beginner_reply(data: Any, pool: Sequence[CardRecord]) -> dict[str, Any]:
    """Resolve the model's picks against `pool`; raises ValueError if none resolve."""
    reply = as_mapping(data)
    entries = reply.get("recommendations")
    if not isinstance(entries, list):
        msg = "Model reply has no recommendations list"
        raise ValueError(msg)

    suggestions: list[CardSuggestion] = []
    for item in entries:
        entry = as_mapping(item)
        card = resolve_card(
            pool,
            card_id=_first_string(entry, "cardId", "card_id"),
            name=_first_string(entry, "cardName", "card_name", "name"),
        )
        if card is None:
            continue
        score = as_number(entry.get("score"), -1.0)
        suggestions.append(CardSuggestion(
            card=card,
            score=score if score >= 0 else None,
            reasoning=_first_string(entry, "reasoning", "reason", "why"),
        ))

    if not suggestions:
        msg = "No recommended card matched the catalog"
        raise ValueError(msg)

    return {
        "suggestions": suggestions,
        "application_guide": normalize_application_guide(reply.get("application_guide")),
        "credit_education": normalize_credit_education(reply.get("credit_education")),
        "overall_analysis": as_string(reply.get("overall_analysis")).strip() or DEFAULT_OVERALL_ANALYSIS,
    }


async def generate_beginner_suggestions(
    client: OllamaClient,
    profile: UserProfile,
    pool: Sequence[CardRecord],
) -> BeginnerAISuggestions:
    parsed, model = await client.generate_json(
        BEGINNER_RECOMMENDATION_PROMPT,
        build_beginner_prompt(profile, pool),
        partial(parse_beginner_reply, pool=pool),
    )
    return BeginnerAISuggestions(**parsed, model=model)
