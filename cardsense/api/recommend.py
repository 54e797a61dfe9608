"""POST /api/ai/recommend — the advisor flow.

One clarification round: until the five follow-up answers are present the
endpoint returns questions instead of cards. Once answered, cards are
scored, persisted (recommendation, credit score snapshot, profile fields)
and returned. Persistence failures never fail the request.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.advisor.state import AdvisorFormState
from cardsense.api.context import load_catalog_and_history
from cardsense.config import settings
from cardsense.db.engine import get_session
from cardsense.engine.assembler import assemble_advisor
from cardsense.engine.persona import detect_persona
from cardsense.engine.profile import blend_spend_history, normalize_advisor
from cardsense.engine.questions import build_contextual_questions, has_follow_up_answers
from cardsense.engine.scoring import resolve_preferences
from cardsense.events import emit
from cardsense.llm.client import LLMError, llm_client
from cardsense.llm.parsing import safe_fallback_reason
from cardsense.llm.suggestions import generate_advisor_result, generate_follow_up_questions
from cardsense.persistence.recommendations import (
    save_credit_snapshot,
    save_recommendation,
    update_profile_fields,
)
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.schemas.profile import FlowType, Persona, RecommendationInput
from cardsense.schemas.recommendation import (
    AdvisorMetadata,
    AdvisorResult,
    AdvisorSuccessResponse,
    NeedsMoreInfoResponse,
    RecommendationRecord,
)
from cardsense.security.auth import AuthenticatedUser, verify_user
from cardsense.security.rate_limiter import enforce_recommendation_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["recommendations"])

RULE_BASED_FALLBACK_MODEL = "rule_based_fallback"
DEFAULT_QUESTIONS_MODEL = "default_questions"
RULE_BASED_REASON = "rule-based scoring of eligibility, spend pattern and fee fit"


def resolve_persona(payload: RecommendationInput) -> Persona:
    """Persona sent by the questionnaire, else detected from the request body."""
    if payload.detected_persona is not None:
        return payload.detected_persona
    return detect_persona(AdvisorFormState.from_recommendation_input(payload))


async def _questions_response(
    payload: RecommendationInput,
    persona: Persona,
    catalog_source: str,
    user_id: str,
) -> NeedsMoreInfoResponse:
    questions = build_contextual_questions(payload)
    model = DEFAULT_QUESTIONS_MODEL
    fallback_reason: str | None = None
    if settings.llm.llm_enabled:
        try:
            questions, model = await generate_follow_up_questions(llm_client, payload)
        except LLMError as exc:
            logger.warning("Follow-up question generation failed, using defaults: %s", exc)
            fallback_reason = safe_fallback_reason(exc)

    await emit(SystemEvent(
        event_type=EventType.ADVISOR_NEEDS_MORE_INFO,
        user_id=user_id,
        data={"persona": persona.value, "model": model},
        source_module="api.recommend",
    ))
    return NeedsMoreInfoResponse(
        questions=questions,
        persona=persona,
        metadata=AdvisorMetadata(model=model, catalog_source=catalog_source, fallback_reason=fallback_reason),
    )


@router.post(
    "/recommend",
    response_model=AdvisorSuccessResponse | NeedsMoreInfoResponse,
)
async def advisor_recommendations(
    payload: RecommendationInput,
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> AdvisorSuccessResponse | NeedsMoreInfoResponse:
    """Follow-up questions, or scored cards once the answers are in."""
    await enforce_recommendation_limit(user.id, FlowType.ADVISOR.value)

    count = settings.engine.advisor_result_count
    catalog, history = await load_catalog_and_history(
        user.id,
        limit=settings.engine.advisor_catalog_limit,
        min_count=count,
    )
    persona = resolve_persona(payload)

    if not has_follow_up_answers(payload.follow_up_answers):
        return await _questions_response(payload, persona, catalog.source, user.id)

    profile = blend_spend_history(normalize_advisor(payload), history)
    prefs = resolve_preferences(profile)

    result: AdvisorResult | None = None
    fallback_reason: str | None = None
    if settings.llm.llm_enabled:
        try:
            result = await generate_advisor_result(llm_client, payload, profile, prefs, catalog.cards, count=count)
        except LLMError as exc:
            logger.warning("Advisor LLM path failed, using rule-based ranking: %s", exc)
            fallback_reason = safe_fallback_reason(exc)

    if result is None:
        reason = RULE_BASED_REASON
        if fallback_reason:
            reason = f"because AI response was unavailable: {fallback_reason.rstrip('.')}"
        result = assemble_advisor(profile, prefs, catalog.cards, count=count, reason=reason)
        if fallback_reason:
            result = result.model_copy(update={"model": RULE_BASED_FALLBACK_MODEL})

    await emit(SystemEvent(
        event_type=EventType.RECOMMENDATION_GENERATED,
        user_id=user.id,
        data={
            "flow": FlowType.ADVISOR.value,
            "cards": [card.id for card in result.cards],
            "model": result.model,
            "persona": persona.value,
            "relaxed_eligibility": result.used_relaxed_eligibility,
            "catalog_source": catalog.source,
        },
        source_module="api.recommend",
    ))

    record = RecommendationRecord(
        user_id=user.id,
        flow=FlowType.ADVISOR,
        input_snapshot=payload.model_dump(mode="json", by_alias=True),
        cards=[card.model_dump(by_alias=True) for card in result.cards],
        analysis=result.analysis,
        model=result.model,
        persona=persona,
    )
    recommendation_id = await save_recommendation(db, record)
    await save_credit_snapshot(db, user.id, int(payload.cibil_score))
    await update_profile_fields(db, user.id, payload)
    await emit(SystemEvent(
        event_type=(
            EventType.RECOMMENDATION_PERSISTED if recommendation_id else EventType.RECOMMENDATION_PERSIST_FAILED
        ),
        user_id=user.id,
        data={"flow": FlowType.ADVISOR.value, "recommendation_id": recommendation_id},
        source_module="api.recommend",
    ))

    return AdvisorSuccessResponse(
        cards=result.cards,
        analysis=result.analysis,
        recommendation_id=recommendation_id,
        persona=persona,
        metadata=AdvisorMetadata(
            model=result.model,
            catalog_source=catalog.source,
            fallback_reason=fallback_reason,
        ),
    )
