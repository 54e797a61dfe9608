"""POST /api/ai/beginner — recommendations for first-time card applicants.

The questionnaire body is loosely typed (older clients send different
keys), so it is accepted as a plain object and coerced by the profile
normalizer instead of being rejected by a strict schema.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.api.context import load_catalog_and_history
from cardsense.config import settings
from cardsense.db.engine import get_session
from cardsense.engine.assembler import (
    DEFAULT_APPLICATION_GUIDE,
    DEFAULT_CREDIT_EDUCATION,
    assemble_beginner,
)
from cardsense.engine.eligibility import age_eligible
from cardsense.engine.profile import blend_spend_history, normalize_beginner
from cardsense.events import emit
from cardsense.llm.client import LLMError, llm_client
from cardsense.llm.parsing import safe_fallback_reason
from cardsense.llm.suggestions import (
    DEFAULT_OVERALL_ANALYSIS,
    BeginnerAISuggestions,
    generate_beginner_suggestions,
)
from cardsense.persistence.recommendations import save_recommendation
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.schemas.profile import FlowType
from cardsense.schemas.recommendation import BeginnerResponse, BeginnerResult, RecommendationRecord
from cardsense.security.auth import AuthenticatedUser, verify_user
from cardsense.security.rate_limiter import enforce_recommendation_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["recommendations"])

RULE_BASED_MODEL = "rule_based"
RULE_BASED_FALLBACK_MODEL = "rule_based_fallback"


@router.post("/beginner", response_model=BeginnerResponse)
async def beginner_recommendations(
    body: dict[str, Any] = Body(...),
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> BeginnerResponse:
    """Score the catalog for a beginner profile and return the top picks."""
    await enforce_recommendation_limit(user.id, FlowType.BEGINNER.value)

    min_results = settings.engine.beginner_min_results
    catalog, history = await load_catalog_and_history(
        user.id,
        limit=settings.engine.beginner_catalog_limit,
        min_count=min_results,
        include_inactive_when_empty=True,
    )
    profile = blend_spend_history(normalize_beginner(body), history)

    ai: BeginnerAISuggestions | None = None
    fallback_reason: str | None = None
    model = RULE_BASED_MODEL
    if settings.llm.llm_enabled:
        try:
            ai = await generate_beginner_suggestions(llm_client, profile, age_eligible(catalog.cards, profile.age))
            model = ai.model
        except LLMError as exc:
            logger.warning("Beginner LLM path failed, using rule-based ranking: %s", exc)
            fallback_reason = safe_fallback_reason(exc)
            model = RULE_BASED_FALLBACK_MODEL

    items = assemble_beginner(
        profile,
        catalog.cards,
        min_results=min_results,
        suggestions=ai.suggestions if ai else (),
    )

    if fallback_reason:
        analysis = f"Used a rule-based recommendation path because AI response could not be used. {fallback_reason}"
    else:
        analysis = ai.overall_analysis if ai else DEFAULT_OVERALL_ANALYSIS

    result = BeginnerResult(
        recommendations=items,
        application_guide=ai.application_guide if ai else DEFAULT_APPLICATION_GUIDE,
        credit_education=ai.credit_education if ai else DEFAULT_CREDIT_EDUCATION,
        overall_analysis=analysis,
    )

    await emit(SystemEvent(
        event_type=EventType.RECOMMENDATION_GENERATED,
        user_id=user.id,
        data={
            "flow": FlowType.BEGINNER.value,
            "cards": [item.card_id for item in items],
            "model": model,
            "catalog_source": catalog.source,
        },
        source_module="api.beginner",
    ))

    record = RecommendationRecord(
        user_id=user.id,
        flow=FlowType.BEGINNER,
        input_snapshot=body,
        cards=[item.model_dump(by_alias=True) for item in items],
        analysis=analysis,
        model=model,
        application_guide=result.application_guide.model_dump(),
    )
    recommendation_id = await save_recommendation(db, record)
    await emit(SystemEvent(
        event_type=(
            EventType.RECOMMENDATION_PERSISTED if recommendation_id else EventType.RECOMMENDATION_PERSIST_FAILED
        ),
        user_id=user.id,
        data={"flow": FlowType.BEGINNER.value, "recommendation_id": recommendation_id},
        source_module="api.beginner",
    ))

    return BeginnerResponse(
        recommendation_id=recommendation_id,
        fallback_catalog=catalog.used_fallback,
        fallback_reason=fallback_reason,
        data=result,
    )
