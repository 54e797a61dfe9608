"""Latest saved recommendation: read it back, or discard it to start over."""
# ruff: noqa: B008

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.db.engine import get_session
from cardsense.events import emit
from cardsense.persistence.recommendations import delete_latest_recommendation, get_latest_recommendation
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.schemas.recommendation import LatestRecommendationResponse
from cardsense.security.auth import AuthenticatedUser, verify_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("/latest", response_model=LatestRecommendationResponse)
async def latest_recommendation(
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> LatestRecommendationResponse:
    return LatestRecommendationResponse(recommendation=await get_latest_recommendation(db, user.id))


@router.delete("/latest")
async def discard_latest_recommendation(
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str | None]:
    """Delete the newest recommendation so the questionnaire starts fresh."""
    deleted_id = await delete_latest_recommendation(db, user.id)
    if deleted_id is not None:
        logger.info("Deleted recommendation %s for %s", deleted_id, user.id)
        await emit(SystemEvent(
            event_type=EventType.RECOMMENDATION_DELETED,
            user_id=user.id,
            data={"recommendation_id": deleted_id},
            source_module="api.recommendations",
        ))
    return {"deleted_id": deleted_id}
