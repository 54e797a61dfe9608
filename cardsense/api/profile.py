"""Profile reads: the credit score history recorded by the advisor flow."""
# ruff: noqa: B008

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.db.engine import get_session
from cardsense.persistence.recommendations import get_credit_score_history
from cardsense.schemas.spending import CreditScoreHistoryResponse
from cardsense.security.auth import AuthenticatedUser, verify_user

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("/credit-score-history", response_model=CreditScoreHistoryResponse)
async def credit_score_history(
    limit: int = Query(default=50, ge=1, le=500),
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> CreditScoreHistoryResponse:
    return CreditScoreHistoryResponse(history=await get_credit_score_history(db, user.id, limit=limit))
