"""Recent spending totals per category, used to enrich sparse spend declarations."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.engine.categories import normalize_spend_category
from cardsense.models.transaction import SpendingTransaction

logger = logging.getLogger(__name__)


async def category_totals(session: AsyncSession, user_id: str, days: int) -> dict[str, float]:
    """Sum of the user's transactions per canonical category over the last `days` days.

    Enrichment is optional: any storage error is logged and yields {}.
    """
    since = date.today() - timedelta(days=days)
    stmt = (
        select(SpendingTransaction.category, func.sum(SpendingTransaction.amount))
        .where(
            SpendingTransaction.user_id == user_id,
            SpendingTransaction.transaction_date >= since,
        )
        .group_by(SpendingTransaction.category)
    )
    try:
        rows = (await session.execute(stmt)).all()
    except SQLAlchemyError as exc:
        logger.warning("Spend history unavailable for %s: %s", user_id, type(exc).__name__)
        return {}

    totals: dict[str, float] = {}
    for category, amount in rows:
        if amount is None or amount <= 0:
            continue
        key = normalize_spend_category(category)
        totals[key] = totals.get(key, 0.0) + float(amount)
    return totals
