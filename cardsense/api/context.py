"""Per-request inputs shared by the recommendation endpoints."""

from __future__ import annotations

import asyncio

from cardsense.catalog.provider import CatalogResult, fetch_catalog
from cardsense.config import settings
from cardsense.db.engine import async_session_factory
from cardsense.events import emit
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.spending.history import category_totals


async def _catalog(limit: int, min_count: int, include_inactive_when_empty: bool) -> CatalogResult:
    async with async_session_factory() as session:
        return await fetch_catalog(
            session,
            limit=limit,
            min_count=min_count,
            include_inactive_when_empty=include_inactive_when_empty,
        )


async def _history(user_id: str) -> dict[str, float]:
    async with async_session_factory() as session:
        return await category_totals(session, user_id, settings.engine.spend_history_days)


async def load_catalog_and_history(
    user_id: str,
    *,
    limit: int,
    min_count: int = 0,
    include_inactive_when_empty: bool = False,
) -> tuple[CatalogResult, dict[str, float]]:
    """Catalog and recent spend totals, read concurrently on separate sessions.

    Raises:
        CatalogUnavailableError: propagated from the catalog read.
    """
    catalog, history = await asyncio.gather(
        _catalog(limit, min_count, include_inactive_when_empty),
        _history(user_id),
    )
    if catalog.used_fallback:
        await emit(SystemEvent(
            event_type=EventType.CATALOG_FALLBACK_USED,
            user_id=user_id,
            data={"cards": len(catalog.cards)},
            source_module="api.context",
        ))
    return catalog, history
