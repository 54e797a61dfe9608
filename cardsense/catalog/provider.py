"""Card catalog provider — live credit_cards table with a built-in fallback.

Read-only. The table may be absent (fresh deployment) or empty (not yet
seeded); both cases switch to the fallback catalog. Any other database
error means the catalog is unavailable and scoring cannot proceed.

Rows are read as raw mappings rather than through the CreditCard model:
deployments name columns differently (`name`/`card_name`, `bank`/`bank_name`,
`min_income_required`/`min_income_salaried`) and normalize_card_row folds
every variant onto one CardRecord. A mapped SELECT would fail on the legacy
layouts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Literal

from pydantic import BaseModel, ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.catalog.fallback import fallback_catalog
from cardsense.catalog.normalize import normalize_card_row
from cardsense.errors import CatalogUnavailableError
from cardsense.schemas.cards import CardRecord

logger = logging.getLogger(__name__)

CatalogSource = Literal["primary", "fallback"]

_ACTIVE_CARDS_SQL = text(
    "SELECT * FROM credit_cards WHERE is_active IS TRUE "
    "ORDER BY popularity_score DESC LIMIT :limit"
)
_ALL_CARDS_SQL = text("SELECT * FROM credit_cards ORDER BY popularity_score DESC LIMIT :limit")


class CatalogResult(BaseModel):
    """Working set of cards for one request, plus where they came from."""

    cards: tuple[CardRecord, ...]
    source: CatalogSource

    @property
    def used_fallback(self) -> bool:
        return self.source == "fallback"


def is_missing_catalog_table_error(message: str) -> bool:
    """True if a database error says the credit_cards table does not exist."""
    lowered = message.lower()
    if "credit_cards" not in lowered:
        return False
    return any(marker in lowered for marker in ("does not exist", "schema cache", "no such table"))


def normalize_rows(rows: Iterable[dict]) -> list[CardRecord]:
    """Normalize raw rows, skipping (and logging) rows that break card invariants."""
    cards: list[CardRecord] = []
    for row in rows:
        try:
            cards.append(normalize_card_row(row))
        except ValidationError as exc:
            logger.warning("Skipping invalid catalog row %s: %s", row.get("id"), exc.errors()[0]["msg"])
    return cards


def ensure_catalog_depth(cards: Sequence[CardRecord], min_count: int) -> tuple[CardRecord, ...]:
    """Top up `cards` with fallback records (by id, no duplicates) until `min_count`."""
    if len(cards) >= min_count:
        return tuple(cards)

    merged: dict[str, CardRecord] = {card.id: card for card in cards}
    for card in fallback_catalog():
        if len(merged) >= min_count:
            break
        merged.setdefault(card.id, card)
    return tuple(merged.values())


async def _query(session: AsyncSession, statement, limit: int) -> list[dict]:
    result = await session.execute(statement, {"limit": limit})
    return [dict(row) for row in result.mappings().all()]


async def fetch_catalog(
    session: AsyncSession,
    *,
    limit: int,
    min_count: int = 0,
    include_inactive_when_empty: bool = False,
) -> CatalogResult:
    """Load the working catalog for a recommendation request.

    Args:
        session: Database session (used read-only).
        limit: Page size of the popularity-ordered query.
        min_count: Top up from the fallback catalog to at least this many cards.
        include_inactive_when_empty: Retry without the active filter before
            falling back (the beginner flow tolerates unflagged seed data).

    Raises:
        CatalogUnavailableError: on any database error other than a missing table.
    """
    source: CatalogSource = "primary"
    try:
        rows = await _query(session, _ACTIVE_CARDS_SQL, limit)
        if not rows and include_inactive_when_empty:
            rows = await _query(session, _ALL_CARDS_SQL, limit)
    except SQLAlchemyError as exc:
        await session.rollback()
        if not is_missing_catalog_table_error(str(exc)):
            logger.exception("Card catalog query failed")
            raise CatalogUnavailableError("Card catalog is unavailable. Please retry in a moment.") from exc
        logger.warning("credit_cards table missing; using fallback catalog")
        rows = []

    cards = normalize_rows(rows)
    if not cards:
        cards = list(fallback_catalog()[:limit])
        source = "fallback"

    working = ensure_catalog_depth(cards, min_count)
    if len(working) > len(cards):
        logger.info("Catalog topped up from fallback: %d -> %d cards", len(cards), len(working))
        source = "fallback"

    if not working:
        raise CatalogUnavailableError("Card catalog is unavailable. Please retry in a moment.")

    return CatalogResult(cards=working, source=source)


def find_card(cards: Iterable[CardRecord], card_id: str) -> CardRecord | None:
    for card in cards:
        if card.id == card_id:
            return card
    return None
