"""Card catalog browsing.

Reads the same popularity-ordered catalog the advisor flow scores, so the
fallback list shows up here too when the card table is missing or empty.
"""
# ruff: noqa: B008

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.catalog.provider import fetch_catalog, find_card
from cardsense.config import settings
from cardsense.db.engine import get_session
from cardsense.engine.scoring import bank_matches, matches_spend_category
from cardsense.errors import CardNotFoundError
from cardsense.schemas.cards import CardListItem, CardRecord, CardType
from cardsense.security.auth import AuthenticatedUser, verify_user

router = APIRouter(prefix="/api/cards", tags=["cards"])


@router.get("", response_model=list[CardListItem])
async def list_cards(
    card_type: CardType | None = Query(default=None),
    bank: str | None = Query(default=None, min_length=1),
    max_annual_fee: float | None = Query(default=None, ge=0),
    category: str | None = Query(default=None, min_length=1),
    _user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> list[CardListItem]:
    """Catalog cards in popularity order, optionally filtered."""
    catalog = await fetch_catalog(db, limit=settings.engine.advisor_catalog_limit)
    cards = [
        card
        for card in catalog.cards
        if (card_type is None or card.card_type == card_type)
        and (bank is None or bank_matches(card, bank))
        and (max_annual_fee is None or card.annual_fee <= max_annual_fee)
        and (category is None or matches_spend_category(category, card))
    ]
    return [CardListItem.from_record(card) for card in cards]


@router.get("/{card_id}", response_model=CardRecord)
async def get_card(
    card_id: str,
    _user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> CardRecord:
    catalog = await fetch_catalog(db, limit=settings.engine.advisor_catalog_limit)
    card = find_card(catalog.cards, card_id)
    if card is None:
        raise CardNotFoundError(f"Card {card_id} not found", details={"card_id": card_id})
    return card
