"""Manual spending ledger.

Transactions recorded here feed the recent-spend totals that enrich
sparse spend declarations in both recommendation flows.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.db.engine import get_session
from cardsense.errors import InvalidRequestError, TransactionNotFoundError
from cardsense.events import emit
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.schemas.spending import SpendingAggregates, SpendingListResponse, TransactionCreate, TransactionOut
from cardsense.security.auth import AuthenticatedUser, verify_user
from cardsense.spending.transactions import add_transaction, delete_transaction, list_transactions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/spending", tags=["spending"])


@router.get("", response_model=SpendingListResponse)
async def get_spending(
    start: date | None = Query(default=None, alias="from"),
    end: date | None = Query(default=None, alias="to"),
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> SpendingListResponse:
    """Transactions newest first, with totals per canonical category."""
    if start is not None and end is not None and start > end:
        raise InvalidRequestError(
            "'from' must not be after 'to'",
            details={"from": start.isoformat(), "to": end.isoformat()},
        )
    transactions = await list_transactions(db, user.id, start, end)
    return SpendingListResponse(transactions=transactions, aggregates=SpendingAggregates.of(transactions))


@router.post("", response_model=TransactionOut, status_code=201)
async def create_transaction(
    entry: TransactionCreate,
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> TransactionOut:
    transaction = await add_transaction(db, user.id, entry)
    await emit(SystemEvent(
        event_type=EventType.SPENDING_TRANSACTION_ADDED,
        user_id=user.id,
        data={"transaction_id": str(transaction.id), "category": transaction.category},
        source_module="api.spending",
    ))
    return transaction


@router.delete("/{transaction_id}")
async def remove_transaction(
    transaction_id: uuid.UUID,
    user: AuthenticatedUser = Depends(verify_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    if not await delete_transaction(db, user.id, transaction_id):
        raise TransactionNotFoundError(
            f"Transaction {transaction_id} not found",
            details={"transaction_id": str(transaction_id)},
        )
    logger.info("Deleted transaction %s for %s", transaction_id, user.id)
    await emit(SystemEvent(
        event_type=EventType.SPENDING_TRANSACTION_DELETED,
        user_id=user.id,
        data={"transaction_id": str(transaction_id)},
        source_module="api.spending",
    ))
    return {"deleted": True}
