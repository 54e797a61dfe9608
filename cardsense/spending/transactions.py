"""Manual spending ledger: list, add and delete a user's transactions."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.models.transaction import SpendingTransaction
from cardsense.schemas.spending import TransactionCreate, TransactionOut

logger = logging.getLogger(__name__)


async def list_transactions(
    session: AsyncSession,
    user_id: str,
    start: date | None = None,
    end: date | None = None,
) -> list[TransactionOut]:
    """The user's transactions, newest first, optionally within [start, end]."""
    stmt = select(SpendingTransaction).where(SpendingTransaction.user_id == user_id)
    if start is not None:
        stmt = stmt.where(SpendingTransaction.transaction_date >= start)
    if end is not None:
        stmt = stmt.where(SpendingTransaction.transaction_date <= end)
    stmt = stmt.order_by(SpendingTransaction.transaction_date.desc(), SpendingTransaction.created_at.desc())

    rows = (await session.execute(stmt)).scalars().all()
    return [TransactionOut.model_validate(row) for row in rows]


async def add_transaction(session: AsyncSession, user_id: str, entry: TransactionCreate) -> TransactionOut:
    row = SpendingTransaction(
        id=uuid.uuid4(),
        user_id=user_id,
        amount=Decimal(str(round(entry.amount, 2))),
        category=entry.category,
        merchant=entry.merchant,
        transaction_date=entry.transaction_date,
        source=entry.source,
    )
    session.add(row)
    await session.flush()
    await session.refresh(row)
    logger.info("Added %s transaction for %s", entry.category, user_id)
    return TransactionOut.model_validate(row)


async def delete_transaction(session: AsyncSession, user_id: str, transaction_id: uuid.UUID) -> bool:
    """Delete one of the user's transactions. False when no such row belongs to them."""
    stmt = (
        delete(SpendingTransaction)
        .where(SpendingTransaction.id == transaction_id, SpendingTransaction.user_id == user_id)
        .returning(SpendingTransaction.id)
    )
    deleted = (await session.execute(stmt)).scalar_one_or_none()
    return deleted is not None
