"""Recommendation persistence — one canonical record, several storage shapes.

Deployments of the recommendations table differ in column names. Writes
and reads go through an ordered list of shape adapters; each attempt runs
in its own SAVEPOINT so a rejected shape leaves the session usable for the
next one. Storage errors are logged and reported as a None result. Credit score
snapshots and their history read follow the same pattern.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import column, delete, insert, select, table, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardsense.schemas.profile import FlowType, RecommendationInput
from cardsense.schemas.recommendation import LatestRecommendation, RecommendationRecord
from cardsense.schemas.spending import CreditScoreEntry

logger = logging.getLogger(__name__)

_JSON_COLUMNS = frozenset({"input_snapshot", "input_data", "recommended_cards", "application_guide"})

CREDIT_SNAPSHOT_NOTE = "Captured from advisor flow"


def _table(name: str, payload: dict[str, Any], extra: Sequence[str] = ()):
    columns = [column(key, JSONB) if key in _JSON_COLUMNS else column(key) for key in (*payload, *extra)]
    return table(name, *columns)


# ── Shape adapters ───────────────────────────────────────────────────


@dataclass(frozen=True)
class RecommendationShape:
    """One column layout of the recommendations table."""

    name: str
    to_row: Callable[[RecommendationRecord], dict[str, Any]]
    analysis_column: str
    input_column: str


def _modern_row(record: RecommendationRecord) -> dict[str, Any]:
    row: dict[str, Any] = {
        "user_id": record.user_id,
        "recommendation_type": record.flow.value,
        "input_snapshot": record.input_snapshot,
        "recommended_cards": record.cards,
        "ai_analysis_text": record.analysis,
        "model_used": record.model,
    }
    if record.application_guide is not None:
        row["application_guide"] = record.application_guide
    return row


def _transitional_row(record: RecommendationRecord) -> dict[str, Any]:
    row = _modern_row(record)
    row["ai_analysis"] = row.pop("ai_analysis_text")
    return row


def _legacy_row(record: RecommendationRecord) -> dict[str, Any]:
    return {
        "user_id": record.user_id,
        "flow_type": "experienced_user" if record.flow == FlowType.ADVISOR else "beginner",
        "input_data": record.input_snapshot,
        "recommended_cards": record.cards,
        "ai_analysis": record.analysis,
        "ai_model_used": record.model,
    }


RECOMMENDATION_SHAPES: tuple[RecommendationShape, ...] = (
    RecommendationShape("modern", _modern_row, "ai_analysis_text", "input_snapshot"),
    RecommendationShape("transitional", _transitional_row, "ai_analysis", "input_snapshot"),
    RecommendationShape("legacy", _legacy_row, "ai_analysis", "input_data"),
)


# ── Writes ───────────────────────────────────────────────────────────


async def _try_insert(session: AsyncSession, name: str, payload: dict[str, Any], returning: str | None = None):
    tbl = _table(name, payload, extra=(returning,) if returning else ())
    stmt = insert(tbl).values(**payload)
    if returning:
        stmt = stmt.returning(tbl.c[returning])
    async with session.begin_nested():
        result = await session.execute(stmt)
        return result.scalar_one() if returning else None


async def save_recommendation(session: AsyncSession, record: RecommendationRecord) -> str | None:
    """Insert the record using the first shape the table accepts.

    Returns the new row id, or None when every shape was rejected.
    """
    errors: list[str] = []
    for shape in RECOMMENDATION_SHAPES:
        try:
            row_id = await _try_insert(session, "recommendations", shape.to_row(record), returning="id")
        except SQLAlchemyError as exc:
            errors.append(f"{shape.name}: {type(exc).__name__}")
            continue
        logger.info("Saved %s recommendation for %s (%s shape)", record.flow.value, record.user_id, shape.name)
        return str(row_id)

    logger.warning("Could not save recommendation for %s: %s", record.user_id, "; ".join(errors))
    return None


def _credit_snapshot_rows(user_id: str, score: int, today: date) -> list[dict[str, Any]]:
    return [
        {
            "user_id": user_id,
            "credit_score": score,
            "score_date": today,
            "score_source": "manual",
            "notes": CREDIT_SNAPSHOT_NOTE,
        },
        {
            "user_id": user_id,
            "score": score,
            "score_date": today,
            "source": "user_input",
            "notes": CREDIT_SNAPSHOT_NOTE,
        },
    ]


async def save_credit_snapshot(session: AsyncSession, user_id: str, score: int) -> bool:
    """Record the score the user declared in the advisor flow."""
    for row in _credit_snapshot_rows(user_id, score, date.today()):
        try:
            await _try_insert(session, "credit_score_history", row)
        except SQLAlchemyError:
            continue
        return True
    logger.warning("Could not save credit score snapshot for %s", user_id)
    return False


def _profile_updates(payload: RecommendationInput, now: datetime) -> list[dict[str, Any]]:
    shared = {
        "employment_type": payload.employment_type,
        "primary_bank": payload.primary_bank,
        "city": payload.city,
        "updated_at": now,
    }
    return [
        {"credit_score": int(payload.cibil_score), "annual_income": payload.annual_income, **shared},
        {"cibil_score": int(payload.cibil_score), "monthly_income": payload.monthly_income, **shared},
    ]


async def update_profile_fields(session: AsyncSession, user_id: str, payload: RecommendationInput) -> bool:
    """Copy the advisor answers that belong on the user profile."""
    for values in _profile_updates(payload, datetime.now(timezone.utc)):
        tbl = _table("profiles", values, extra=("id",))
        stmt = update(tbl).where(tbl.c.id == user_id).values(**values)
        try:
            async with session.begin_nested():
                await session.execute(stmt)
        except SQLAlchemyError:
            continue
        return True
    logger.warning("Could not update profile fields for %s", user_id)
    return False


# ── Reads ────────────────────────────────────────────────────────────


async def get_latest_recommendation(session: AsyncSession, user_id: str) -> LatestRecommendation | None:
    """Most recent recommendation for the user, read with the first shape that works."""
    for shape in RECOMMENDATION_SHAPES:
        tbl = table(
            "recommendations",
            column("id"),
            column("user_id"),
            column("recommended_cards", JSONB),
            column(shape.analysis_column),
            column("created_at"),
        )
        stmt = (
            select(tbl.c.id, tbl.c.recommended_cards, tbl.c[shape.analysis_column], tbl.c.created_at)
            .where(tbl.c.user_id == user_id)
            .order_by(tbl.c.created_at.desc())
            .limit(1)
        )
        try:
            async with session.begin_nested():
                row = (await session.execute(stmt)).first()
        except SQLAlchemyError:
            continue
        if row is None:
            return None
        cards = row.recommended_cards if isinstance(row.recommended_cards, list) else []
        return LatestRecommendation(
            id=str(row.id),
            cards=cards,
            analysis=row[2] or "",
            created_at=row.created_at,
        )

    logger.warning("Could not read latest recommendation for %s", user_id)
    return None


async def delete_latest_recommendation(session: AsyncSession, user_id: str) -> str | None:
    """Delete the user's newest recommendation. Returns its id, or None if there was none."""
    tbl = table("recommendations", column("id"), column("user_id"), column("created_at"))
    latest = (
        select(tbl.c.id)
        .where(tbl.c.user_id == user_id)
        .order_by(tbl.c.created_at.desc())
        .limit(1)
    )
    row_id = (await session.execute(latest)).scalar_one_or_none()
    if row_id is None:
        return None
    await session.execute(delete(tbl).where(tbl.c.id == row_id))
    return str(row_id)


# (score column, source column) per credit_score_history layout
_CREDIT_HISTORY_COLUMNS: tuple[tuple[str, str], ...] = (("credit_score", "score_source"), ("score", "source"))


async def get_credit_score_history(session: AsyncSession, user_id: str, limit: int = 50) -> list[CreditScoreEntry]:
    """The user's recorded credit scores, newest first. Empty when no layout can be read."""
    for score_column, source_column in _CREDIT_HISTORY_COLUMNS:
        tbl = table(
            "credit_score_history",
            column("user_id"),
            column(score_column),
            column("score_date"),
            column(source_column),
            column("notes"),
            column("created_at"),
        )
        stmt = (
            select(tbl.c[score_column], tbl.c.score_date, tbl.c[source_column], tbl.c.notes)
            .where(tbl.c.user_id == user_id)
            .order_by(tbl.c.score_date.desc(), tbl.c.created_at.desc())
            .limit(limit)
        )
        try:
            async with session.begin_nested():
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError:
            continue
        return [
            CreditScoreEntry(
                credit_score=int(score),
                score_date=score_date,
                score_source=source or "manual",
                notes=notes,
            )
            for score, score_date, source, notes in rows
        ]

    logger.warning("Could not read credit score history for %s", user_id)
    return []
