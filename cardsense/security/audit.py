"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber at startup. Never raises: failures are
logged but never propagate to the event system.
"""

from __future__ import annotations

import logging

from cardsense.db.engine import async_session_factory
from cardsense.models.audit import AuditLog
from cardsense.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table."""
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                user_id=event.user_id,
                source_module=event.source_module,
                data=event.data,
            ))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (user=%s)",
            event.event_type.value,
            event.user_id,
        )
