"""SystemEvent schema — the event type that flows through the service.

Every notable action emits a SystemEvent. Subscribers (the audit logger)
consume these events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Recommendations
    RECOMMENDATION_GENERATED = "recommendation.generated"
    RECOMMENDATION_PERSISTED = "recommendation.persisted"
    RECOMMENDATION_PERSIST_FAILED = "recommendation.persist_failed"
    RECOMMENDATION_DELETED = "recommendation.deleted"

    # Spending ledger
    SPENDING_TRANSACTION_ADDED = "spending.transaction_added"
    SPENDING_TRANSACTION_DELETED = "spending.transaction_deleted"

    # Catalog
    CATALOG_FALLBACK_USED = "catalog.fallback_used"

    # Advisor questionnaire
    ADVISOR_NEEDS_MORE_INFO = "advisor.needs_more_info"
    ADVISOR_SESSION_SAVED = "advisor.session_saved"
    ADVISOR_SESSION_CLEARED = "advisor.session_cleared"

    # LLM
    LLM_REQUEST = "llm.request"
    LLM_RESPONSE = "llm.response"
    LLM_ERROR = "llm.error"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Immutable event record.

    Consumed by:
    - audit_on_event → writes to audit_log table
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Auth provider user id, when the event relates to a user
    user_id: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
