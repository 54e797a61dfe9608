"""Advisor questionnaire session endpoints.

The client saves its questionnaire state after each step so a user can
resume on another device; persona detection runs server-side on the same
state shape.
"""
# ruff: noqa: B008

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cardsense.advisor.state import AdvisorFormState
from cardsense.advisor.store import clear_state, load_state, save_state
from cardsense.db.engine import get_redis
from cardsense.engine.persona import detect_persona
from cardsense.events import emit
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.schemas.profile import Persona
from cardsense.security.auth import AuthenticatedUser, verify_user

router = APIRouter(prefix="/api/advisor", tags=["advisor"])


class AdvisorSessionResponse(BaseModel):
    state: AdvisorFormState | None = None


class PersonaResponse(BaseModel):
    persona: Persona


@router.get("/session", response_model=AdvisorSessionResponse)
async def get_advisor_session(
    user: AuthenticatedUser = Depends(verify_user),
    redis: aioredis.Redis = Depends(get_redis),
) -> AdvisorSessionResponse:
    return AdvisorSessionResponse(state=await load_state(redis, user.id))


@router.put("/session", response_model=AdvisorSessionResponse)
async def save_advisor_session(
    state: AdvisorFormState,
    user: AuthenticatedUser = Depends(verify_user),
    redis: aioredis.Redis = Depends(get_redis),
) -> AdvisorSessionResponse:
    """Store the state, filling in the detected persona if the client has none yet."""
    if state.detected_persona is None:
        state = state.model_copy(update={"detected_persona": detect_persona(state)})
    await save_state(redis, user.id, state)
    await emit(SystemEvent(
        event_type=EventType.ADVISOR_SESSION_SAVED,
        user_id=user.id,
        data={"step": state.current_step, "persona": state.detected_persona.value},
        source_module="api.advisor",
    ))
    return AdvisorSessionResponse(state=state)


@router.delete("/session")
async def clear_advisor_session(
    user: AuthenticatedUser = Depends(verify_user),
    redis: aioredis.Redis = Depends(get_redis),
) -> dict[str, bool]:
    cleared = await clear_state(redis, user.id)
    if cleared:
        await emit(SystemEvent(
            event_type=EventType.ADVISOR_SESSION_CLEARED,
            user_id=user.id,
            source_module="api.advisor",
        ))
    return {"cleared": cleared}


@router.post("/persona", response_model=PersonaResponse)
async def detect_advisor_persona(
    state: AdvisorFormState,
    _user: AuthenticatedUser = Depends(verify_user),
) -> PersonaResponse:
    return PersonaResponse(persona=detect_persona(state))
