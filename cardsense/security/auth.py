"""Bearer-token authentication against the external auth provider.

Sessions live with the provider; this module only resolves a token into
the user id the recommendation tables are keyed by.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from cardsense.config import settings

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    id: str
    email: str | None = None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def fetch_user(token: str) -> AuthenticatedUser | None:
    """Ask the auth provider who owns `token`. Returns None if it is not valid."""
    async with httpx.AsyncClient(
        base_url=settings.auth.auth_base_url,
        timeout=settings.auth.auth_timeout,
    ) as client:
        try:
            response = await client.get(
                "/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": settings.auth.auth_api_key,
                },
            )
        except httpx.HTTPError:
            logger.exception("Auth provider unreachable")
            return None

    if response.status_code != 200:
        logger.info("Auth provider rejected token (status=%d)", response.status_code)
        return None

    data = response.json()
    user_id = data.get("id")
    if not user_id:
        return None
    return AuthenticatedUser(id=str(user_id), email=data.get("email"))


async def verify_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),  # noqa: B008
) -> AuthenticatedUser:
    """FastAPI dependency — resolve the bearer token or raise 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    user = await fetch_user(credentials.credentials)
    if user is None:
        raise _unauthorized()
    return user
