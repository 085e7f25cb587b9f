"""
Authentication dependencies for FastAPI routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from bachelor_league.services import auth_service, user_service, league_service
from bachelor_league.database.db import get_db_session

security = HTTPBearer()


async def resolve_token_user(session: AsyncSession, token: Optional[str]) -> Optional[dict]:
    """
    Verify a bearer token and return its user, provisioning a user record the
    first time a token's user id is seen.

    Returns:
        User dictionary, or None if the token is missing or invalid
    """
    if not token:
        return None
    payload = auth_service.verify_token(token)
    if payload is None:
        return None
    user_id = payload.get("user_id")
    if user_id is None:
        return None
    return await user_service.get_or_create_user(
        session,
        int(user_id),
        display_name=payload.get("display_name") or payload.get("name"),
        email=payload.get("email"),
    )


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid
    """
    user = await resolve_token_user(session, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_user(user: dict = Depends(get_current_user)) -> dict:
    """Require any authenticated user."""
    return user


def make_require_league_member():
    """Require the caller to be the commissioner or a team owner of {league_id}."""

    async def _dep(
        league_id: int,
        user: dict = Depends(get_current_user),
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        if not await league_service.is_league_member(session, league_id, user["id"]):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="League membership required"
            )
        return user

    return _dep


def make_require_league_commissioner():
    """Require the caller to be the commissioner of {league_id}."""

    async def _dep(
        league_id: int,
        user: dict = Depends(get_current_user),
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        league = await league_service.get_league(session, league_id)
        if league is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="League not found")
        if league["commissioner_id"] != user["id"]:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Commissioner access required"
            )
        return user

    return _dep
