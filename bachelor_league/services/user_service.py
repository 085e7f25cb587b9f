"""
User service layer. Accounts are owned by the identity provider; this table
only holds what the league needs for ownership and display.
"""

from typing import Optional, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from bachelor_league.database.models import User
import logging

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def create_user(
    session: AsyncSession, display_name: str, email: Optional[str] = None
) -> Dict:
    """
    Create a user record.

    Raises:
        ValueError: If the email is already registered
    """
    if email:
        result = await session.execute(select(User.id).where(User.email == email))
        if result.scalar_one_or_none():
            raise ValueError(f"Email {email} is already registered")

    user = User(display_name=display_name, email=email)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return _user_to_dict(user)


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """Get a user by id, or None."""
    user = await session.get(User, user_id)
    return _user_to_dict(user) if user else None


async def get_or_create_user(
    session: AsyncSession,
    user_id: int,
    display_name: Optional[str] = None,
    email: Optional[str] = None,
) -> Dict:
    """
    Return the user for a verified token, provisioning a placeholder record
    the first time an id is seen.
    """
    user = await session.get(User, user_id)
    if user is not None:
        return _user_to_dict(user)

    if email:
        taken = await session.execute(select(User.id).where(User.email == email))
        if taken.scalar_one_or_none():
            email = None

    user = User(id=user_id, display_name=display_name or f"User {user_id}", email=email)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Provisioned user record for token user {user_id}")
    return _user_to_dict(user)


async def get_display_names(session: AsyncSession, user_ids: List[int]) -> Dict[int, str]:
    """Map user ids to display names (missing ids are omitted)."""
    if not user_ids:
        return {}
    result = await session.execute(
        select(User.id, User.display_name).where(User.id.in_(set(user_ids)))
    )
    return {row.id: row.display_name for row in result.all()}
