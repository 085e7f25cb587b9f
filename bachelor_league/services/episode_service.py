"""
Episode service: episodes of a league's season and the single active episode.

Any league member may manage episodes.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import Episode, ScoringEvent, NotificationType
from bachelor_league.services.errors import NotFoundError, StateError, ValidationError
from bachelor_league.services.league_service import require_member
from bachelor_league.services.notification_service import notify
from bachelor_league.utils.constants import DEFAULT_EPISODE_NUMBER

logger = logging.getLogger(__name__)


def episode_to_dict(episode: Episode) -> Dict:
    return {
        "id": episode.id,
        "league_id": episode.league_id,
        "episode_number": episode.episode_number,
        "air_date": episode.air_date.isoformat() if episode.air_date else None,
        "is_active": bool(episode.is_active),
        "total_events": episode.total_events or 0,
        "created_at": episode.created_at.isoformat() if episode.created_at else None,
        "updated_at": episode.updated_at.isoformat() if episode.updated_at else None,
    }


async def load_episode(session: AsyncSession, episode_id: int) -> Episode:
    """Fetch an episode row or raise NotFoundError."""
    episode = await session.get(Episode, episode_id)
    if episode is None:
        raise NotFoundError(f"Episode {episode_id} not found")
    return episode


async def create_episode(
    session: AsyncSession,
    league_id: int,
    user_id: int,
    episode_number: Optional[int] = None,
    air_date: Optional[datetime] = None,
) -> Dict:
    """
    Create an episode. Without a number it becomes the next one in the league.

    Raises:
        AuthorizationError: Caller is not a league member
        ValidationError: Number below 1
        StateError: Number already used in this league
    """
    await require_member(session, league_id, user_id)

    if episode_number is None:
        result = await session.execute(
            select(func.max(Episode.episode_number)).where(Episode.league_id == league_id)
        )
        episode_number = (result.scalar() or 0) + 1
    elif episode_number < 1:
        raise ValidationError.for_field("episode_number", "episode_number must be at least 1", "out_of_range")
    else:
        existing = await session.execute(
            select(Episode.id).where(
                Episode.league_id == league_id, Episode.episode_number == episode_number
            )
        )
        if existing.first() is not None:
            raise StateError(f"Episode {episode_number} already exists", code="duplicate_episode")

    episode = Episode(
        league_id=league_id,
        episode_number=episode_number,
        air_date=air_date,
        is_active=False,
        total_events=0,
    )
    session.add(episode)
    await session.commit()
    await session.refresh(episode)
    logger.info(f"Episode {episode_number} created in league {league_id}")
    return episode_to_dict(episode)


async def get_episode(session: AsyncSession, episode_id: int) -> Optional[Dict]:
    """Get an episode by id, or None."""
    episode = await session.get(Episode, episode_id)
    return episode_to_dict(episode) if episode else None


async def list_episodes_by_league(session: AsyncSession, league_id: int) -> List[Dict]:
    """Episodes of a league ordered by number."""
    result = await session.execute(
        select(Episode).where(Episode.league_id == league_id).order_by(Episode.episode_number)
    )
    return [episode_to_dict(e) for e in result.scalars().all()]


async def find_active_episode(session: AsyncSession, league_id: int) -> Optional[Episode]:
    result = await session.execute(
        select(Episode)
        .where(Episode.league_id == league_id, Episode.is_active.is_(True))
        .order_by(Episode.episode_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_episode(session: AsyncSession, league_id: int) -> Optional[Dict]:
    """The league's active episode, or None."""
    episode = await find_active_episode(session, league_id)
    return episode_to_dict(episode) if episode else None


async def get_current_episode_number(session: AsyncSession, league_id: int) -> int:
    """Active episode's number, else the latest episode's, else 1."""
    active = await find_active_episode(session, league_id)
    if active is not None:
        return active.episode_number
    result = await session.execute(
        select(func.max(Episode.episode_number)).where(Episode.league_id == league_id)
    )
    latest = result.scalar()
    return latest if latest is not None else DEFAULT_EPISODE_NUMBER


async def set_active_episode(session: AsyncSession, episode_id: int, user_id: int) -> Dict:
    """
    Make an episode the league's only active episode.

    Raises:
        AuthorizationError: Caller is not a league member
    """
    episode = await load_episode(session, episode_id)
    await require_member(session, episode.league_id, user_id)

    await session.execute(
        update(Episode)
        .where(Episode.league_id == episode.league_id, Episode.id != episode.id)
        .values(is_active=False)
        .execution_options(synchronize_session="fetch")
    )
    episode.is_active = True
    await session.commit()
    await session.refresh(episode)
    logger.info(f"Episode {episode.episode_number} activated in league {episode.league_id}")

    await notify(
        session,
        episode.league_id,
        NotificationType.EPISODE_STARTED.value,
        f"Episode {episode.episode_number} Started",
        f"Scoring is open for episode {episode.episode_number}",
        data={"episode_id": episode.id, "episode_number": episode.episode_number},
    )
    return episode_to_dict(episode)


async def end_episode(session: AsyncSession, episode_id: int, user_id: int) -> Dict:
    """
    Deactivate an active episode.

    Raises:
        StateError: Episode is not active
    """
    episode = await load_episode(session, episode_id)
    await require_member(session, episode.league_id, user_id)
    if not episode.is_active:
        raise StateError("Episode is not active")

    episode.is_active = False
    await session.commit()
    await session.refresh(episode)
    logger.info(f"Episode {episode.episode_number} ended in league {episode.league_id}")

    await notify(
        session,
        episode.league_id,
        NotificationType.EPISODE_ENDED.value,
        f"Episode {episode.episode_number} Ended",
        f"Scoring is closed for episode {episode.episode_number}",
        data={"episode_id": episode.id, "episode_number": episode.episode_number},
    )
    return episode_to_dict(episode)


async def delete_episode(session: AsyncSession, episode_id: int, user_id: int) -> bool:
    """
    Delete an episode that has no scoring events.

    Raises:
        StateError: Episode has scoring events
    """
    episode = await load_episode(session, episode_id)
    await require_member(session, episode.league_id, user_id)

    events = await session.execute(
        select(ScoringEvent.id).where(ScoringEvent.episode_id == episode_id).limit(1)
    )
    if events.first() is not None:
        raise StateError("Cannot delete an episode with scoring events", code="has_events")

    await session.delete(episode)
    await session.commit()
    return True
