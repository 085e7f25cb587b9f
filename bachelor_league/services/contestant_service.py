"""
Contestant service: cast member records for a league.

All mutations are commissioner-only.
"""

import logging
from typing import Dict, List, Optional, Any

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import Contestant, ScoringEvent
from bachelor_league.services import s3_service, photo_service
from bachelor_league.services.errors import NotFoundError, StateError, ServiceError
from bachelor_league.services.league_service import require_commissioner
from bachelor_league.services.team_service import get_league_teams, teams_owning_contestant
from bachelor_league.services.validation import validate_contestant_fields

logger = logging.getLogger(__name__)


def contestant_to_dict(contestant: Contestant) -> Dict:
    return {
        "id": contestant.id,
        "league_id": contestant.league_id,
        "name": contestant.name,
        "age": contestant.age,
        "hometown": contestant.hometown,
        "occupation": contestant.occupation,
        "bio": contestant.bio,
        "profile_image_url": contestant.profile_image_url,
        "is_eliminated": bool(contestant.is_eliminated),
        "elimination_episode": contestant.elimination_episode,
        "total_points": contestant.total_points or 0,
        "episode_scores": list(contestant.episode_scores or []),
        "created_at": contestant.created_at.isoformat() if contestant.created_at else None,
        "updated_at": contestant.updated_at.isoformat() if contestant.updated_at else None,
    }


async def load_contestant(session: AsyncSession, contestant_id: int) -> Contestant:
    """Fetch a contestant row or raise NotFoundError."""
    contestant = await session.get(Contestant, contestant_id)
    if contestant is None:
        raise NotFoundError(f"Contestant {contestant_id} not found")
    return contestant


def _new_contestant(league_id: int, fields: Dict[str, Any]) -> Contestant:
    return Contestant(
        league_id=league_id,
        name=fields["name"],
        age=fields.get("age"),
        hometown=fields.get("hometown"),
        occupation=fields.get("occupation"),
        bio=fields.get("bio"),
        profile_image_url=fields.get("profile_image_url"),
        is_eliminated=False,
        total_points=0,
        episode_scores=[],
    )


async def create_contestant(
    session: AsyncSession, league_id: int, user_id: int, data: Dict[str, Any]
) -> Dict:
    """
    Add a contestant to a league.

    Args:
        session: Database session
        league_id: League to add to
        user_id: Acting user (must be commissioner)
        data: name, age, hometown, occupation, bio, profile_image_url

    Raises:
        AuthorizationError: Caller is not the commissioner
        ValidationError: Invalid fields
    """
    await require_commissioner(session, league_id, user_id)
    fields = validate_contestant_fields(data)

    contestant = _new_contestant(league_id, fields)
    session.add(contestant)
    await session.commit()
    await session.refresh(contestant)
    logger.info(f"Contestant {contestant.id} ({contestant.name!r}) added to league {league_id}")
    return contestant_to_dict(contestant)


async def bulk_create_contestants(
    session: AsyncSession, league_id: int, user_id: int, items: List[Dict[str, Any]]
) -> Dict:
    """
    Add many contestants. Invalid items are reported and skipped; valid ones
    are created together.

    Returns:
        {"created": [contestant dicts], "failed": [{"index", "error", "errors"}]}
    """
    await require_commissioner(session, league_id, user_id)

    to_create: List[Contestant] = []
    failed: List[Dict] = []
    for index, item in enumerate(items):
        try:
            fields = validate_contestant_fields(item or {})
        except ServiceError as e:
            failed.append({"index": index, "error": e.message, "errors": getattr(e, "errors", [])})
            continue
        to_create.append(_new_contestant(league_id, fields))

    if to_create:
        session.add_all(to_create)
        await session.commit()
        for contestant in to_create:
            await session.refresh(contestant)

    logger.info(
        f"Bulk contestant create for league {league_id}: "
        f"{len(to_create)} created, {len(failed)} failed"
    )
    return {"created": [contestant_to_dict(c) for c in to_create], "failed": failed}


async def get_contestant(session: AsyncSession, contestant_id: int) -> Optional[Dict]:
    """Get a contestant by id, or None."""
    contestant = await session.get(Contestant, contestant_id)
    return contestant_to_dict(contestant) if contestant else None


async def get_league_contestants(session: AsyncSession, league_id: int) -> List[Contestant]:
    """Contestant rows of a league ordered by id."""
    result = await session.execute(
        select(Contestant).where(Contestant.league_id == league_id).order_by(Contestant.id)
    )
    return list(result.scalars().all())


async def list_contestants_by_league(
    session: AsyncSession, league_id: int, eliminated: Optional[bool] = None
) -> List[Dict]:
    """
    Contestants of a league.

    Args:
        eliminated: True for eliminated only, False for remaining only, None for all
    """
    query = select(Contestant).where(Contestant.league_id == league_id)
    if eliminated is not None:
        query = query.where(Contestant.is_eliminated == eliminated)
    result = await session.execute(query.order_by(Contestant.id))
    return [contestant_to_dict(c) for c in result.scalars().all()]


async def search_contestants(session: AsyncSession, league_id: int, query: str) -> List[Dict]:
    """Case-insensitive match on name, hometown or occupation."""
    term = (query or "").strip().lower()
    if not term:
        return await list_contestants_by_league(session, league_id)
    pattern = f"%{term}%"
    result = await session.execute(
        select(Contestant)
        .where(
            Contestant.league_id == league_id,
            or_(
                func.lower(Contestant.name).like(pattern),
                func.lower(Contestant.hometown).like(pattern),
                func.lower(Contestant.occupation).like(pattern),
            ),
        )
        .order_by(Contestant.name, Contestant.id)
    )
    return [contestant_to_dict(c) for c in result.scalars().all()]


async def update_contestant(
    session: AsyncSession, contestant_id: int, user_id: int, data: Dict[str, Any]
) -> Dict:
    """
    Update the provided profile fields of a contestant.
    Points and elimination are managed by the scoring service.

    Raises:
        AuthorizationError: Caller is not the commissioner
        ValidationError: Invalid fields
    """
    contestant = await load_contestant(session, contestant_id)
    await require_commissioner(session, contestant.league_id, user_id)

    fields = validate_contestant_fields(data, partial=True)
    for key, value in fields.items():
        setattr(contestant, key, value)

    await session.commit()
    await session.refresh(contestant)
    return contestant_to_dict(contestant)


async def delete_contestant(session: AsyncSession, contestant_id: int, user_id: int) -> bool:
    """
    Delete a contestant that has not been drafted or scored.

    Raises:
        AuthorizationError: Caller is not the commissioner
        StateError: Contestant is on a team or has scoring events
    """
    contestant = await load_contestant(session, contestant_id)
    await require_commissioner(session, contestant.league_id, user_id)

    teams = await get_league_teams(session, contestant.league_id)
    if teams_owning_contestant(teams, contestant_id):
        raise StateError("Cannot delete a drafted contestant", code="already_drafted")

    events = await session.execute(
        select(ScoringEvent.id).where(ScoringEvent.contestant_id == contestant_id).limit(1)
    )
    if events.first() is not None:
        raise StateError("Cannot delete a contestant with scoring events", code="has_events")

    old_url = contestant.profile_image_url
    await session.delete(contestant)
    await session.commit()
    logger.info(f"Contestant {contestant_id} deleted by user {user_id}")

    if old_url:
        s3_service.delete_photo(old_url)
    return True


async def upload_contestant_photo(
    session: AsyncSession,
    contestant_id: int,
    user_id: int,
    file_bytes: bytes,
    content_type: str,
) -> Dict:
    """
    Validate, process and store a contestant photo, replacing the previous one.

    Raises:
        AuthorizationError: Caller is not the commissioner
        ValidationError: Photo rejected
    """
    contestant = await load_contestant(session, contestant_id)
    await require_commissioner(session, contestant.league_id, user_id)

    photo_service.validate_photo(file_bytes, content_type)
    processed = photo_service.process_photo(file_bytes)
    url = s3_service.upload_contestant_photo(contestant.league_id, contestant_id, processed)

    old_url = contestant.profile_image_url
    contestant.profile_image_url = url
    await session.commit()
    await session.refresh(contestant)

    if old_url and old_url != url:
        s3_service.delete_photo(old_url)

    return contestant_to_dict(contestant)
