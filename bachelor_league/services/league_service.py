"""
League service: league records, settings, status lifecycle and membership.
"""

import random
import logging
from typing import Dict, List, Optional, Any

from sqlalchemy import select, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import (
    League,
    LeagueStatus,
    Team,
    Contestant,
    Episode,
    ScoringEvent,
    Draft,
    DraftStatus,
    Notification,
    NotificationType,
)
from bachelor_league.models.schemas import LeagueSettings
from bachelor_league.services.errors import (
    NotFoundError,
    AuthorizationError,
    StateError,
    ValidationError,
)
from bachelor_league.services.validation import parse_league_settings, validate_league_fields
from bachelor_league.utils.constants import LEAGUE_CODE_LENGTH, LEAGUE_CODE_ALPHABET

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10

# Forward-only lifecycle. Archiving is allowed from any other status.
STATUS_ORDER = [
    LeagueStatus.CREATED.value,
    LeagueStatus.DRAFT_IN_PROGRESS.value,
    LeagueStatus.ACTIVE.value,
    LeagueStatus.COMPLETED.value,
    LeagueStatus.ARCHIVED.value,
]


def league_to_dict(league: League) -> Dict:
    return {
        "id": league.id,
        "name": league.name,
        "season": league.season,
        "league_code": league.league_code,
        "commissioner_id": league.commissioner_id,
        "status": league.status,
        "settings": get_league_settings(league).model_dump(),
        "created_at": league.created_at.isoformat() if league.created_at else None,
        "updated_at": league.updated_at.isoformat() if league.updated_at else None,
    }


def get_league_settings(league: League) -> LeagueSettings:
    """Typed settings for a league (defaults when none are stored)."""
    return parse_league_settings(league.settings)


def generate_league_code() -> str:
    """Random join code of uppercase letters and digits."""
    return "".join(random.choices(LEAGUE_CODE_ALPHABET, k=LEAGUE_CODE_LENGTH))


async def _unique_league_code(session: AsyncSession) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_league_code()
        result = await session.execute(select(League.id).where(League.league_code == code))
        if result.scalar_one_or_none() is None:
            return code
    raise StateError("Could not generate a unique league code", code="code_exhausted")


async def load_league(session: AsyncSession, league_id: int) -> League:
    """Fetch a league row or raise NotFoundError."""
    league = await session.get(League, league_id)
    if league is None:
        raise NotFoundError(f"League {league_id} not found")
    return league


async def require_commissioner(session: AsyncSession, league_id: int, user_id: int) -> League:
    """
    Return the league if user_id is its commissioner.

    Raises:
        NotFoundError: League does not exist
        AuthorizationError: User is not the commissioner
    """
    league = await load_league(session, league_id)
    if league.commissioner_id != user_id:
        raise AuthorizationError("Only the league commissioner can perform this action")
    return league


async def is_league_member(session: AsyncSession, league_id: int, user_id: int) -> bool:
    """A member is the commissioner or the owner of a team in the league."""
    league = await session.get(League, league_id)
    if league is None:
        return False
    if league.commissioner_id == user_id:
        return True
    result = await session.execute(
        select(Team.id).where(Team.league_id == league_id, Team.owner_id == user_id)
    )
    return result.first() is not None


async def require_member(session: AsyncSession, league_id: int, user_id: int) -> League:
    """
    Return the league if user_id is a member.

    Raises:
        NotFoundError: League does not exist
        AuthorizationError: User is not a member
    """
    league = await load_league(session, league_id)
    if not await is_league_member(session, league_id, user_id):
        raise AuthorizationError("You are not a member of this league")
    return league


async def draft_is_running(session: AsyncSession, league_id: int) -> bool:
    """True while the league's draft is in progress or paused."""
    result = await session.execute(select(Draft.status).where(Draft.league_id == league_id))
    return result.scalar_one_or_none() in (
        DraftStatus.IN_PROGRESS.value,
        DraftStatus.PAUSED.value,
    )


async def create_league(
    session: AsyncSession,
    commissioner_id: int,
    name: str,
    season: str,
    settings: Optional[Any] = None,
) -> Dict:
    """
    Create a new league with a unique join code in status 'created'.

    Args:
        session: Database session
        commissioner_id: User creating the league
        name: League name (1..100 chars)
        season: Season label (1..50 chars)
        settings: Optional settings dict; defaults fill anything omitted

    Raises:
        ValidationError: Invalid name, season or settings
    """
    validate_league_fields(name, season)
    parsed = parse_league_settings(settings)

    league = League(
        name=name.strip(),
        season=season.strip(),
        league_code=await _unique_league_code(session),
        commissioner_id=commissioner_id,
        status=LeagueStatus.CREATED.value,
        settings=parsed.model_dump(),
    )
    session.add(league)
    await session.commit()
    await session.refresh(league)
    logger.info(f"League {league.id} created by user {commissioner_id} (code {league.league_code})")
    return league_to_dict(league)


async def get_league(session: AsyncSession, league_id: int) -> Optional[Dict]:
    """Get a league by id, or None."""
    league = await session.get(League, league_id)
    return league_to_dict(league) if league else None


async def get_league_by_code(session: AsyncSession, league_code: str) -> Optional[Dict]:
    """Get a league by its join code (case-insensitive), or None."""
    if not league_code:
        return None
    result = await session.execute(
        select(League).where(League.league_code == league_code.strip().upper())
    )
    league = result.scalar_one_or_none()
    return league_to_dict(league) if league else None


async def list_user_leagues(session: AsyncSession, user_id: int) -> List[Dict]:
    """Leagues the user commissions or owns a team in, newest first."""
    team_leagues = select(Team.league_id).where(Team.owner_id == user_id)
    result = await session.execute(
        select(League)
        .where(or_(League.commissioner_id == user_id, League.id.in_(team_leagues)))
        .order_by(League.created_at.desc(), League.id.desc())
    )
    return [league_to_dict(league) for league in result.scalars().unique().all()]


async def update_league_settings(
    session: AsyncSession, league_id: int, user_id: int, settings: Any
) -> Dict:
    """
    Update league settings. Provided top-level keys replace the stored ones.

    Raises:
        AuthorizationError: Caller is not the commissioner
        ValidationError: Resulting settings are invalid
        StateError: contestant_draft_limit changed while the draft is running
    """
    league = await require_commissioner(session, league_id, user_id)
    if hasattr(settings, "model_dump"):
        settings = settings.model_dump(exclude_unset=True)
    if not isinstance(settings, dict):
        raise ValidationError.for_field("settings", "settings must be an object")

    current = get_league_settings(league).model_dump()
    merged = {**current, **settings}
    parsed = parse_league_settings(merged)

    if parsed.contestant_draft_limit != current["contestant_draft_limit"] and await draft_is_running(
        session, league_id
    ):
        raise StateError(
            "contestant_draft_limit cannot change while the draft is running", code="draft_active"
        )

    if parsed.max_teams < await _team_count(session, league_id):
        raise ValidationError.for_field(
            "max_teams", "max_teams cannot be lower than the current number of teams", "out_of_range"
        )

    league.settings = parsed.model_dump()
    await session.commit()
    await session.refresh(league)
    logger.info(f"League {league_id} settings updated by user {user_id}")
    return league_to_dict(league)


def is_valid_transition(current: str, new: str) -> bool:
    if current == new or new not in STATUS_ORDER or current not in STATUS_ORDER:
        return False
    if new == LeagueStatus.ARCHIVED.value:
        return True
    return STATUS_ORDER.index(new) == STATUS_ORDER.index(current) + 1


async def update_league_status(
    session: AsyncSession, league_id: int, user_id: int, status: str
) -> Dict:
    """
    Move a league along its lifecycle.

    Raises:
        AuthorizationError: Caller is not the commissioner
        ValidationError: Unknown status
        StateError: Transition is not allowed from the current status
    """
    league = await require_commissioner(session, league_id, user_id)
    if status not in STATUS_ORDER:
        raise ValidationError.for_field("status", f"Unknown league status '{status}'")
    if not is_valid_transition(league.status, status):
        raise StateError(f"Cannot change league status from {league.status} to {status}")

    previous = league.status
    league.status = status
    await session.commit()
    await session.refresh(league)
    logger.info(f"League {league_id} status {previous} -> {status}")

    from bachelor_league.services.notification_service import notify

    await notify(
        session,
        league_id,
        NotificationType.LEAGUE_UPDATE.value,
        "League Updated",
        f"{league.name} is now {status.replace('_', ' ')}",
        data={"status": status, "previous_status": previous},
    )
    return league_to_dict(league)


async def _team_count(session: AsyncSession, league_id: int) -> int:
    result = await session.execute(select(Team.id).where(Team.league_id == league_id))
    return len(result.all())


async def join_league(
    session: AsyncSession, league_code: str, team_name: str, user_id: int
) -> Dict:
    """
    Join a league by code, creating the caller's team.

    Raises:
        NotFoundError: No league with that code
        StateError: League is not accepting teams, is full, or user already has a team
        ValidationError: Invalid team name
    """
    league_dict = await get_league_by_code(session, league_code)
    if league_dict is None:
        raise NotFoundError("Invalid league code")

    from bachelor_league.services.team_service import create_team

    return await create_team(session, league_dict["id"], user_id, team_name)


async def delete_league(session: AsyncSession, league_id: int, user_id: int) -> bool:
    """
    Delete a league and every dependent row.

    Raises:
        AuthorizationError: Caller is not the commissioner
    """
    await require_commissioner(session, league_id, user_id)

    episode_ids = select(Episode.id).where(Episode.league_id == league_id)
    await session.execute(delete(ScoringEvent).where(ScoringEvent.episode_id.in_(episode_ids)))
    await session.execute(delete(Episode).where(Episode.league_id == league_id))
    await session.execute(delete(Notification).where(Notification.league_id == league_id))
    await session.execute(delete(Draft).where(Draft.league_id == league_id))
    await session.execute(delete(Team).where(Team.league_id == league_id))
    await session.execute(delete(Contestant).where(Contestant.league_id == league_id))
    await session.execute(delete(League).where(League.id == league_id))
    await session.commit()
    logger.info(f"League {league_id} deleted by user {user_id}")
    return True
