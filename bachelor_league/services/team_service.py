"""
Team service: team records and commissioner roster adjustments.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import (
    Team,
    Contestant,
    Draft,
    DraftStatus,
    LeagueStatus,
    NotificationType,
)
from bachelor_league.services.errors import NotFoundError, AuthorizationError, StateError
from bachelor_league.services.league_service import (
    load_league,
    require_commissioner,
    get_league_settings,
    draft_is_running,
)
from bachelor_league.services.validation import validate_team_name

logger = logging.getLogger(__name__)


def team_to_dict(team: Team) -> Dict:
    return {
        "id": team.id,
        "league_id": team.league_id,
        "owner_id": team.owner_id,
        "name": team.name,
        "drafted_contestants": list(team.drafted_contestants or []),
        "total_points": team.total_points or 0,
        "episode_scores": list(team.episode_scores or []),
        "created_at": team.created_at.isoformat() if team.created_at else None,
        "updated_at": team.updated_at.isoformat() if team.updated_at else None,
    }


async def load_team(session: AsyncSession, team_id: int) -> Team:
    """Fetch a team row or raise NotFoundError."""
    team = await session.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} not found")
    return team


async def get_league_teams(session: AsyncSession, league_id: int) -> List[Team]:
    """Team rows of a league ordered by id."""
    result = await session.execute(
        select(Team).where(Team.league_id == league_id).order_by(Team.id)
    )
    return list(result.scalars().all())


def teams_owning_contestant(teams: List[Team], contestant_id: int) -> List[Team]:
    """Teams whose drafted list contains the contestant."""
    return [t for t in teams if contestant_id in (t.drafted_contestants or [])]


async def create_team(session: AsyncSession, league_id: int, owner_id: int, name: str) -> Dict:
    """
    Create a team for a user in a league.

    Raises:
        ValidationError: Invalid team name
        NotFoundError: League does not exist
        StateError: League not accepting teams, full, or user already has a team
    """
    clean_name = validate_team_name(name)
    league = await load_league(session, league_id)

    if league.status != LeagueStatus.CREATED.value:
        raise StateError("League is not accepting new teams", code="league_closed")

    teams = await get_league_teams(session, league_id)
    settings = get_league_settings(league)
    if len(teams) >= settings.max_teams:
        raise StateError("League is full", code="league_full")
    if any(t.owner_id == owner_id for t in teams):
        raise StateError("You already have a team in this league", code="duplicate_team")

    team = Team(
        league_id=league_id,
        owner_id=owner_id,
        name=clean_name,
        drafted_contestants=[],
        total_points=0,
        episode_scores=[],
    )
    session.add(team)
    await session.commit()
    await session.refresh(team)
    logger.info(f"Team {team.id} ({clean_name!r}) created in league {league_id} by user {owner_id}")

    from bachelor_league.services.notification_service import notify

    await notify(
        session,
        league_id,
        NotificationType.LEAGUE_UPDATE.value,
        "New Team Joined",
        f"{clean_name} joined {league.name}",
        data={"team_id": team.id},
    )
    return team_to_dict(team)


async def get_team(session: AsyncSession, team_id: int) -> Optional[Dict]:
    """Get a team by id, or None."""
    team = await session.get(Team, team_id)
    return team_to_dict(team) if team else None


async def list_teams_by_league(session: AsyncSession, league_id: int) -> List[Dict]:
    """All teams in a league ordered by id."""
    return [team_to_dict(t) for t in await get_league_teams(session, league_id)]


async def list_user_teams(session: AsyncSession, user_id: int) -> List[Dict]:
    """All teams owned by a user across leagues."""
    result = await session.execute(
        select(Team).where(Team.owner_id == user_id).order_by(Team.id)
    )
    return [team_to_dict(t) for t in result.scalars().all()]


async def _require_owner_or_commissioner(session: AsyncSession, team: Team, user_id: int) -> None:
    if team.owner_id == user_id:
        return
    league = await load_league(session, team.league_id)
    if league.commissioner_id != user_id:
        raise AuthorizationError("Only the team owner or league commissioner can modify this team")


async def update_team(session: AsyncSession, team_id: int, user_id: int, name: str) -> Dict:
    """
    Rename a team.

    Raises:
        AuthorizationError: Caller is neither the owner nor the commissioner
        ValidationError: Invalid team name
    """
    team = await load_team(session, team_id)
    await _require_owner_or_commissioner(session, team, user_id)
    team.name = validate_team_name(name)
    await session.commit()
    await session.refresh(team)
    return team_to_dict(team)


async def add_contestant_to_team(
    session: AsyncSession, team_id: int, contestant_id: int, user_id: int
) -> Dict:
    """
    Commissioner roster adjustment: put a contestant on a team.

    Raises:
        AuthorizationError: Caller is not the commissioner
        NotFoundError: Team or contestant missing
        StateError: Draft is running, or contestant in another league, already
            drafted, or roster full
    """
    team = await load_team(session, team_id)
    league = await require_commissioner(session, team.league_id, user_id)
    if await draft_is_running(session, team.league_id):
        raise StateError("Rosters cannot be adjusted while the draft is running", code="draft_active")

    contestant = await session.get(Contestant, contestant_id)
    if contestant is None:
        raise NotFoundError(f"Contestant {contestant_id} not found")
    if contestant.league_id != team.league_id:
        raise StateError("Contestant does not belong to this league", code="wrong_league")

    teams = await get_league_teams(session, team.league_id)
    if teams_owning_contestant(teams, contestant_id):
        raise StateError("Contestant has already been drafted", code="already_drafted")

    limit = get_league_settings(league).contestant_draft_limit
    drafted = list(team.drafted_contestants or [])
    if len(drafted) >= limit:
        raise StateError(f"Team already has {limit} contestants", code="roster_full")

    team.drafted_contestants = drafted + [contestant_id]
    await session.commit()
    await session.refresh(team)
    logger.info(f"Contestant {contestant_id} added to team {team_id} by commissioner {user_id}")
    return team_to_dict(team)


async def remove_contestant_from_team(
    session: AsyncSession, team_id: int, contestant_id: int, user_id: int
) -> Dict:
    """
    Commissioner roster adjustment: take a contestant off a team.
    Points already earned stay on the team.

    Raises:
        AuthorizationError: Caller is not the commissioner
        StateError: Draft is running, or contestant is not on the team
    """
    team = await load_team(session, team_id)
    await require_commissioner(session, team.league_id, user_id)
    if await draft_is_running(session, team.league_id):
        raise StateError("Rosters cannot be adjusted while the draft is running", code="draft_active")

    drafted = list(team.drafted_contestants or [])
    if contestant_id not in drafted:
        raise StateError("Contestant is not on this team", code="not_on_team")

    team.drafted_contestants = [cid for cid in drafted if cid != contestant_id]
    await session.commit()
    await session.refresh(team)
    logger.info(f"Contestant {contestant_id} removed from team {team_id} by commissioner {user_id}")
    return team_to_dict(team)


async def delete_team(session: AsyncSession, team_id: int, user_id: int) -> bool:
    """
    Delete a team. Only allowed before the league's draft starts.

    Raises:
        AuthorizationError: Caller is neither the owner nor the commissioner
        StateError: The draft has already started
    """
    team = await load_team(session, team_id)
    await _require_owner_or_commissioner(session, team, user_id)

    league = await load_league(session, team.league_id)
    result = await session.execute(select(Draft.status).where(Draft.league_id == league.id))
    draft_status = result.scalar_one_or_none()
    if league.status != LeagueStatus.CREATED.value or draft_status not in (
        None,
        DraftStatus.NOT_STARTED.value,
    ):
        raise StateError("Teams cannot be deleted after the draft has started")

    await session.delete(team)

    # Keep a pending lobby's order in sync
    draft_result = await session.execute(select(Draft).where(Draft.league_id == league.id))
    draft = draft_result.scalar_one_or_none()
    if draft is not None and team_id in (draft.draft_order or []):
        draft.draft_order = [tid for tid in draft.draft_order if tid != team_id]

    await session.commit()
    logger.info(f"Team {team_id} deleted by user {user_id}")
    return True
