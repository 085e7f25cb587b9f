"""
Draft orchestrator.

Sequences picks through a snake or linear order and persists each pick.
Every operation is a single read-modify-write on one session, committed once.
Invalid turns and duplicate contestants are rejected before anything is
written, so the loser of two racing picks gets a StateError and resubmits.
"""

import random
import logging
from typing import Dict, List, Optional, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import (
    Draft,
    DraftStatus,
    DraftFormat,
    League,
    LeagueStatus,
    Team,
    Contestant,
    NotificationType,
)
from bachelor_league.models.schemas import DraftSettings
from bachelor_league.services.errors import (
    NotFoundError,
    AuthorizationError,
    StateError,
)
from bachelor_league.services.league_service import (
    load_league,
    require_commissioner,
    require_member,
    get_league_settings,
)
from bachelor_league.services.team_service import get_league_teams
from bachelor_league.services.contestant_service import get_league_contestants, contestant_to_dict
from bachelor_league.services.notification_service import notify
from bachelor_league.services.validation import parse_draft_settings
from bachelor_league.utils.datetime_utils import utcnow, ensure_utc

logger = logging.getLogger(__name__)


def draft_to_dict(draft: Draft) -> Dict:
    return {
        "id": draft.id,
        "league_id": draft.league_id,
        "status": draft.status,
        "current_pick": draft.current_pick or 0,
        "current_turn_started_at": (
            draft.current_turn_started_at.isoformat() if draft.current_turn_started_at else None
        ),
        "draft_order": list(draft.draft_order or []),
        "picks": list(draft.picks or []),
        "settings": get_draft_settings(draft).model_dump(),
        "created_at": draft.created_at.isoformat() if draft.created_at else None,
        "updated_at": draft.updated_at.isoformat() if draft.updated_at else None,
    }


def get_draft_settings(draft: Draft) -> DraftSettings:
    return parse_draft_settings(draft.settings)


def turn_team_for_pick(draft_order: List[int], pick_index: int, draft_format: str) -> Optional[int]:
    """
    Team id on the clock for a zero-based pick index.

    Linear repeats the order every pass. Snake runs forward on even passes
    and reversed on odd passes.
    """
    n = len(draft_order)
    if n == 0 or pick_index < 0:
        return None
    position = pick_index % n
    if draft_format == DraftFormat.SNAKE.value and (pick_index // n) % 2 == 1:
        position = n - 1 - position
    return draft_order[position]


def current_turn_team(draft: Draft, draft_format: Optional[str] = None) -> Optional[int]:
    """Team id whose turn it is, or None when the draft is not running."""
    if draft.status != DraftStatus.IN_PROGRESS.value:
        return None
    fmt = draft_format or get_draft_settings(draft).draft_format
    return turn_team_for_pick(list(draft.draft_order or []), draft.current_pick or 0, fmt)


def drafted_contestant_ids(teams: List[Team]) -> set:
    ids = set()
    for team in teams:
        ids.update(team.drafted_contestants or [])
    return ids


async def load_draft(session: AsyncSession, draft_id: int) -> Draft:
    """Fetch a draft row or raise NotFoundError."""
    draft = await session.get(Draft, draft_id)
    if draft is None:
        raise NotFoundError(f"Draft {draft_id} not found")
    return draft


async def _find_league_draft(session: AsyncSession, league_id: int) -> Optional[Draft]:
    result = await session.execute(select(Draft).where(Draft.league_id == league_id))
    return result.scalar_one_or_none()


async def _owner_of(session: AsyncSession, team_id: Optional[int]) -> Optional[Team]:
    if team_id is None:
        return None
    return await session.get(Team, team_id)


async def _announce_turn(session: AsyncSession, draft: Draft, league: League) -> None:
    team = await _owner_of(session, current_turn_team(draft))
    if team is None:
        return
    await notify(
        session,
        league.id,
        NotificationType.DRAFT_TURN.value,
        "Your Turn to Pick!",
        f"It's your turn to pick in {league.name}",
        data={"draft_id": draft.id, "team_id": team.id, "pick_number": (draft.current_pick or 0) + 1},
        target_user_id=team.owner_id,
    )


async def create_draft(
    session: AsyncSession, league_id: int, user_id: int, settings: Optional[Any] = None
) -> Dict:
    """
    Open a pre-draft lobby in status not_started.

    Raises:
        AuthorizationError: Caller is not the commissioner
        StateError: League already has a draft or has no teams
        ValidationError: Invalid draft settings
    """
    league = await require_commissioner(session, league_id, user_id)
    if await _find_league_draft(session, league_id) is not None:
        raise StateError("A draft already exists for this league", code="draft_exists")

    teams = await get_league_teams(session, league_id)
    if not teams:
        raise StateError("League has no teams", code="no_teams")

    raw = dict(settings or {}) if not hasattr(settings, "model_dump") else settings.model_dump()
    raw.setdefault("draft_format", get_league_settings(league).draft_format)
    parsed = parse_draft_settings(raw)

    draft = Draft(
        league_id=league_id,
        status=DraftStatus.NOT_STARTED.value,
        current_pick=0,
        draft_order=[t.id for t in teams],
        picks=[],
        settings=parsed.model_dump(),
    )
    session.add(draft)
    await session.commit()
    await session.refresh(draft)
    logger.info(f"Draft {draft.id} created for league {league_id}")
    return draft_to_dict(draft)


async def start_draft(
    session: AsyncSession, league_id: int, user_id: int, randomize: bool = True
) -> Dict:
    """
    Start the league's draft, reusing a not_started lobby or creating one.

    The draft order is the league's current teams, shuffled when randomize
    is set. The league moves to draft_in_progress.

    Raises:
        AuthorizationError: Caller is not the commissioner
        StateError: A draft is already running, paused or finished; the league
            has no teams or contestants; or the league is past team signup
    """
    league = await require_commissioner(session, league_id, user_id)

    draft = await _find_league_draft(session, league_id)
    if draft is not None and draft.status != DraftStatus.NOT_STARTED.value:
        raise StateError(f"Draft is already {draft.status.replace('_', ' ')}", code="draft_active")
    if league.status != LeagueStatus.CREATED.value:
        raise StateError(f"Cannot start a draft for a league that is {league.status}")

    teams = await get_league_teams(session, league_id)
    if not teams:
        raise StateError("League has no teams", code="no_teams")
    contestants = await get_league_contestants(session, league_id)
    if not contestants:
        raise StateError("League has no contestants", code="no_contestants")

    order = [t.id for t in teams]
    if randomize:
        random.shuffle(order)

    if draft is None:
        draft = Draft(
            league_id=league_id,
            settings=parse_draft_settings(
                {"draft_format": get_league_settings(league).draft_format}
            ).model_dump(),
        )
        session.add(draft)

    draft.status = DraftStatus.IN_PROGRESS.value
    draft.current_pick = 0
    draft.draft_order = order
    draft.picks = []
    draft.current_turn_started_at = utcnow()
    league.status = LeagueStatus.DRAFT_IN_PROGRESS.value

    await session.commit()
    await session.refresh(draft)
    logger.info(f"Draft {draft.id} started for league {league_id} with {len(order)} teams")

    await notify(
        session,
        league_id,
        NotificationType.DRAFT_STARTED.value,
        "Draft Started!",
        f"The draft for {league.name} has begun. Get ready to pick your contestants!",
        data={"draft_id": draft.id, "draft_order": order},
    )
    await _announce_turn(session, draft, league)
    return draft_to_dict(draft)


async def make_pick(
    session: AsyncSession, draft_id: int, team_id: int, contestant_id: int, user_id: int
) -> Dict:
    """
    Draft a contestant onto the team on the clock.

    Raises:
        StateError: Draft not in progress, not this team's turn, contestant
            already drafted or in another league, or team roster full
        AuthorizationError: Caller neither owns the team nor is commissioner
        NotFoundError: Draft, team or contestant missing

    Returns:
        {"draft": draft dict, "pick": pick record}
    """
    draft = await load_draft(session, draft_id)
    if draft.status != DraftStatus.IN_PROGRESS.value:
        raise StateError("Draft is not in progress", code="draft_not_running")

    league = await load_league(session, draft.league_id)
    expected_team_id = current_turn_team(draft)
    if team_id != expected_team_id:
        raise StateError("It is not this team's turn to pick", code="not_your_turn")

    team = await session.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team {team_id} not found")
    if team.owner_id != user_id and league.commissioner_id != user_id:
        raise AuthorizationError("Only the team owner or commissioner can pick for this team")

    contestant = await session.get(Contestant, contestant_id)
    if contestant is None:
        raise NotFoundError(f"Contestant {contestant_id} not found")
    if contestant.league_id != draft.league_id:
        raise StateError("Contestant does not belong to this league", code="wrong_league")

    teams = await get_league_teams(session, draft.league_id)
    drafted = drafted_contestant_ids(teams)
    if contestant_id in drafted or any(p.get("contestant_id") == contestant_id for p in draft.picks or []):
        raise StateError("Contestant has already been drafted", code="already_drafted")

    limit = get_league_settings(league).contestant_draft_limit
    if len(team.drafted_contestants or []) >= limit:
        raise StateError(f"Team already has {limit} contestants", code="roster_full")

    pick = {
        "pick_number": (draft.current_pick or 0) + 1,
        "team_id": team_id,
        "contestant_id": contestant_id,
        "timestamp": utcnow().isoformat(),
    }
    draft.picks = list(draft.picks or []) + [pick]
    team.drafted_contestants = list(team.drafted_contestants or []) + [contestant_id]
    draft.current_pick = (draft.current_pick or 0) + 1
    draft.current_turn_started_at = utcnow()

    total_picks = len(draft.draft_order or []) * limit
    contestants = await get_league_contestants(session, draft.league_id)
    remaining = len(contestants) - len(drafted) - 1

    completed = draft.current_pick >= total_picks or remaining <= 0
    if completed:
        draft.status = DraftStatus.COMPLETED.value
        draft.current_turn_started_at = None
        league.status = LeagueStatus.ACTIVE.value

    await session.commit()
    await session.refresh(draft)
    logger.info(
        f"Draft {draft_id}: pick {pick['pick_number']} team {team_id} -> contestant {contestant_id}"
    )

    await notify(
        session,
        league.id,
        NotificationType.DRAFT_PICK_MADE.value,
        "Draft Pick Made",
        f"{team.name} selected {contestant.name}",
        data={"draft_id": draft.id, **pick},
    )
    if completed:
        logger.info(f"Draft {draft_id} completed after {draft.current_pick} picks")
        await notify(
            session,
            league.id,
            NotificationType.DRAFT_COMPLETED.value,
            "Draft Complete!",
            f"The draft for {league.name} is complete. Good luck this season!",
            data={"draft_id": draft.id},
        )
    else:
        await _announce_turn(session, draft, league)

    return {"draft": draft_to_dict(draft), "pick": pick}


async def auto_pick(session: AsyncSession, draft_id: int, user_id: int) -> Dict:
    """
    Pick the lowest-id available contestant for the team on the clock once
    its turn has run out. Requires auto_pick_enabled on the draft.

    Raises:
        StateError: Auto-pick disabled, draft not running, or turn not expired
    """
    draft = await load_draft(session, draft_id)
    await require_member(session, draft.league_id, user_id)
    settings = get_draft_settings(draft)
    if not settings.auto_pick_enabled:
        raise StateError("Auto-pick is not enabled for this draft", code="auto_pick_disabled")
    if draft.status != DraftStatus.IN_PROGRESS.value:
        raise StateError("Draft is not in progress", code="draft_not_running")
    if seconds_remaining(draft) > 0:
        raise StateError("The current turn has not expired", code="turn_not_expired")

    available = await _available_contestants(session, draft)
    if not available:
        raise StateError("No contestants are available", code="no_contestants")

    league = await load_league(session, draft.league_id)
    return await make_pick(
        session, draft_id, current_turn_team(draft), available[0].id, league.commissioner_id
    )


async def pause_draft(session: AsyncSession, draft_id: int, user_id: int) -> Dict:
    """
    Pause a running draft. Picks and the pick counter are untouched.

    Raises:
        StateError: Draft is not in progress
    """
    draft = await load_draft(session, draft_id)
    league = await require_commissioner(session, draft.league_id, user_id)
    if draft.status != DraftStatus.IN_PROGRESS.value:
        raise StateError("Only a draft in progress can be paused")

    draft.status = DraftStatus.PAUSED.value
    await session.commit()
    await session.refresh(draft)
    logger.info(f"Draft {draft_id} paused")

    await notify(
        session,
        league.id,
        NotificationType.LEAGUE_UPDATE.value,
        "Draft Paused",
        f"The draft for {league.name} has been paused",
        data={"draft_id": draft.id},
    )
    return draft_to_dict(draft)


async def resume_draft(session: AsyncSession, draft_id: int, user_id: int) -> Dict:
    """
    Resume a paused draft and restart the turn timer.

    Raises:
        StateError: Draft is not paused
    """
    draft = await load_draft(session, draft_id)
    league = await require_commissioner(session, draft.league_id, user_id)
    if draft.status != DraftStatus.PAUSED.value:
        raise StateError("Only a paused draft can be resumed")

    draft.status = DraftStatus.IN_PROGRESS.value
    draft.current_turn_started_at = utcnow()
    await session.commit()
    await session.refresh(draft)
    logger.info(f"Draft {draft_id} resumed")

    await _announce_turn(session, draft, league)
    return draft_to_dict(draft)


async def get_draft(session: AsyncSession, draft_id: int) -> Optional[Dict]:
    """Get a draft by id, or None."""
    draft = await session.get(Draft, draft_id)
    return draft_to_dict(draft) if draft else None


async def get_draft_by_league(session: AsyncSession, league_id: int) -> Optional[Dict]:
    """Get a league's draft, or None."""
    draft = await _find_league_draft(session, league_id)
    return draft_to_dict(draft) if draft else None


async def _available_contestants(session: AsyncSession, draft: Draft) -> List[Contestant]:
    teams = await get_league_teams(session, draft.league_id)
    drafted = drafted_contestant_ids(teams)
    return [c for c in await get_league_contestants(session, draft.league_id) if c.id not in drafted]


async def get_available_contestants(session: AsyncSession, draft_id: int) -> List[Dict]:
    """Contestants of the draft's league not yet on any team."""
    draft = await load_draft(session, draft_id)
    return [contestant_to_dict(c) for c in await _available_contestants(session, draft)]


def seconds_remaining(draft: Draft) -> int:
    """Seconds left on the current turn (0 when expired or not running)."""
    if draft.status != DraftStatus.IN_PROGRESS.value or draft.current_turn_started_at is None:
        return 0
    elapsed = (utcnow() - ensure_utc(draft.current_turn_started_at)).total_seconds()
    return max(0, int(get_draft_settings(draft).pick_time_limit - elapsed))


async def get_draft_status(session: AsyncSession, draft_id: int) -> Dict:
    """
    Summary of where a draft stands.

    Returns:
        Dict with status, current team, round, total rounds, picks made and
        remaining, and seconds left in the current turn
    """
    draft = await load_draft(session, draft_id)
    league = await load_league(session, draft.league_id)
    settings = get_draft_settings(draft)
    limit = get_league_settings(league).contestant_draft_limit

    n = len(draft.draft_order or [])
    total_picks = n * limit
    current_pick = draft.current_pick or 0
    current_round = min(current_pick // n + 1, limit) if n else 0

    team_id = turn_team_for_pick(list(draft.draft_order or []), current_pick, settings.draft_format)
    if draft.status not in (DraftStatus.IN_PROGRESS.value, DraftStatus.PAUSED.value):
        team_id = None
    team = await _owner_of(session, team_id)

    return {
        "draft_id": draft.id,
        "league_id": draft.league_id,
        "status": draft.status,
        "draft_format": settings.draft_format,
        "current_pick": current_pick,
        "current_round": current_round,
        "total_rounds": limit,
        "total_picks": total_picks,
        "picks_made": len(draft.picks or []),
        "picks_remaining": max(0, total_picks - current_pick),
        "current_team_id": team.id if team else None,
        "current_team_name": team.name if team else None,
        "current_owner_id": team.owner_id if team else None,
        "pick_time_limit": settings.pick_time_limit,
        "seconds_remaining": seconds_remaining(draft),
    }


async def delete_draft(session: AsyncSession, league_id: int, user_id: int) -> bool:
    """
    Delete the league's draft and clear every team's drafted list.
    The league returns to 'created'.

    Raises:
        AuthorizationError: Caller is not the commissioner
        NotFoundError: League has no draft
        StateError: League season is already completed or archived
    """
    league = await require_commissioner(session, league_id, user_id)
    draft = await _find_league_draft(session, league_id)
    if draft is None:
        raise NotFoundError("League has no draft")
    if league.status in (LeagueStatus.COMPLETED.value, LeagueStatus.ARCHIVED.value):
        raise StateError(f"Cannot delete the draft of a {league.status} league")

    for team in await get_league_teams(session, league_id):
        team.drafted_contestants = []
    draft_id = draft.id
    await session.delete(draft)
    league.status = LeagueStatus.CREATED.value
    await session.commit()
    logger.info(f"Draft {draft_id} deleted for league {league_id}")

    await notify(
        session,
        league_id,
        NotificationType.DRAFT_DELETED.value,
        "Draft Deleted",
        f"The draft for {league.name} has been deleted by the commissioner",
        data={"draft_id": draft_id},
    )
    return True
