"""
Scoring orchestrator.

Records point events against contestants in the active episode and applies
each delta to the contestant and every team that drafted them in one commit.
Undo is a compensating delete that reverses the exact delta.
"""

import logging
from typing import Dict, List, Optional, Any, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import (
    Contestant,
    Episode,
    ScoringEvent,
    NotificationType,
)
from bachelor_league.services.errors import (
    NotFoundError,
    StateError,
    ValidationError,
    ServiceError,
)
from bachelor_league.services.league_service import (
    require_member,
    require_commissioner,
    get_league_settings,
)
from bachelor_league.services.team_service import get_league_teams, teams_owning_contestant
from bachelor_league.services.contestant_service import load_contestant, contestant_to_dict
from bachelor_league.services.episode_service import load_episode, get_current_episode_number
from bachelor_league.services.notification_service import notify
from bachelor_league.utils.constants import (
    MIN_RULE_POINTS,
    MAX_RULE_POINTS,
    RECENT_EVENTS_LIMIT,
    TOP_SCORERS_LIMIT,
)

logger = logging.getLogger(__name__)


def event_to_dict(event: ScoringEvent, contestant_name: Optional[str] = None) -> Dict:
    result = {
        "id": event.id,
        "episode_id": event.episode_id,
        "contestant_id": event.contestant_id,
        "action_type": event.action_type,
        "points": event.points,
        "description": event.description,
        "scored_by": event.scored_by,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }
    if contestant_name is not None:
        result["contestant_name"] = contestant_name
    return result


def add_event_to_scores(
    episode_scores: Optional[List[Dict]], episode: Episode, points: int, event_id: int
) -> List[Dict]:
    """
    Return a new episode breakdown with the event added to the episode's entry.
    Entries are copied so the JSON column sees a changed value.
    """
    updated = []
    found = False
    for entry in episode_scores or []:
        entry = dict(entry)
        if entry.get("episode_id") == episode.id:
            entry["points"] = entry.get("points", 0) + points
            entry["event_ids"] = list(entry.get("event_ids", [])) + [event_id]
            found = True
        updated.append(entry)
    if not found:
        updated.append({
            "episode_id": episode.id,
            "episode_number": episode.episode_number,
            "points": points,
            "event_ids": [event_id],
        })
    return updated


def remove_event_from_scores(
    episode_scores: Optional[List[Dict]], event_id: int, points: int
) -> Tuple[List[Dict], bool]:
    """
    Return a new breakdown with the event removed, and whether it was present.
    An entry left with no events is dropped.
    """
    updated = []
    removed = False
    for entry in episode_scores or []:
        entry = dict(entry)
        event_ids = list(entry.get("event_ids", []))
        if event_id in event_ids:
            event_ids.remove(event_id)
            entry["event_ids"] = event_ids
            entry["points"] = entry.get("points", 0) - points
            removed = True
            if not event_ids:
                continue
        updated.append(entry)
    return updated, removed


async def score_action(
    session: AsyncSession,
    episode_id: int,
    contestant_id: int,
    action_type: str,
    scorer_id: int,
    points: Optional[int] = None,
    description: Optional[str] = None,
) -> Dict:
    """
    Record a scoring action in the active episode.

    Args:
        session: Database session
        episode_id: Episode being scored (must be active)
        contestant_id: Contestant earning or losing points
        action_type: One of the league's scoring rule action types
        scorer_id: Acting user (must be a league member)
        points: Override of the rule's point value
        description: Optional free text

    Returns:
        Dict with the event, the contestant's new total and affected team ids

    Raises:
        StateError: Episode not active or contestant in another league
        ValidationError: Unknown action type or points out of range
        AuthorizationError: Scorer is not a league member
    """
    episode = await load_episode(session, episode_id)
    if not episode.is_active:
        raise StateError("Episode is not active", code="episode_inactive")

    contestant = await load_contestant(session, contestant_id)
    if contestant.league_id != episode.league_id:
        raise StateError("Contestant is not in this episode's league", code="wrong_league")

    league = await require_member(session, episode.league_id, scorer_id)
    rule = get_league_settings(league).rule_for(action_type)
    if rule is None:
        raise ValidationError.for_field(
            "action_type", f"Unknown action type '{action_type}'", "unknown_action"
        )

    if points is None:
        points = rule.points
    valid_int = isinstance(points, int) and not isinstance(points, bool)
    if not valid_int or not MIN_RULE_POINTS <= points <= MAX_RULE_POINTS:
        raise ValidationError.for_field(
            "points", f"points must be between {MIN_RULE_POINTS} and {MAX_RULE_POINTS}", "out_of_range"
        )

    event = ScoringEvent(
        episode_id=episode.id,
        contestant_id=contestant.id,
        action_type=action_type,
        points=points,
        description=description or rule.description or None,
        scored_by=scorer_id,
    )
    session.add(event)
    await session.flush()

    contestant.total_points = (contestant.total_points or 0) + points
    contestant.episode_scores = add_event_to_scores(contestant.episode_scores, episode, points, event.id)

    teams = teams_owning_contestant(await get_league_teams(session, league.id), contestant.id)
    for team in teams:
        team.total_points = (team.total_points or 0) + points
        team.episode_scores = add_event_to_scores(team.episode_scores, episode, points, event.id)

    episode.total_events = (episode.total_events or 0) + 1

    await session.commit()
    await session.refresh(event)

    verb = "scored" if points >= 0 else "lost"
    await notify(
        session,
        league.id,
        NotificationType.SCORING_EVENT.value,
        f"{contestant.name} {verb} {abs(points)} points",
        action_type,
        data={
            "event_id": event.id,
            "episode_id": episode.id,
            "contestant_id": contestant.id,
            "points": points,
            "team_ids": [t.id for t in teams],
        },
    )

    return {
        "event": event_to_dict(event, contestant.name),
        "contestant_total": contestant.total_points,
        "team_ids": [t.id for t in teams],
    }


async def bulk_score_actions(
    session: AsyncSession, episode_id: int, actions: List[Dict[str, Any]], scorer_id: int
) -> Dict:
    """
    Score several actions. Each action commits on its own; failures are
    collected and do not stop the rest.

    Returns:
        {"scored": [score_action results], "failed": [{"index", "error"}]}
    """
    scored = []
    failed = []
    for index, action in enumerate(actions):
        try:
            result = await score_action(
                session,
                episode_id,
                action.get("contestant_id"),
                action.get("action_type"),
                scorer_id,
                points=action.get("points"),
                description=action.get("description"),
            )
            scored.append(result)
        except ServiceError as e:
            await session.rollback()
            failed.append({"index": index, "error": e.message, "code": e.code})
    logger.info(f"Bulk scoring for episode {episode_id}: {len(scored)} scored, {len(failed)} failed")
    return {"scored": scored, "failed": failed}


async def undo_scoring_event(
    session: AsyncSession, episode_id: int, event_id: int, user_id: int
) -> Dict:
    """
    Reverse a scoring event exactly and delete it.

    Every contestant and team whose breakdown holds the event id gets the
    points subtracted and the id removed.

    Raises:
        NotFoundError: Event missing or not part of this episode
        AuthorizationError: Caller is not a league member
    """
    event = await session.get(ScoringEvent, event_id)
    if event is None or event.episode_id != episode_id:
        raise NotFoundError(f"Scoring event {event_id} not found in episode {episode_id}")

    episode = await load_episode(session, episode_id)
    league = await require_member(session, episode.league_id, user_id)
    points = event.points
    action_type = event.action_type
    contestant_id = event.contestant_id

    contestant = await session.get(Contestant, contestant_id)
    if contestant is not None:
        scores, removed = remove_event_from_scores(contestant.episode_scores, event.id, points)
        contestant.episode_scores = scores
        contestant.total_points = (contestant.total_points or 0) - points
        if not removed:
            logger.warning(f"Event {event_id} missing from contestant {contestant.id} breakdown")

    affected_team_ids = []
    for team in await get_league_teams(session, league.id):
        scores, removed = remove_event_from_scores(team.episode_scores, event.id, points)
        if removed:
            team.episode_scores = scores
            team.total_points = (team.total_points or 0) - points
            affected_team_ids.append(team.id)

    await session.delete(event)
    episode.total_events = max(0, (episode.total_events or 0) - 1)
    await session.commit()
    logger.info(f"Scoring event {event_id} undone in episode {episode_id} by user {user_id}")

    await notify(
        session,
        league.id,
        NotificationType.STANDINGS_UPDATE.value,
        "Scoring Corrected",
        f"A {points:+d} point {action_type} event was undone",
        data={
            "event_id": event_id,
            "episode_id": episode_id,
            "contestant_id": contestant_id,
            "team_ids": affected_team_ids,
        },
    )
    return {
        "event_id": event_id,
        "contestant_total": contestant.total_points if contestant is not None else None,
        "team_ids": affected_team_ids,
    }


async def _contestant_names(session: AsyncSession, contestant_ids) -> Dict[int, str]:
    if not contestant_ids:
        return {}
    result = await session.execute(
        select(Contestant.id, Contestant.name).where(Contestant.id.in_(set(contestant_ids)))
    )
    return {row.id: row.name for row in result.all()}


async def get_recent_scoring_events(
    session: AsyncSession, episode_id: int, limit: int = RECENT_EVENTS_LIMIT
) -> List[Dict]:
    """Most recent events of an episode, newest first."""
    result = await session.execute(
        select(ScoringEvent)
        .where(ScoringEvent.episode_id == episode_id)
        .order_by(ScoringEvent.created_at.desc(), ScoringEvent.id.desc())
        .limit(limit)
    )
    events = result.scalars().all()
    names = await _contestant_names(session, [e.contestant_id for e in events])
    return [event_to_dict(e, names.get(e.contestant_id)) for e in events]


async def get_episode_scores(session: AsyncSession, episode_id: int) -> List[Dict]:
    """All events of an episode in the order they were recorded."""
    result = await session.execute(
        select(ScoringEvent)
        .where(ScoringEvent.episode_id == episode_id)
        .order_by(ScoringEvent.created_at, ScoringEvent.id)
    )
    events = result.scalars().all()
    names = await _contestant_names(session, [e.contestant_id for e in events])
    return [event_to_dict(e, names.get(e.contestant_id)) for e in events]


async def get_contestant_scores(
    session: AsyncSession, contestant_id: int, episode_id: Optional[int] = None
) -> List[Dict]:
    """Events for one contestant, optionally limited to an episode."""
    query = select(ScoringEvent).where(ScoringEvent.contestant_id == contestant_id)
    if episode_id is not None:
        query = query.where(ScoringEvent.episode_id == episode_id)
    result = await session.execute(query.order_by(ScoringEvent.created_at, ScoringEvent.id))
    return [event_to_dict(e) for e in result.scalars().all()]


async def get_episode_summary(session: AsyncSession, episode_id: int) -> Dict:
    """
    Totals for one episode.

    Returns:
        Dict with total_events, total_points, per-contestant totals sorted
        descending, and the top scorers
    """
    episode = await load_episode(session, episode_id)
    events = await get_episode_scores(session, episode_id)

    by_contestant: Dict[int, Dict] = {}
    for event in events:
        row = by_contestant.setdefault(event["contestant_id"], {
            "contestant_id": event["contestant_id"],
            "contestant_name": event.get("contestant_name"),
            "points": 0,
            "event_count": 0,
        })
        row["points"] += event["points"]
        row["event_count"] += 1

    contestant_scores = sorted(
        by_contestant.values(), key=lambda r: (-r["points"], r["contestant_id"])
    )
    return {
        "episode_id": episode.id,
        "episode_number": episode.episode_number,
        "is_active": bool(episode.is_active),
        "total_events": len(events),
        "total_points": sum(e["points"] for e in events),
        "contestant_scores": contestant_scores,
        "top_scorers": contestant_scores[:TOP_SCORERS_LIMIT],
    }


async def eliminate_contestant(
    session: AsyncSession,
    contestant_id: int,
    user_id: int,
    episode_number: Optional[int] = None,
) -> Dict:
    """
    Mark a contestant eliminated. Points are not touched.

    Args:
        episode_number: Elimination episode; defaults to the league's current episode

    Raises:
        AuthorizationError: Caller is not a league member
        StateError: Already eliminated
    """
    contestant = await load_contestant(session, contestant_id)
    league = await require_member(session, contestant.league_id, user_id)
    if contestant.is_eliminated:
        raise StateError(f"{contestant.name} is already eliminated")

    if episode_number is None:
        episode_number = await get_current_episode_number(session, league.id)

    contestant.is_eliminated = True
    contestant.elimination_episode = episode_number
    await session.commit()
    await session.refresh(contestant)
    logger.info(f"Contestant {contestant_id} eliminated in episode {episode_number}")

    await notify(
        session,
        league.id,
        NotificationType.LEAGUE_UPDATE.value,
        "Contestant Eliminated",
        f"{contestant.name} was eliminated in episode {episode_number}",
        data={"contestant_id": contestant.id, "episode_number": episode_number},
    )
    return contestant_to_dict(contestant)


async def restore_contestant(session: AsyncSession, contestant_id: int, user_id: int) -> Dict:
    """
    Clear a contestant's elimination. Points are not touched.

    Raises:
        StateError: Contestant is not eliminated
    """
    contestant = await load_contestant(session, contestant_id)
    league = await require_member(session, contestant.league_id, user_id)
    if not contestant.is_eliminated:
        raise StateError(f"{contestant.name} is not eliminated")

    contestant.is_eliminated = False
    contestant.elimination_episode = None
    await session.commit()
    await session.refresh(contestant)

    await notify(
        session,
        league.id,
        NotificationType.LEAGUE_UPDATE.value,
        "Contestant Restored",
        f"{contestant.name} is back in the competition",
        data={"contestant_id": contestant.id},
    )
    return contestant_to_dict(contestant)


async def recalculate_league_totals(session: AsyncSession, league_id: int, user_id: int) -> Dict:
    """
    Rewrite every stored contestant and team total from the event history.

    Teams keep the events they were credited with when each was scored.

    Raises:
        AuthorizationError: Caller is not the commissioner
    """
    await require_commissioner(session, league_id, user_id)

    from bachelor_league.services.standings_service import compute_totals_from_events

    computed = await compute_totals_from_events(session, league_id)

    result = await session.execute(select(Contestant).where(Contestant.league_id == league_id))
    contestants = result.scalars().all()
    for contestant in contestants:
        expected = computed["contestants"].get(contestant.id, {"total_points": 0, "episode_scores": []})
        contestant.total_points = expected["total_points"]
        contestant.episode_scores = expected["episode_scores"]

    teams = await get_league_teams(session, league_id)
    for team in teams:
        expected = computed["teams"].get(team.id, {"total_points": 0, "episode_scores": []})
        team.total_points = expected["total_points"]
        team.episode_scores = expected["episode_scores"]

    await session.commit()
    logger.info(f"Recalculated totals for league {league_id}")

    await notify(
        session,
        league_id,
        NotificationType.STANDINGS_UPDATE.value,
        "Standings Recalculated",
        "League totals were recalculated from the scoring history",
        data={"league_id": league_id},
    )
    return {"contestants_updated": len(contestants), "teams_updated": len(teams)}
