"""
Standings aggregator.

Read-only ranked views over the stored totals, plus a recomputation from the
event history used to verify (and repair) those totals.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.models import Contestant, Episode, ScoringEvent
from bachelor_league.services.contestant_service import get_league_contestants, contestant_to_dict
from bachelor_league.services.team_service import get_league_teams, load_team, team_to_dict
from bachelor_league.services.user_service import get_display_names
from bachelor_league.utils.constants import TOP_SCORERS_LIMIT

logger = logging.getLogger(__name__)


def latest_episode_points(episode_scores: Optional[List[Dict]]) -> int:
    """Points of the entry with the highest episode number, or 0."""
    if not episode_scores:
        return 0
    latest = max(episode_scores, key=lambda e: e.get("episode_number", 0))
    return latest.get("points", 0)


def _rank_by_total(rows: List[Dict]) -> List[Dict]:
    """Sort by total_points descending, ties by id ascending, and assign ranks 1..n."""
    ranked = sorted(rows, key=lambda r: (-r["total_points"], r["id"]))
    for index, row in enumerate(ranked):
        row["rank"] = index + 1
    return ranked


def _contestant_summary(contestant: Contestant) -> Dict:
    return {
        "id": contestant.id,
        "name": contestant.name,
        "total_points": contestant.total_points or 0,
        "is_eliminated": bool(contestant.is_eliminated),
        "profile_image_url": contestant.profile_image_url,
    }


async def get_team_standings(session: AsyncSession, league_id: int) -> List[Dict]:
    """
    Teams of a league ranked by total points.

    Returns:
        Rows with id, name, owner id and display name, total and latest
        episode points, rank, and summaries of the drafted contestants
    """
    teams = await get_league_teams(session, league_id)
    contestants = {c.id: c for c in await get_league_contestants(session, league_id)}
    owner_names = await get_display_names(session, [t.owner_id for t in teams])

    rows = []
    for team in teams:
        roster = [
            _contestant_summary(contestants[cid])
            for cid in team.drafted_contestants or []
            if cid in contestants
        ]
        rows.append({
            "id": team.id,
            "team_id": team.id,
            "name": team.name,
            "owner_id": team.owner_id,
            "owner_name": owner_names.get(team.owner_id, "Unknown"),
            "total_points": team.total_points or 0,
            "episode_points": latest_episode_points(team.episode_scores),
            "contestants": roster,
        })
    return _rank_by_total(rows)


async def get_contestant_standings(session: AsyncSession, league_id: int) -> List[Dict]:
    """
    Contestants of a league ranked by total points, with the names of the
    teams that drafted them.
    """
    contestants = await get_league_contestants(session, league_id)
    teams = await get_league_teams(session, league_id)

    drafted_by: Dict[int, List[str]] = {}
    for team in teams:
        for cid in team.drafted_contestants or []:
            drafted_by.setdefault(cid, []).append(team.name)

    rows = []
    for contestant in contestants:
        rows.append({
            "id": contestant.id,
            "contestant_id": contestant.id,
            "name": contestant.name,
            "total_points": contestant.total_points or 0,
            "episode_points": latest_episode_points(contestant.episode_scores),
            "is_eliminated": bool(contestant.is_eliminated),
            "elimination_episode": contestant.elimination_episode,
            "profile_image_url": contestant.profile_image_url,
            "drafted_by_teams": sorted(drafted_by.get(contestant.id, [])),
        })
    return _rank_by_total(rows)


async def get_current_episode_top_performers(
    session: AsyncSession, league_id: int, limit: int = TOP_SCORERS_LIMIT
) -> List[Dict]:
    """Contestants with positive latest-episode points, highest first."""
    standings = await get_contestant_standings(session, league_id)
    performers = [s for s in standings if s["episode_points"] > 0]
    performers.sort(key=lambda s: (-s["episode_points"], s["id"]))
    return performers[:max(0, limit)]


async def get_team_detail(session: AsyncSession, team_id: int) -> Dict:
    """
    Everything about one team: record, owner, contestants, standing and history.

    Raises:
        NotFoundError: Team does not exist
    """
    team = await load_team(session, team_id)
    owner_names = await get_display_names(session, [team.owner_id])
    contestants = {c.id: c for c in await get_league_contestants(session, team.league_id)}
    standings = await get_team_standings(session, team.league_id)
    standing = next((row for row in standings if row["id"] == team.id), None)

    return {
        "team": team_to_dict(team),
        "owner": {"id": team.owner_id, "display_name": owner_names.get(team.owner_id, "Unknown")},
        "contestants": [
            contestant_to_dict(contestants[cid])
            for cid in team.drafted_contestants or []
            if cid in contestants
        ],
        "standing": {
            "rank": standing["rank"] if standing else None,
            "total_points": team.total_points or 0,
            "episode_points": latest_episode_points(team.episode_scores),
            "team_count": len(standings),
        },
        "episode_history": sorted(
            (dict(e) for e in team.episode_scores or []), key=lambda e: e.get("episode_number", 0)
        ),
    }


def _add_to_breakdown(breakdown: Dict[int, Dict], episode: Episode, event: ScoringEvent) -> None:
    entry = breakdown.setdefault(episode.id, {
        "episode_id": episode.id,
        "episode_number": episode.episode_number,
        "points": 0,
        "event_ids": [],
    })
    entry["points"] += event.points
    entry["event_ids"].append(event.id)


def _credited_event_ids(episode_scores: Optional[List[Dict]]) -> set:
    ids = set()
    for entry in episode_scores or []:
        ids.update(entry.get("event_ids", []))
    return ids


async def compute_totals_from_events(session: AsyncSession, league_id: int) -> Dict:
    """
    Recompute contestant and team totals from the league's scoring events.
    A team is credited with the events recorded in its episode breakdown, so
    points earned before a roster change stay with the team that earned them.
    Nothing is written.

    Returns:
        {"contestants": {id: {"total_points", "episode_scores"}},
         "teams": {id: {"total_points", "episode_scores"}}}
    """
    result = await session.execute(
        select(ScoringEvent, Episode)
        .join(Episode, ScoringEvent.episode_id == Episode.id)
        .where(Episode.league_id == league_id)
        .order_by(ScoringEvent.id)
    )
    rows = result.all()
    teams = await get_league_teams(session, league_id)

    contestant_breakdowns: Dict[int, Dict[int, Dict]] = {}
    team_breakdowns: Dict[int, Dict[int, Dict]] = {t.id: {} for t in teams}
    credited = {t.id: _credited_event_ids(t.episode_scores) for t in teams}
    for event, episode in rows:
        _add_to_breakdown(contestant_breakdowns.setdefault(event.contestant_id, {}), episode, event)
        for team in teams:
            if event.id in credited[team.id]:
                _add_to_breakdown(team_breakdowns[team.id], episode, event)

    def _summarize(breakdowns: Dict[int, Dict[int, Dict]]) -> Dict[int, Dict]:
        summary = {}
        for owner_id, by_episode in breakdowns.items():
            entries = sorted(by_episode.values(), key=lambda e: e["episode_number"])
            summary[owner_id] = {
                "total_points": sum(e["points"] for e in entries),
                "episode_scores": entries,
            }
        return summary

    return {
        "contestants": _summarize(contestant_breakdowns),
        "teams": _summarize(team_breakdowns),
    }


async def verify_league_totals(session: AsyncSession, league_id: int) -> Dict:
    """
    Compare stored totals with a recomputation from events.

    Returns:
        {"consistent": bool, "mismatches": [{"kind", "id", "stored", "computed"}]}
    """
    computed = await compute_totals_from_events(session, league_id)
    mismatches = []

    for contestant in await get_league_contestants(session, league_id):
        expected = computed["contestants"].get(contestant.id, {}).get("total_points", 0)
        if (contestant.total_points or 0) != expected:
            mismatches.append({
                "kind": "contestant",
                "id": contestant.id,
                "stored": contestant.total_points or 0,
                "computed": expected,
            })

    for team in await get_league_teams(session, league_id):
        expected = computed["teams"].get(team.id, {}).get("total_points", 0)
        if (team.total_points or 0) != expected:
            mismatches.append({
                "kind": "team",
                "id": team.id,
                "stored": team.total_points or 0,
                "computed": expected,
            })

    if mismatches:
        logger.warning(f"League {league_id} has {len(mismatches)} total mismatch(es)")
    return {"consistent": not mismatches, "mismatches": mismatches}
