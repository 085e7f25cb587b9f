"""
Tests for the standings aggregator.
"""

import pytest

from bachelor_league.services import (
    standings_service,
    scoring_service,
    episode_service,
    team_service,
)
from bachelor_league.services.errors import NotFoundError


async def _set_team_total(session, team_id, total):
    team = await team_service.load_team(session, team_id)
    team.total_points = total
    await session.commit()


def test_latest_episode_points():
    scores = [
        {"episode_id": 1, "episode_number": 1, "points": 4},
        {"episode_id": 3, "episode_number": 3, "points": -1},
        {"episode_id": 2, "episode_number": 2, "points": 7},
    ]
    assert standings_service.latest_episode_points(scores) == -1
    assert standings_service.latest_episode_points([]) == 0
    assert standings_service.latest_episode_points(None) == 0


@pytest.mark.asyncio
async def test_team_standings_ranked_by_total(db_session, league, teams):
    await _set_team_total(db_session, teams[0]["id"], 150)
    await _set_team_total(db_session, teams[1]["id"], 200)

    standings = await standings_service.get_team_standings(db_session, league["id"])

    assert [row["name"] for row in standings] == ["Beta", "Alpha"]
    assert [row["rank"] for row in standings] == [1, 2]
    assert standings[0]["owner_name"] == "Bob"
    assert standings[1]["total_points"] == 150


@pytest.mark.asyncio
async def test_team_standings_ties_have_distinct_ranks(db_session, league, teams, users):
    third = await team_service.create_team(db_session, league["id"], users["commissioner"]["id"], "Gamma")
    await _set_team_total(db_session, teams[0]["id"], 10)
    await _set_team_total(db_session, teams[1]["id"], 10)
    await _set_team_total(db_session, third["id"], 30)

    standings = await standings_service.get_team_standings(db_session, league["id"])

    assert [row["rank"] for row in standings] == [1, 2, 3]
    assert [row["id"] for row in standings] == [third["id"], teams[0]["id"], teams[1]["id"]]
    totals = [row["total_points"] for row in standings]
    assert totals == sorted(totals, reverse=True)


@pytest.mark.asyncio
async def test_empty_league_standings(db_session, league):
    assert await standings_service.get_team_standings(db_session, league["id"]) == []
    assert await standings_service.get_contestant_standings(db_session, league["id"]) == []


@pytest.mark.asyncio
async def test_contestant_standings_and_top_performers(db_session, league, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestants[1]["id"], commissioner)

    episode = await episode_service.create_episode(db_session, league["id"], commissioner)
    await episode_service.set_active_episode(db_session, episode["id"], commissioner)
    await scoring_service.score_action(db_session, episode["id"], contestants[0]["id"], "kiss_mouth", commissioner)
    await scoring_service.score_action(db_session, episode["id"], contestants[1]["id"], "rose_week", commissioner)
    await scoring_service.score_action(db_session, episode["id"], contestants[2]["id"], "crying", commissioner)

    standings = await standings_service.get_contestant_standings(db_session, league["id"])
    assert [row["name"] for row in standings[:2]] == ["Kelsey", "Jenn"]
    assert standings[0]["drafted_by_teams"] == ["Alpha"]
    assert standings[-1]["name"] == "Daisy"
    assert standings[-1]["total_points"] == -1
    assert [row["rank"] for row in standings] == list(range(1, len(contestants) + 1))

    top = await standings_service.get_current_episode_top_performers(db_session, league["id"])
    assert [row["name"] for row in top] == ["Kelsey", "Jenn"]
    assert all(row["episode_points"] > 0 for row in top)

    top_one = await standings_service.get_current_episode_top_performers(db_session, league["id"], limit=1)
    assert [row["name"] for row in top_one] == ["Kelsey"]


@pytest.mark.asyncio
async def test_team_standings_include_roster(db_session, league, teams, contestants, users):
    await team_service.add_contestant_to_team(
        db_session, teams[1]["id"], contestants[4]["id"], users["commissioner"]["id"]
    )
    standings = await standings_service.get_team_standings(db_session, league["id"])
    beta = next(row for row in standings if row["id"] == teams[1]["id"])
    assert [c["name"] for c in beta["contestants"]] == ["Maria"]
    assert beta["episode_points"] == 0


@pytest.mark.asyncio
async def test_team_detail(db_session, league, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestants[0]["id"], commissioner)
    episode = await episode_service.create_episode(db_session, league["id"], commissioner)
    await episode_service.set_active_episode(db_session, episode["id"], commissioner)
    await scoring_service.score_action(db_session, episode["id"], contestants[0]["id"], "i_love_you", commissioner)

    detail = await standings_service.get_team_detail(db_session, teams[0]["id"])

    assert detail["team"]["name"] == "Alpha"
    assert detail["owner"] == {"id": users["alice"]["id"], "display_name": "Alice"}
    assert [c["name"] for c in detail["contestants"]] == ["Jenn"]
    assert detail["standing"]["rank"] == 1
    assert detail["standing"]["total_points"] == 4
    assert detail["standing"]["episode_points"] == 4
    assert detail["standing"]["team_count"] == 2
    assert detail["episode_history"][0]["episode_number"] == 1


@pytest.mark.asyncio
async def test_team_detail_missing_team(db_session):
    with pytest.raises(NotFoundError):
        await standings_service.get_team_detail(db_session, 12345)


@pytest.mark.asyncio
async def test_compute_totals_from_events(db_session, league, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestants[0]["id"], commissioner)
    first = await episode_service.create_episode(db_session, league["id"], commissioner)
    second = await episode_service.create_episode(db_session, league["id"], commissioner)

    await episode_service.set_active_episode(db_session, first["id"], commissioner)
    await scoring_service.score_action(db_session, first["id"], contestants[0]["id"], "kiss_mouth", commissioner)
    await episode_service.set_active_episode(db_session, second["id"], commissioner)
    await scoring_service.score_action(db_session, second["id"], contestants[0]["id"], "rose_week", commissioner)

    computed = await standings_service.compute_totals_from_events(db_session, league["id"])

    jenn = computed["contestants"][contestants[0]["id"]]
    assert jenn["total_points"] == 5
    assert [e["episode_number"] for e in jenn["episode_scores"]] == [1, 2]
    assert computed["teams"][teams[0]["id"]]["total_points"] == 5
    assert computed["teams"][teams[1]["id"]] == {"total_points": 0, "episode_scores": []}
