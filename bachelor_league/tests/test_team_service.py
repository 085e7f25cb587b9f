"""
Tests for team records and commissioner roster adjustments.
"""

import pytest

from bachelor_league.database.models import NotificationType
from bachelor_league.services import team_service, draft_service
from bachelor_league.services.errors import ValidationError, AuthorizationError, StateError


@pytest.mark.asyncio
async def test_create_team(db_session, league, users, channel):
    team = await team_service.create_team(db_session, league["id"], users["alice"]["id"], "  The Roses  ")
    assert team["name"] == "The Roses"
    assert team["drafted_contestants"] == []
    assert team["total_points"] == 0
    assert channel.of_type(NotificationType.LEAGUE_UPDATE.value)[0]["message"]["notification"][
        "title"
    ] == "New Team Joined"


@pytest.mark.parametrize("name", ["", "   ", "<script>", "Tom & Jerry", "x" * 51])
@pytest.mark.asyncio
async def test_create_team_rejects_bad_names(db_session, league, users, name):
    with pytest.raises(ValidationError):
        await team_service.create_team(db_session, league["id"], users["alice"]["id"], name)


@pytest.mark.asyncio
async def test_list_teams(db_session, league, teams, users):
    listed = await team_service.list_teams_by_league(db_session, league["id"])
    assert [t["name"] for t in listed] == ["Alpha", "Beta"]
    mine = await team_service.list_user_teams(db_session, users["bob"]["id"])
    assert [t["id"] for t in mine] == [teams[1]["id"]]


@pytest.mark.asyncio
async def test_rename_team(db_session, teams, users):
    renamed = await team_service.update_team(db_session, teams[0]["id"], users["alice"]["id"], "Final Rose")
    assert renamed["name"] == "Final Rose"

    by_commissioner = await team_service.update_team(
        db_session, teams[0]["id"], users["commissioner"]["id"], "Commish Pick"
    )
    assert by_commissioner["name"] == "Commish Pick"

    with pytest.raises(AuthorizationError):
        await team_service.update_team(db_session, teams[0]["id"], users["bob"]["id"], "Stolen")


@pytest.mark.asyncio
async def test_roster_adjustments(db_session, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    team = await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestants[0]["id"], commissioner)
    assert team["drafted_contestants"] == [contestants[0]["id"]]

    with pytest.raises(StateError) as exc_info:
        await team_service.add_contestant_to_team(db_session, teams[1]["id"], contestants[0]["id"], commissioner)
    assert exc_info.value.code == "already_drafted"

    with pytest.raises(AuthorizationError):
        await team_service.add_contestant_to_team(
            db_session, teams[0]["id"], contestants[1]["id"], users["alice"]["id"]
        )

    team = await team_service.remove_contestant_from_team(
        db_session, teams[0]["id"], contestants[0]["id"], commissioner
    )
    assert team["drafted_contestants"] == []

    with pytest.raises(StateError):
        await team_service.remove_contestant_from_team(
            db_session, teams[0]["id"], contestants[0]["id"], commissioner
        )


@pytest.mark.asyncio
async def test_roster_limit(db_session, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    for contestant in contestants[:2]:
        await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestant["id"], commissioner)
    with pytest.raises(StateError) as exc_info:
        await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestants[2]["id"], commissioner)
    assert exc_info.value.code == "roster_full"


@pytest.mark.asyncio
async def test_delete_team_before_draft(db_session, league, teams, users):
    commissioner = users["commissioner"]["id"]
    lobby = await draft_service.create_draft(db_session, league["id"], commissioner)
    assert teams[1]["id"] in lobby["draft_order"]

    assert await team_service.delete_team(db_session, teams[1]["id"], users["bob"]["id"])
    assert await team_service.get_team(db_session, teams[1]["id"]) is None

    draft = await draft_service.get_draft_by_league(db_session, league["id"])
    assert draft["draft_order"] == [teams[0]["id"]]


@pytest.mark.asyncio
async def test_delete_team_after_draft_start(db_session, league, teams, contestants, users):
    await draft_service.start_draft(db_session, league["id"], users["commissioner"]["id"])
    with pytest.raises(StateError):
        await team_service.delete_team(db_session, teams[0]["id"], users["alice"]["id"])
