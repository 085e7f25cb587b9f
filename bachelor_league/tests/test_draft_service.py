"""
Tests for the draft orchestrator: turn order, pick validation, completion,
pause/resume, auto-pick and reset.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from bachelor_league.database.models import DraftStatus, LeagueStatus, NotificationType
from bachelor_league.services import (
    draft_service,
    league_service,
    team_service,
    contestant_service,
)
from bachelor_league.services.errors import StateError, AuthorizationError, NotFoundError
from bachelor_league.utils.datetime_utils import utcnow


@pytest_asyncio.fixture
async def started_draft(db_session, league, teams, contestants, users):
    """Snake draft with order [Alpha, Beta] and two picks per team."""
    return await draft_service.start_draft(
        db_session, league["id"], users["commissioner"]["id"], randomize=False
    )


def test_snake_order_reverses_every_pass():
    order = [1, 2]
    picks = [draft_service.turn_team_for_pick(order, i, "snake") for i in range(6)]
    assert picks == [1, 2, 2, 1, 1, 2]


def test_linear_order_repeats():
    order = [1, 2]
    picks = [draft_service.turn_team_for_pick(order, i, "linear") for i in range(4)]
    assert picks == [1, 2, 1, 2]


def test_snake_three_teams():
    order = [10, 20, 30]
    picks = [draft_service.turn_team_for_pick(order, i, "snake") for i in range(9)]
    assert picks == [10, 20, 30, 30, 20, 10, 10, 20, 30]


def test_turn_team_for_empty_order():
    assert draft_service.turn_team_for_pick([], 0, "snake") is None


@pytest.mark.asyncio
async def test_create_draft_lobby(db_session, league, teams, users):
    draft = await draft_service.create_draft(
        db_session, league["id"], users["commissioner"]["id"], settings={"pick_time_limit": 60}
    )
    assert draft["status"] == DraftStatus.NOT_STARTED.value
    assert draft["draft_order"] == [teams[0]["id"], teams[1]["id"]]
    assert draft["settings"]["pick_time_limit"] == 60
    assert draft["settings"]["draft_format"] == "snake"

    with pytest.raises(StateError):
        await draft_service.create_draft(db_session, league["id"], users["commissioner"]["id"])


@pytest.mark.asyncio
async def test_create_draft_requires_commissioner(db_session, league, teams, users):
    with pytest.raises(AuthorizationError):
        await draft_service.create_draft(db_session, league["id"], users["alice"]["id"])


@pytest.mark.asyncio
async def test_start_draft(db_session, league, teams, started_draft, users, channel):
    assert started_draft["status"] == DraftStatus.IN_PROGRESS.value
    assert started_draft["current_pick"] == 0
    assert started_draft["draft_order"] == [teams[0]["id"], teams[1]["id"]]
    assert started_draft["current_turn_started_at"] is not None

    refreshed = await league_service.get_league(db_session, league["id"])
    assert refreshed["status"] == LeagueStatus.DRAFT_IN_PROGRESS.value

    assert NotificationType.DRAFT_STARTED.value in channel.types()
    turn = channel.of_type(NotificationType.DRAFT_TURN.value)
    assert len(turn) == 1
    assert turn[0]["target_user_id"] == users["alice"]["id"]


@pytest.mark.asyncio
async def test_start_draft_randomizes_order(db_session, league, teams, contestants, users):
    draft = await draft_service.start_draft(db_session, league["id"], users["commissioner"]["id"])
    assert sorted(draft["draft_order"]) == sorted(t["id"] for t in teams)


@pytest.mark.asyncio
async def test_start_draft_twice_rejected(db_session, league, started_draft, users):
    with pytest.raises(StateError) as exc_info:
        await draft_service.start_draft(db_session, league["id"], users["commissioner"]["id"])
    assert exc_info.value.code == "draft_active"


@pytest.mark.asyncio
async def test_start_draft_without_contestants(db_session, league, teams, users):
    with pytest.raises(StateError) as exc_info:
        await draft_service.start_draft(db_session, league["id"], users["commissioner"]["id"])
    assert exc_info.value.code == "no_contestants"


@pytest.mark.asyncio
async def test_start_draft_reuses_lobby_settings(db_session, league, teams, contestants, users):
    lobby = await draft_service.create_draft(
        db_session, league["id"], users["commissioner"]["id"], settings={"draft_format": "linear"}
    )
    started = await draft_service.start_draft(
        db_session, league["id"], users["commissioner"]["id"], randomize=False
    )
    assert started["id"] == lobby["id"]
    assert started["settings"]["draft_format"] == "linear"


@pytest.mark.asyncio
async def test_make_pick(db_session, started_draft, teams, contestants, users, channel):
    result = await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )

    assert result["pick"]["pick_number"] == 1
    assert result["pick"]["team_id"] == teams[0]["id"]
    assert result["pick"]["contestant_id"] == contestants[0]["id"]
    assert result["draft"]["current_pick"] == 1
    assert len(result["draft"]["picks"]) == 1

    alpha = await team_service.get_team(db_session, teams[0]["id"])
    assert alpha["drafted_contestants"] == [contestants[0]["id"]]

    made = channel.of_type(NotificationType.DRAFT_PICK_MADE.value)
    assert made[0]["message"]["notification"]["title"] == "Draft Pick Made"
    assert made[0]["message"]["notification"]["message"] == "Alpha selected Jenn"
    # Beta is on the clock next
    assert channel.of_type(NotificationType.DRAFT_TURN.value)[-1]["target_user_id"] == users["bob"]["id"]


@pytest.mark.asyncio
async def test_out_of_turn_pick_rejected_without_change(
    db_session, started_draft, teams, contestants, users
):
    with pytest.raises(StateError) as exc_info:
        await draft_service.make_pick(
            db_session, started_draft["id"], teams[1]["id"], contestants[0]["id"], users["bob"]["id"]
        )
    assert exc_info.value.code == "not_your_turn"

    draft = await draft_service.get_draft(db_session, started_draft["id"])
    assert draft["current_pick"] == 0
    assert draft["picks"] == []
    beta = await team_service.get_team(db_session, teams[1]["id"])
    assert beta["drafted_contestants"] == []


@pytest.mark.asyncio
async def test_pick_for_someone_elses_team_rejected(db_session, started_draft, teams, contestants, users):
    with pytest.raises(AuthorizationError):
        await draft_service.make_pick(
            db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["bob"]["id"]
        )


@pytest.mark.asyncio
async def test_commissioner_can_pick_for_team(db_session, started_draft, teams, contestants, users):
    result = await draft_service.make_pick(
        db_session,
        started_draft["id"],
        teams[0]["id"],
        contestants[2]["id"],
        users["commissioner"]["id"],
    )
    assert result["pick"]["contestant_id"] == contestants[2]["id"]


@pytest.mark.asyncio
async def test_duplicate_contestant_rejected(db_session, started_draft, teams, contestants, users):
    await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )
    with pytest.raises(StateError) as exc_info:
        await draft_service.make_pick(
            db_session, started_draft["id"], teams[1]["id"], contestants[0]["id"], users["bob"]["id"]
        )
    assert exc_info.value.code == "already_drafted"


@pytest.mark.asyncio
async def test_missing_contestant(db_session, started_draft, teams, users):
    with pytest.raises(NotFoundError):
        await draft_service.make_pick(
            db_session, started_draft["id"], teams[0]["id"], 9999, users["alice"]["id"]
        )


@pytest.mark.asyncio
async def test_full_snake_draft_completes(
    db_session, league, started_draft, teams, contestants, users, channel
):
    alpha, beta = teams[0]["id"], teams[1]["id"]
    sequence = [
        (alpha, contestants[0]["id"], users["alice"]["id"]),
        (beta, contestants[1]["id"], users["bob"]["id"]),
        (beta, contestants[2]["id"], users["bob"]["id"]),
        (alpha, contestants[3]["id"], users["alice"]["id"]),
    ]
    result = None
    for team_id, contestant_id, user_id in sequence:
        result = await draft_service.make_pick(
            db_session, started_draft["id"], team_id, contestant_id, user_id
        )

    assert result["draft"]["status"] == DraftStatus.COMPLETED.value
    assert [p["pick_number"] for p in result["draft"]["picks"]] == [1, 2, 3, 4]

    refreshed = await league_service.get_league(db_session, league["id"])
    assert refreshed["status"] == LeagueStatus.ACTIVE.value

    alpha_team = await team_service.get_team(db_session, alpha)
    beta_team = await team_service.get_team(db_session, beta)
    assert alpha_team["drafted_contestants"] == [contestants[0]["id"], contestants[3]["id"]]
    assert beta_team["drafted_contestants"] == [contestants[1]["id"], contestants[2]["id"]]

    assert channel.types()[-1] == NotificationType.DRAFT_COMPLETED.value

    with pytest.raises(StateError):
        await draft_service.make_pick(
            db_session, started_draft["id"], beta, contestants[4]["id"], users["bob"]["id"]
        )


@pytest.mark.asyncio
async def test_draft_completes_when_contestants_run_out(db_session, league, teams, users):
    for name in ("Hannah", "Becca", "Clare"):
        await contestant_service.create_contestant(
            db_session, league["id"], users["commissioner"]["id"], {"name": name}
        )
    available = await contestant_service.list_contestants_by_league(db_session, league["id"])
    draft = await draft_service.start_draft(
        db_session, league["id"], users["commissioner"]["id"], randomize=False
    )

    alpha, beta = teams[0]["id"], teams[1]["id"]
    commissioner = users["commissioner"]["id"]
    await draft_service.make_pick(db_session, draft["id"], alpha, available[0]["id"], commissioner)
    await draft_service.make_pick(db_session, draft["id"], beta, available[1]["id"], commissioner)
    result = await draft_service.make_pick(
        db_session, draft["id"], beta, available[2]["id"], commissioner
    )

    assert result["draft"]["status"] == DraftStatus.COMPLETED.value
    assert result["draft"]["current_pick"] == 3


@pytest.mark.asyncio
async def test_pause_and_resume(db_session, started_draft, teams, contestants, users, channel):
    commissioner = users["commissioner"]["id"]
    paused = await draft_service.pause_draft(db_session, started_draft["id"], commissioner)
    assert paused["status"] == DraftStatus.PAUSED.value

    with pytest.raises(StateError):
        await draft_service.make_pick(
            db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
        )
    with pytest.raises(StateError):
        await draft_service.pause_draft(db_session, started_draft["id"], commissioner)

    turn_count = len(channel.of_type(NotificationType.DRAFT_TURN.value))
    resumed = await draft_service.resume_draft(db_session, started_draft["id"], commissioner)
    assert resumed["status"] == DraftStatus.IN_PROGRESS.value
    assert resumed["current_pick"] == 0
    assert len(channel.of_type(NotificationType.DRAFT_TURN.value)) == turn_count + 1

    with pytest.raises(StateError):
        await draft_service.resume_draft(db_session, started_draft["id"], commissioner)


@pytest.mark.asyncio
async def test_pause_requires_commissioner(db_session, started_draft, users):
    with pytest.raises(AuthorizationError):
        await draft_service.pause_draft(db_session, started_draft["id"], users["alice"]["id"])


@pytest.mark.asyncio
async def test_draft_status(db_session, started_draft, teams, users):
    status = await draft_service.get_draft_status(db_session, started_draft["id"])
    assert status["status"] == DraftStatus.IN_PROGRESS.value
    assert status["current_round"] == 1
    assert status["total_rounds"] == 2
    assert status["total_picks"] == 4
    assert status["picks_made"] == 0
    assert status["picks_remaining"] == 4
    assert status["current_team_id"] == teams[0]["id"]
    assert status["current_team_name"] == "Alpha"
    assert status["current_owner_id"] == users["alice"]["id"]
    assert 0 < status["seconds_remaining"] <= status["pick_time_limit"]


@pytest.mark.asyncio
async def test_available_contestants_shrink(db_session, started_draft, teams, contestants, users):
    await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )
    available = await draft_service.get_available_contestants(db_session, started_draft["id"])
    assert contestants[0]["id"] not in [c["id"] for c in available]
    assert len(available) == len(contestants) - 1


@pytest.mark.asyncio
async def test_auto_pick_disabled_by_default(db_session, started_draft, users):
    with pytest.raises(StateError) as exc_info:
        await draft_service.auto_pick(db_session, started_draft["id"], users["alice"]["id"])
    assert exc_info.value.code == "auto_pick_disabled"


@pytest.mark.asyncio
async def test_auto_pick_after_turn_expires(db_session, league, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    await draft_service.create_draft(
        db_session, league["id"], commissioner, settings={"auto_pick_enabled": True, "pick_time_limit": 30}
    )
    draft = await draft_service.start_draft(db_session, league["id"], commissioner, randomize=False)

    with pytest.raises(StateError) as exc_info:
        await draft_service.auto_pick(db_session, draft["id"], users["bob"]["id"])
    assert exc_info.value.code == "turn_not_expired"

    row = await draft_service.load_draft(db_session, draft["id"])
    row.current_turn_started_at = utcnow() - timedelta(minutes=5)
    await db_session.commit()

    result = await draft_service.auto_pick(db_session, draft["id"], users["bob"]["id"])
    assert result["pick"]["team_id"] == teams[0]["id"]
    assert result["pick"]["contestant_id"] == contestants[0]["id"]


@pytest.mark.asyncio
async def test_delete_draft_resets_rosters(
    db_session, league, started_draft, teams, contestants, users, channel
):
    await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )

    assert await draft_service.delete_draft(db_session, league["id"], users["commissioner"]["id"])

    assert await draft_service.get_draft_by_league(db_session, league["id"]) is None
    alpha = await team_service.get_team(db_session, teams[0]["id"])
    assert alpha["drafted_contestants"] == []
    refreshed = await league_service.get_league(db_session, league["id"])
    assert refreshed["status"] == LeagueStatus.CREATED.value
    assert channel.types()[-1] == NotificationType.DRAFT_DELETED.value


@pytest.mark.asyncio
async def test_delete_missing_draft(db_session, league, users):
    with pytest.raises(NotFoundError):
        await draft_service.delete_draft(db_session, league["id"], users["commissioner"]["id"])


@pytest.mark.asyncio
async def test_draft_limit_locked_while_draft_runs(db_session, league, started_draft, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )

    with pytest.raises(StateError) as exc_info:
        await league_service.update_league_settings(
            db_session, league["id"], commissioner, {"contestant_draft_limit": 1}
        )
    assert exc_info.value.code == "draft_active"

    await draft_service.pause_draft(db_session, started_draft["id"], commissioner)
    with pytest.raises(StateError):
        await league_service.update_league_settings(
            db_session, league["id"], commissioner, {"contestant_draft_limit": 3}
        )

    updated = await league_service.update_league_settings(
        db_session, league["id"], commissioner, {"max_teams": 10}
    )
    assert updated["settings"]["contestant_draft_limit"] == 2
    assert updated["settings"]["max_teams"] == 10

    status = await draft_service.get_draft_status(db_session, started_draft["id"])
    assert status["current_pick"] <= status["total_picks"]


@pytest.mark.asyncio
async def test_roster_adjustments_blocked_while_draft_runs(
    db_session, started_draft, teams, contestants, users
):
    commissioner = users["commissioner"]["id"]
    await draft_service.make_pick(
        db_session, started_draft["id"], teams[0]["id"], contestants[0]["id"], users["alice"]["id"]
    )

    with pytest.raises(StateError) as exc_info:
        await team_service.add_contestant_to_team(
            db_session, teams[0]["id"], contestants[1]["id"], commissioner
        )
    assert exc_info.value.code == "draft_active"
    with pytest.raises(StateError):
        await team_service.remove_contestant_from_team(
            db_session, teams[0]["id"], contestants[0]["id"], commissioner
        )

    alpha = await team_service.get_team(db_session, teams[0]["id"])
    assert alpha["drafted_contestants"] == [contestants[0]["id"]]


@pytest.mark.asyncio
async def test_pick_rejected_when_roster_full(db_session, league, teams, contestants, users):
    commissioner = users["commissioner"]["id"]
    for contestant in contestants[:2]:
        await team_service.add_contestant_to_team(db_session, teams[0]["id"], contestant["id"], commissioner)
    draft = await draft_service.start_draft(db_session, league["id"], commissioner, randomize=False)

    with pytest.raises(StateError) as exc_info:
        await draft_service.make_pick(
            db_session, draft["id"], teams[0]["id"], contestants[2]["id"], users["alice"]["id"]
        )
    assert exc_info.value.code == "roster_full"

    unchanged = await draft_service.get_draft(db_session, draft["id"])
    assert unchanged["current_pick"] == 0
    assert unchanged["picks"] == []
    alpha = await team_service.get_team(db_session, teams[0]["id"])
    assert len(alpha["drafted_contestants"]) == 2
