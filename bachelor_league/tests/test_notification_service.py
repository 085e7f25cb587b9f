"""
Unit tests for the notification relay.
Tests validation, league toggles, persistence, targeting and expiry.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from bachelor_league.database.models import NotificationType
from bachelor_league.services import notification_service, league_service
from bachelor_league.services.websocket_manager import get_websocket_manager
from bachelor_league.utils.datetime_utils import utcnow


@pytest.mark.asyncio
async def test_notify_persists_and_publishes(db_session, league, channel):
    notification = await notification_service.notify(
        db_session,
        league["id"],
        NotificationType.LEAGUE_UPDATE.value,
        "League Updated",
        "Rules changed",
        data={"status": "created"},
    )

    assert notification["id"] > 0
    assert notification["league_id"] == league["id"]
    assert notification["type"] == NotificationType.LEAGUE_UPDATE.value
    assert notification["data"] == {"status": "created"}
    assert notification["target_user_id"] is None
    assert notification["expires_at"] is not None

    assert len(channel.published) == 1
    published = channel.published[0]
    assert published["league_id"] == league["id"]
    assert published["message"] == {"type": "notification", "notification": notification}


@pytest.mark.asyncio
async def test_notify_validation(db_session, league):
    with pytest.raises(ValueError, match="league_id is required"):
        await notification_service.notify(
            db_session, None, NotificationType.LEAGUE_UPDATE.value, "Title", "Body"
        )

    with pytest.raises(ValueError, match="Unknown notification type"):
        await notification_service.notify(db_session, league["id"], "carrier_pigeon", "Title", "Body")

    with pytest.raises(ValueError, match="title is required"):
        await notification_service.notify(
            db_session, league["id"], NotificationType.LEAGUE_UPDATE.value, "", "Body"
        )


@pytest.mark.asyncio
async def test_disabled_toggle_suppresses_type(db_session, league, users, channel):
    await league_service.update_league_settings(
        db_session,
        league["id"],
        users["commissioner"]["id"],
        {"notification_settings": {"scoring_updates": False}},
    )

    suppressed = await notification_service.notify(
        db_session, league["id"], NotificationType.SCORING_EVENT.value, "Jenn scored 2 points", "kiss_mouth"
    )
    assert suppressed is None
    assert channel.published == []

    # league_update has no toggle
    sent = await notification_service.notify(
        db_session, league["id"], NotificationType.LEAGUE_UPDATE.value, "League Updated", "ok"
    )
    assert sent is not None


@pytest.mark.asyncio
async def test_publish_failure_is_not_raised(db_session, league):
    failing = AsyncMock()
    failing.publish.side_effect = RuntimeError("socket gone")
    notification_service.set_notification_channel(failing)

    notification = await notification_service.notify(
        db_session, league["id"], NotificationType.LEAGUE_UPDATE.value, "League Updated", "ok"
    )
    assert notification is not None
    failing.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_default_channel_is_websocket_manager():
    notification_service.set_notification_channel(None)
    assert notification_service.get_notification_channel() is get_websocket_manager()


@pytest.mark.asyncio
async def test_league_notifications_respect_targeting(db_session, league, teams, users):
    alice, bob = users["alice"]["id"], users["bob"]["id"]
    await notification_service.notify(
        db_session, league["id"], NotificationType.LEAGUE_UPDATE.value, "Everyone", "all"
    )
    await notification_service.notify(
        db_session,
        league["id"],
        NotificationType.DRAFT_TURN.value,
        "Your Turn to Pick!",
        "pick now",
        target_user_id=alice,
    )

    alice_feed = await notification_service.get_league_notifications(db_session, league["id"], alice)
    bob_feed = await notification_service.get_league_notifications(db_session, league["id"], bob)

    assert {n["title"] for n in alice_feed} == {"Everyone", "Your Turn to Pick!"}
    assert [n["title"] for n in bob_feed] == ["Everyone"]

    limited = await notification_service.get_league_notifications(db_session, league["id"], alice, limit=1)
    assert len(limited) == 1


@pytest.mark.asyncio
async def test_delete_expired_notifications(db_session, league, users):
    await notification_service.notify(
        db_session, league["id"], NotificationType.LEAGUE_UPDATE.value, "Old news", "expired soon"
    )

    assert await notification_service.delete_expired_notifications(db_session) == 0

    later = utcnow() + timedelta(days=2)
    assert await notification_service.delete_expired_notifications(db_session, now=later) == 1
    feed = await notification_service.get_league_notifications(
        db_session, league["id"], users["commissioner"]["id"]
    )
    assert feed == []
