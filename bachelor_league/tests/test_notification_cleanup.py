"""
Tests for the notification cleanup background worker.
"""

import asyncio
from datetime import timedelta

import pytest

from bachelor_league.database.models import Notification, NotificationType
from bachelor_league.services import notification_cleanup_service
from bachelor_league.services.notification_cleanup_service import NotificationCleanupService
from bachelor_league.utils.datetime_utils import utcnow


@pytest.mark.asyncio
async def test_run_once_deletes_expired(db_session, league):
    db_session.add_all([
        Notification(
            league_id=league["id"],
            type=NotificationType.LEAGUE_UPDATE.value,
            title="Expired",
            expires_at=utcnow() - timedelta(hours=1),
        ),
        Notification(
            league_id=league["id"],
            type=NotificationType.LEAGUE_UPDATE.value,
            title="Fresh",
            expires_at=utcnow() + timedelta(hours=1),
        ),
    ])
    await db_session.commit()

    service = NotificationCleanupService(poll_interval=60)
    assert await service.run_once() == 1


@pytest.mark.asyncio
async def test_start_and_stop(test_engine):
    service = NotificationCleanupService(poll_interval=60)
    assert service.is_running is False

    service.start()
    assert service.is_running is True

    service.stop()
    await asyncio.sleep(0)
    assert service.is_running is False


@pytest.mark.asyncio
async def test_worker_survives_errors(monkeypatch):
    calls = []

    async def failing_run_once(self):
        calls.append(1)
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(NotificationCleanupService, "run_once", failing_run_once)
    service = NotificationCleanupService(poll_interval=0.01)
    service.start()
    await asyncio.sleep(0.05)
    service.stop()
    await asyncio.sleep(0)

    assert len(calls) >= 2


def test_global_instance():
    first = notification_cleanup_service.get_notification_cleanup_service()
    assert first is notification_cleanup_service.get_notification_cleanup_service()
