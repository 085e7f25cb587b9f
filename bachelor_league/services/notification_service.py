"""
Notification relay for league events.

Persists short-lived notification records and publishes them to the league's
subscribers through a NotificationChannel (the WebSocket manager by default).
Notifications are hints for clients to re-fetch; delivery is best-effort.
"""

from typing import List, Dict, Optional
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from bachelor_league.database.models import Notification, NotificationType, League
from bachelor_league.services.websocket_manager import NotificationChannel, get_websocket_manager
from bachelor_league.utils.constants import NOTIFICATION_TTL_HOURS
from bachelor_league.utils.datetime_utils import utcnow, ensure_utc
import logging

logger = logging.getLogger(__name__)

# Which league notification toggle controls each type. Types not listed are always sent.
TOGGLE_FOR_TYPE = {
    NotificationType.DRAFT_STARTED.value: "draft_notifications",
    NotificationType.DRAFT_TURN.value: "draft_notifications",
    NotificationType.DRAFT_PICK_MADE.value: "draft_notifications",
    NotificationType.DRAFT_COMPLETED.value: "draft_notifications",
    NotificationType.DRAFT_DELETED.value: "draft_notifications",
    NotificationType.SCORING_EVENT.value: "scoring_updates",
    NotificationType.STANDINGS_UPDATE.value: "standings_changes",
    NotificationType.EPISODE_STARTED.value: "episode_reminders",
    NotificationType.EPISODE_ENDED.value: "episode_reminders",
}

VALID_TYPES = {t.value for t in NotificationType}

_channel: Optional[NotificationChannel] = None


def get_notification_channel() -> NotificationChannel:
    """Channel used for publishing; the global WebSocket manager unless overridden."""
    return _channel if _channel is not None else get_websocket_manager()


def set_notification_channel(channel: Optional[NotificationChannel]) -> None:
    """Override the publish channel (None restores the WebSocket manager)."""
    global _channel
    _channel = channel


def _notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "league_id": notification.league_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "target_user_id": notification.target_user_id,
        "expires_at": notification.expires_at.isoformat() if notification.expires_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


async def is_notification_enabled(session: AsyncSession, league_id: int, type: str) -> bool:
    """Check the league's notification toggles for a type."""
    toggle = TOGGLE_FOR_TYPE.get(type)
    if toggle is None:
        return True
    result = await session.execute(select(League.settings).where(League.id == league_id))
    settings = result.scalar_one_or_none() or {}
    return bool((settings.get("notification_settings") or {}).get(toggle, True))


async def notify(
    session: AsyncSession,
    league_id: int,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict] = None,
    target_user_id: Optional[int] = None,
) -> Optional[Dict]:
    """
    Persist a league notification and publish it to subscribers.

    Called after the caller's own change is committed. Persistence and
    publishing failures are logged and never raised.

    Args:
        session: Database session
        league_id: League the event belongs to
        type: NotificationType value
        title: Short title
        message: Notification body
        data: Optional JSON metadata
        target_user_id: Only this user should see it (None = whole league)

    Returns:
        The notification dict, or None when suppressed or not persisted

    Raises:
        ValueError: If required fields are missing or the type is unknown
    """
    if not league_id:
        raise ValueError("league_id is required")
    if type not in VALID_TYPES:
        raise ValueError(f"Unknown notification type: {type}")
    if not title:
        raise ValueError("title is required")

    try:
        if not await is_notification_enabled(session, league_id, type):
            logger.debug(f"Notification {type} disabled for league {league_id}")
            return None

        notification = Notification(
            league_id=league_id,
            type=type,
            title=title,
            message=message,
            data=data,
            target_user_id=target_user_id,
            expires_at=utcnow() + timedelta(hours=NOTIFICATION_TTL_HOURS),
        )
        session.add(notification)
        await session.commit()
        await session.refresh(notification)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to persist {type} notification for league {league_id}: {e}")
        await session.rollback()
        return None

    notification_dict = _notification_to_dict(notification)

    try:
        channel = get_notification_channel()
        await channel.publish(
            league_id,
            {"type": "notification", "notification": notification_dict},
            target_user_id=target_user_id,
        )
    except Exception as e:
        logger.warning(f"Failed to publish notification for league {league_id}: {e}")

    return notification_dict


async def get_league_notifications(
    session: AsyncSession,
    league_id: int,
    user_id: int,
    limit: int = 50,
    since: Optional[datetime] = None,
) -> List[Dict]:
    """
    Fetch unexpired notifications visible to a user (broadcast or targeted at them).

    Args:
        session: Database session
        league_id: ID of the league
        user_id: ID of the viewing user
        limit: Maximum number of notifications (default: 50)
        since: Only return notifications created after this time

    Returns:
        List of notification dicts, newest first
    """
    query = select(Notification).where(
        and_(
            Notification.league_id == league_id,
            Notification.expires_at > utcnow(),
            or_(Notification.target_user_id.is_(None), Notification.target_user_id == user_id),
        )
    )
    if since is not None:
        query = query.where(Notification.created_at > since)

    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    result = await session.execute(query)
    return [_notification_to_dict(n) for n in result.scalars().all()]


async def delete_expired_notifications(session: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Delete notifications past their expiry.

    Returns:
        Number of deleted rows
    """
    cutoff = ensure_utc(now) if now else utcnow()
    result = await session.execute(delete(Notification).where(Notification.expires_at <= cutoff))
    await session.commit()
    deleted = result.rowcount or 0
    if deleted:
        logger.info(f"Deleted {deleted} expired notification(s)")
    return deleted
