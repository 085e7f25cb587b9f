"""
Notification cleanup service: deletes expired notifications and drops stale
WebSocket connections.

Background worker started from the app lifespan. Polls every 10 minutes.
"""

import asyncio
import logging
from typing import Optional

from bachelor_league.database import db
from bachelor_league.services.notification_service import delete_expired_notifications
from bachelor_league.services.websocket_manager import get_websocket_manager

logger = logging.getLogger(__name__)

# How often the worker runs (seconds)
POLL_INTERVAL_SECONDS = 600  # 10 minutes


class NotificationCleanupService:
    """Background service that purges expired notifications."""

    def __init__(self, poll_interval: float = POLL_INTERVAL_SECONDS):
        self.poll_interval = poll_interval
        self._worker_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    def start(self) -> None:
        """Start the background cleanup worker."""
        if not self.is_running:
            self._stop_event.clear()
            self._worker_task = asyncio.create_task(self._poll_loop())
            logger.info("Notification cleanup worker started")

    def stop(self) -> None:
        """Stop the background cleanup worker."""
        self._stop_event.set()
        if self.is_running:
            self._worker_task.cancel()
            logger.info("Notification cleanup worker stopped")

    async def _poll_loop(self) -> None:
        """Main loop: run a cleanup pass, then wait. Repeats until stopped."""
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Error in notification cleanup worker: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
                # stop_event was set
                break
            except asyncio.TimeoutError:
                pass

    async def run_once(self) -> int:
        """
        Run one cleanup pass.

        Returns:
            Number of expired notifications deleted
        """
        async with db.AsyncSessionLocal() as session:
            deleted = await delete_expired_notifications(session)
        await get_websocket_manager().cleanup_stale_connections()
        return deleted


# Global singleton
_cleanup_service = NotificationCleanupService()


def get_notification_cleanup_service() -> NotificationCleanupService:
    """Get the global notification cleanup service instance."""
    return _cleanup_service
