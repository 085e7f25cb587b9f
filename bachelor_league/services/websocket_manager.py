"""
WebSocket connection manager for real-time league notifications.

Keeps the active WebSocket connections of each league and fans published
messages out to them. Implements the NotificationChannel interface used by
the notification service.
"""

import abc
import asyncio
import json
import logging
from typing import Any, Dict, Set, Optional
from datetime import datetime, timedelta
from fastapi import WebSocket

from bachelor_league.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

# Timeout for WebSocket connections (30 seconds of inactivity)
WEBSOCKET_TIMEOUT_SECONDS = 30


class NotificationChannel(abc.ABC):
    """Narrow publish/subscribe interface the notification relay talks to."""

    @abc.abstractmethod
    async def publish(
        self, league_id: int, message: dict, target_user_id: Optional[int] = None
    ) -> int:
        """Deliver a message to a league's subscribers. Returns the delivery count."""

    @abc.abstractmethod
    async def subscribe(self, league_id: int, connection: Any, user_id: Optional[int] = None):
        """Register a connection for a league."""

    @abc.abstractmethod
    async def unsubscribe(self, league_id: int, connection: Any):
        """Remove a connection from a league."""


class WebSocketManager(NotificationChannel):
    """Manages per-league WebSocket connections."""

    def __init__(self):
        # league_id -> active WebSocket connections
        self.active_connections: Dict[int, Set[WebSocket]] = {}
        # WebSocket -> last activity timestamp
        self.connection_timestamps: Dict[WebSocket, datetime] = {}
        # WebSocket -> user_id, for targeted messages
        self.connection_users: Dict[WebSocket, Optional[int]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, league_id: int, connection: WebSocket, user_id: Optional[int] = None):
        """
        Register a WebSocket connection for a league.

        Args:
            league_id: ID of the league
            connection: WebSocket connection object
            user_id: ID of the connected user, used for targeted messages
        """
        async with self._lock:
            if league_id not in self.active_connections:
                self.active_connections[league_id] = set()
            self.active_connections[league_id].add(connection)
            self.connection_timestamps[connection] = utcnow()
            self.connection_users[connection] = user_id
            logger.info(
                f"WebSocket subscribed to league {league_id} "
                f"(total connections: {len(self.active_connections[league_id])})"
            )

    async def unsubscribe(self, league_id: int, connection: WebSocket):
        """
        Remove a WebSocket connection from a league.

        Args:
            league_id: ID of the league
            connection: WebSocket connection object
        """
        async with self._lock:
            self._remove_locked(league_id, connection)
            logger.info(f"WebSocket unsubscribed from league {league_id}")

    def _remove_locked(self, league_id: int, connection: WebSocket):
        if league_id in self.active_connections:
            self.active_connections[league_id].discard(connection)
            if not self.active_connections[league_id]:
                del self.active_connections[league_id]
        self.connection_timestamps.pop(connection, None)
        self.connection_users.pop(connection, None)

    async def publish(
        self, league_id: int, message: dict, target_user_id: Optional[int] = None
    ) -> int:
        """
        Send a message to the league's connections.

        Args:
            league_id: ID of the league
            message: Message dict to send (serialized to JSON)
            target_user_id: When set, only that user's connections receive it

        Returns:
            Number of connections the message was delivered to
        """
        async with self._lock:
            if league_id not in self.active_connections:
                return 0
            connections = [
                ws
                for ws in self.active_connections[league_id]
                if target_user_id is None or self.connection_users.get(ws) == target_user_id
            ]

        message_json = json.dumps(message, default=str)
        delivered = 0
        disconnected = []

        # Send outside the lock so a slow client does not block others
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
                delivered += 1
                async with self._lock:
                    if websocket in self.connection_timestamps:
                        self.connection_timestamps[websocket] = utcnow()
            except Exception as e:
                logger.warning(f"Error sending WebSocket message to league {league_id}: {e}")
                disconnected.append(websocket)

        if disconnected:
            async with self._lock:
                for ws in disconnected:
                    self._remove_locked(league_id, ws)

        return delivered

    async def get_connection_count(self, league_id: int) -> int:
        """Number of active connections for a league."""
        async with self._lock:
            return len(self.active_connections.get(league_id, ()))

    async def update_activity(self, websocket: WebSocket):
        """
        Update the last activity timestamp for a connection.
        Called when the client sends a ping or any other message.
        """
        async with self._lock:
            if websocket in self.connection_timestamps:
                self.connection_timestamps[websocket] = utcnow()

    async def cleanup_stale_connections(self) -> int:
        """
        Close and drop connections with no activity within the timeout.

        Returns:
            Number of connections removed
        """
        threshold = utcnow() - timedelta(seconds=WEBSOCKET_TIMEOUT_SECONDS)

        stale = []
        async with self._lock:
            for league_id, conn_set in self.active_connections.items():
                for websocket in conn_set:
                    last_activity = self.connection_timestamps.get(websocket)
                    if last_activity is None or last_activity < threshold:
                        stale.append((league_id, websocket))

        for league_id, websocket in stale:
            try:
                await websocket.close()
            except Exception as e:
                logger.warning(f"Error closing stale connection: {e}")
            await self.unsubscribe(league_id, websocket)
            logger.info(f"Cleaned up stale WebSocket connection for league {league_id}")

        return len(stale)


# Global WebSocket manager instance
_websocket_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the global WebSocket manager instance.

    Returns:
        WebSocketManager instance
    """
    global _websocket_manager
    if _websocket_manager is None:
        _websocket_manager = WebSocketManager()
    return _websocket_manager
