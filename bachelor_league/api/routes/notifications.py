"""Notification and WebSocket route handlers."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database import db
from bachelor_league.database.db import get_db_session
from bachelor_league.services import auth_service, league_service, notification_service
from bachelor_league.services.websocket_manager import get_websocket_manager, WEBSOCKET_TIMEOUT_SECONDS
from bachelor_league.api.auth_dependencies import resolve_token_user, make_require_league_member
from bachelor_league.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/notifications")
async def get_league_notifications(
    league_id: int,
    limit: int = 50,
    since: Optional[datetime] = None,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Unexpired league notifications visible to the caller, newest first."""
    try:
        return await notification_service.get_league_notifications(
            session, league_id, user["id"], limit=limit, since=since
        )
    except Exception as e:
        logger.error(f"Error fetching notifications: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error fetching notifications: {str(e)}")


@router.websocket("/api/ws/leagues/{league_id}")
async def websocket_league_notifications(websocket: WebSocket, league_id: int):
    """
    WebSocket endpoint for real-time league notifications.

    Requires JWT token in query parameter: ?token=<jwt_token>
    The caller must be the commissioner or own a team in the league.
    """
    await websocket.accept()

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008, reason="Missing authentication token")
        return

    if auth_service.verify_token(token) is None:
        await websocket.close(code=1008, reason="Invalid authentication token")
        return

    async with db.AsyncSessionLocal() as session:
        user = await resolve_token_user(session, token)
        if user is None:
            await websocket.close(code=1008, reason="Invalid token payload")
            return
        if not await league_service.is_league_member(session, league_id, user["id"]):
            await websocket.close(code=1008, reason="League membership required")
            return
    user_id = user["id"]

    manager = get_websocket_manager()
    await manager.subscribe(league_id, websocket, user_id)

    try:
        last_activity = utcnow()

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(), timeout=WEBSOCKET_TIMEOUT_SECONDS
                )
                last_activity = utcnow()
                await manager.update_activity(websocket)

                # Client heartbeat
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                if (utcnow() - last_activity).total_seconds() > WEBSOCKET_TIMEOUT_SECONDS:
                    logger.info(
                        f"WebSocket timeout for user {user_id} in league {league_id}, closing connection"
                    )
                    await websocket.close(code=1000, reason="Connection timeout")
                    break
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {user_id} in league {league_id}")
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id} in league {league_id}: {e}")
    finally:
        await manager.unsubscribe(league_id, websocket)
