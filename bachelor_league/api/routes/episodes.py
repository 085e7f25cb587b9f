"""Episode route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import episode_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user, make_require_league_member
from bachelor_league.models.schemas import EpisodeCreate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/episodes")
async def list_episodes(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Episodes of a league ordered by number."""
    try:
        return await episode_service.list_episodes_by_league(session, league_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing episodes: {str(e)}")


@router.get("/api/leagues/{league_id}/episodes/active")
async def get_active_episode(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """The active episode and the league's current episode number."""
    try:
        return {
            "episode": await episode_service.get_active_episode(session, league_id),
            "current_episode_number": await episode_service.get_current_episode_number(
                session, league_id
            ),
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting active episode: {str(e)}")


@router.post("/api/leagues/{league_id}/episodes")
async def create_episode(
    league_id: int,
    payload: Optional[EpisodeCreate] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create an episode; without a number it becomes the next one."""
    payload = payload or EpisodeCreate()
    try:
        return await episode_service.create_episode(
            session,
            league_id,
            user["id"],
            episode_number=payload.episode_number,
            air_date=payload.air_date,
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating episode: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating episode: {str(e)}")


@router.get("/api/episodes/{episode_id}")
async def get_episode(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get an episode."""
    try:
        episode = await episode_service.get_episode(session, episode_id)
        if not episode:
            raise HTTPException(status_code=404, detail="Episode not found")
        return episode
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting episode: {str(e)}")


@router.post("/api/episodes/{episode_id}/activate")
async def activate_episode(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Make this the league's only active episode."""
    try:
        return await episode_service.set_active_episode(session, episode_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error activating episode: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error activating episode: {str(e)}")


@router.post("/api/episodes/{episode_id}/end")
async def end_episode(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Close scoring for an episode."""
    try:
        return await episode_service.end_episode(session, episode_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error ending episode: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error ending episode: {str(e)}")


@router.delete("/api/episodes/{episode_id}")
async def delete_episode(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete an episode with no scoring events."""
    try:
        await episode_service.delete_episode(session, episode_id, user["id"])
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting episode: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting episode: {str(e)}")
