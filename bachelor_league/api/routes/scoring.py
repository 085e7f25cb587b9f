"""Scoring route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import scoring_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user
from bachelor_league.api.routes import limiter, MUTATION_RATE_LIMIT
from bachelor_league.models.schemas import ScoreActionRequest, BulkScoreRequest
from bachelor_league.utils.constants import RECENT_EVENTS_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/episodes/{episode_id}/scores")
@limiter.limit(MUTATION_RATE_LIMIT)
async def score_action(
    request: Request,
    episode_id: int,
    payload: ScoreActionRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Record a scoring action in the active episode."""
    try:
        return await scoring_service.score_action(
            session,
            episode_id,
            payload.contestant_id,
            payload.action_type,
            user["id"],
            points=payload.points,
            description=payload.description,
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error scoring action: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error scoring action: {str(e)}")


@router.post("/api/episodes/{episode_id}/scores/bulk")
@limiter.limit(MUTATION_RATE_LIMIT)
async def bulk_score_actions(
    request: Request,
    episode_id: int,
    payload: BulkScoreRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Record several scoring actions; failures are reported per item."""
    try:
        return await scoring_service.bulk_score_actions(
            session, episode_id, [a.model_dump() for a in payload.actions], user["id"]
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error bulk scoring: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error bulk scoring: {str(e)}")


@router.get("/api/episodes/{episode_id}/scores")
async def get_episode_scores(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """All scoring events of an episode."""
    try:
        return await scoring_service.get_episode_scores(session, episode_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting scores: {str(e)}")


@router.get("/api/episodes/{episode_id}/recent")
async def get_recent_scoring_events(
    episode_id: int,
    limit: int = RECENT_EVENTS_LIMIT,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Most recent scoring events, newest first."""
    try:
        return await scoring_service.get_recent_scoring_events(session, episode_id, limit=limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting recent events: {str(e)}")


@router.get("/api/episodes/{episode_id}/summary")
async def get_episode_summary(
    episode_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Event and point totals for an episode with top scorers."""
    try:
        return await scoring_service.get_episode_summary(session, episode_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting episode summary: {str(e)}")


@router.delete("/api/episodes/{episode_id}/scores/{event_id}")
async def undo_scoring_event(
    episode_id: int,
    event_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Undo a scoring event, reversing its points everywhere."""
    try:
        return await scoring_service.undo_scoring_event(session, episode_id, event_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error undoing scoring event: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error undoing scoring event: {str(e)}")


@router.get("/api/contestants/{contestant_id}/scores")
async def get_contestant_scores(
    contestant_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Scoring events for one contestant."""
    try:
        return await scoring_service.get_contestant_scores(session, contestant_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting contestant scores: {str(e)}")
