"""Draft route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import draft_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user, make_require_league_member
from bachelor_league.api.routes import limiter, MUTATION_RATE_LIMIT
from bachelor_league.models.schemas import DraftCreate, StartDraftRequest, MakePickRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues/{league_id}/draft")
async def create_draft(
    league_id: int,
    payload: Optional[DraftCreate] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Open a draft lobby (commissioner only)."""
    try:
        return await draft_service.create_draft(
            session, league_id, user["id"], settings=payload.settings if payload else None
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating draft: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating draft: {str(e)}")


@router.post("/api/leagues/{league_id}/draft/start")
async def start_draft(
    league_id: int,
    payload: Optional[StartDraftRequest] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Start the league's draft (commissioner only)."""
    payload = payload or StartDraftRequest()
    try:
        return await draft_service.start_draft(
            session, league_id, user["id"], randomize=payload.randomize
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error starting draft: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error starting draft: {str(e)}")


@router.get("/api/leagues/{league_id}/draft")
async def get_league_draft(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """The league's draft."""
    try:
        draft = await draft_service.get_draft_by_league(session, league_id)
        if not draft:
            raise HTTPException(status_code=404, detail="Draft not found")
        return draft
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting draft: {str(e)}")


@router.get("/api/leagues/{league_id}/draft/status")
async def get_league_draft_status(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Turn, round and timer summary of the league's draft."""
    try:
        draft = await draft_service.get_draft_by_league(session, league_id)
        if not draft:
            raise HTTPException(status_code=404, detail="Draft not found")
        return await draft_service.get_draft_status(session, draft["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting draft status: {str(e)}")


@router.delete("/api/leagues/{league_id}/draft")
async def delete_draft(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete the draft and clear every roster (commissioner only)."""
    try:
        await draft_service.delete_draft(session, league_id, user["id"])
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting draft: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting draft: {str(e)}")


@router.post("/api/drafts/{draft_id}/picks")
@limiter.limit(MUTATION_RATE_LIMIT)
async def make_pick(
    request: Request,
    draft_id: int,
    payload: MakePickRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Draft a contestant for the team on the clock."""
    try:
        return await draft_service.make_pick(
            session, draft_id, payload.team_id, payload.contestant_id, user["id"]
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error making pick: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error making pick: {str(e)}")


@router.post("/api/drafts/{draft_id}/auto-pick")
async def auto_pick(
    draft_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Pick for a team whose turn ran out (auto-pick drafts only)."""
    try:
        return await draft_service.auto_pick(session, draft_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error auto-picking: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error auto-picking: {str(e)}")


@router.post("/api/drafts/{draft_id}/pause")
async def pause_draft(
    draft_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Pause a running draft (commissioner only)."""
    try:
        return await draft_service.pause_draft(session, draft_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error pausing draft: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error pausing draft: {str(e)}")


@router.post("/api/drafts/{draft_id}/resume")
async def resume_draft(
    draft_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Resume a paused draft (commissioner only)."""
    try:
        return await draft_service.resume_draft(session, draft_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error resuming draft: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error resuming draft: {str(e)}")


@router.get("/api/drafts/{draft_id}")
async def get_draft(
    draft_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a draft."""
    try:
        draft = await draft_service.get_draft(session, draft_id)
        if not draft:
            raise HTTPException(status_code=404, detail="Draft not found")
        return draft
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting draft: {str(e)}")


@router.get("/api/drafts/{draft_id}/available")
async def get_available_contestants(
    draft_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Contestants not yet drafted."""
    try:
        return await draft_service.get_available_contestants(session, draft_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting available contestants: {str(e)}")
