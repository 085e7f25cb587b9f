"""Contestant route handlers."""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import contestant_service, scoring_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user, make_require_league_member
from bachelor_league.api.routes import limiter, MUTATION_RATE_LIMIT
from bachelor_league.models.schemas import (
    ContestantCreate,
    ContestantUpdate,
    BulkContestantCreate,
    EliminateRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/contestants")
async def list_contestants(
    league_id: int,
    eliminated: Optional[bool] = None,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Contestants in a league, optionally filtered by elimination state."""
    try:
        return await contestant_service.list_contestants_by_league(
            session, league_id, eliminated=eliminated
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing contestants: {str(e)}")


@router.get("/api/leagues/{league_id}/contestants/search")
async def search_contestants(
    league_id: int,
    q: str = "",
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Search contestants by name, hometown or occupation."""
    try:
        return await contestant_service.search_contestants(session, league_id, q)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error searching contestants: {str(e)}")


@router.post("/api/leagues/{league_id}/contestants")
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_contestant(
    request: Request,
    league_id: int,
    payload: ContestantCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Add a contestant (commissioner only)."""
    try:
        return await contestant_service.create_contestant(
            session, league_id, user["id"], payload.model_dump()
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating contestant: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating contestant: {str(e)}")


@router.post("/api/leagues/{league_id}/contestants/bulk")
@limiter.limit(MUTATION_RATE_LIMIT)
async def bulk_create_contestants(
    request: Request,
    league_id: int,
    payload: BulkContestantCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Add many contestants; per-item failures are reported (commissioner only)."""
    try:
        return await contestant_service.bulk_create_contestants(
            session, league_id, user["id"], payload.contestants
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating contestants: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating contestants: {str(e)}")


@router.get("/api/contestants/{contestant_id}")
async def get_contestant(
    contestant_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a contestant."""
    try:
        contestant = await contestant_service.get_contestant(session, contestant_id)
        if not contestant:
            raise HTTPException(status_code=404, detail="Contestant not found")
        return contestant
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting contestant: {str(e)}")


@router.put("/api/contestants/{contestant_id}")
async def update_contestant(
    contestant_id: int,
    payload: ContestantUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update contestant profile fields (commissioner only)."""
    try:
        return await contestant_service.update_contestant(
            session, contestant_id, user["id"], payload.model_dump(exclude_unset=True)
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating contestant: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating contestant: {str(e)}")


@router.delete("/api/contestants/{contestant_id}")
async def delete_contestant(
    contestant_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete an undrafted, unscored contestant (commissioner only)."""
    try:
        await contestant_service.delete_contestant(session, contestant_id, user["id"])
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting contestant: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting contestant: {str(e)}")


@router.post("/api/contestants/{contestant_id}/photo")
@limiter.limit("10/minute")
async def upload_contestant_photo(
    request: Request,
    contestant_id: int,
    file: UploadFile = File(...),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Upload a contestant photo (commissioner only)."""
    try:
        file_bytes = await file.read()
        return await contestant_service.upload_contestant_photo(
            session, contestant_id, user["id"], file_bytes, file.content_type
        )
    except (HTTPException, ServiceError):
        raise
    except (BotoCoreError, ClientError, RuntimeError) as e:
        logger.error(f"Storage error uploading contestant photo: {str(e)}")
        raise HTTPException(status_code=502, detail=f"Error storing photo: {str(e)}")
    except Exception as e:
        logger.error(f"Error uploading contestant photo: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error uploading photo: {str(e)}")


@router.post("/api/contestants/{contestant_id}/eliminate")
async def eliminate_contestant(
    contestant_id: int,
    payload: Optional[EliminateRequest] = None,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark a contestant eliminated. Points are kept."""
    try:
        return await scoring_service.eliminate_contestant(
            session,
            contestant_id,
            user["id"],
            episode_number=payload.episode_number if payload else None,
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error eliminating contestant: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error eliminating contestant: {str(e)}")


@router.post("/api/contestants/{contestant_id}/restore")
async def restore_contestant(
    contestant_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Clear a contestant's elimination."""
    try:
        return await scoring_service.restore_contestant(session, contestant_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error restoring contestant: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error restoring contestant: {str(e)}")
