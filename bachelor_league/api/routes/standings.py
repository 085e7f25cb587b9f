"""Standings route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import standings_service, scoring_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import (
    require_user,
    make_require_league_member,
    make_require_league_commissioner,
)
from bachelor_league.utils.constants import TOP_SCORERS_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/standings/teams")
async def get_team_standings(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Teams ranked by total points."""
    try:
        return await standings_service.get_team_standings(session, league_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting team standings: {str(e)}")


@router.get("/api/leagues/{league_id}/standings/contestants")
async def get_contestant_standings(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Contestants ranked by total points."""
    try:
        return await standings_service.get_contestant_standings(session, league_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting contestant standings: {str(e)}")


@router.get("/api/leagues/{league_id}/standings/top-performers")
async def get_top_performers(
    league_id: int,
    limit: int = TOP_SCORERS_LIMIT,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Best contestants of the latest episode."""
    try:
        return await standings_service.get_current_episode_top_performers(
            session, league_id, limit=limit
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting top performers: {str(e)}")


@router.get("/api/leagues/{league_id}/standings/verify")
async def verify_league_totals(
    league_id: int,
    user: dict = Depends(make_require_league_commissioner()),
    session: AsyncSession = Depends(get_db_session),
):
    """Compare stored totals with the event history (commissioner only)."""
    try:
        return await standings_service.verify_league_totals(session, league_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error verifying totals: {str(e)}")


@router.post("/api/leagues/{league_id}/standings/recalculate")
async def recalculate_league_totals(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Rewrite stored totals from the event history (commissioner only)."""
    try:
        return await scoring_service.recalculate_league_totals(session, league_id, user["id"])
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error recalculating totals: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error recalculating totals: {str(e)}")


@router.get("/api/teams/{team_id}/detail")
async def get_team_detail(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Team record, owner, contestants, standing and history."""
    try:
        return await standings_service.get_team_detail(session, team_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting team detail: {str(e)}")
