"""League route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import league_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user, make_require_league_member
from bachelor_league.api.routes import limiter, MUTATION_RATE_LIMIT
from bachelor_league.models.schemas import LeagueCreate, LeagueStatusUpdate, JoinLeagueRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/leagues")
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_league(
    request: Request,
    payload: LeagueCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a new league. The caller becomes its commissioner."""
    try:
        return await league_service.create_league(
            session,
            commissioner_id=user["id"],
            name=payload.name,
            season=payload.season,
            settings=payload.settings,
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating league: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating league: {str(e)}")


@router.get("/api/leagues")
async def list_my_leagues(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Leagues the caller commissions or has a team in."""
    try:
        return await league_service.list_user_leagues(session, user["id"])
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing leagues: {str(e)}")


@router.post("/api/leagues/join")
@limiter.limit(MUTATION_RATE_LIMIT)
async def join_league(
    request: Request,
    payload: JoinLeagueRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Join a league by code, creating the caller's team."""
    try:
        return await league_service.join_league(
            session, payload.league_code, payload.team_name, user["id"]
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error joining league: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error joining league: {str(e)}")


@router.get("/api/leagues/code/{league_code}")
async def get_league_by_code(
    league_code: str,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Look up a league by its join code (used by the join page)."""
    try:
        league = await league_service.get_league_by_code(session, league_code)
        if not league:
            raise HTTPException(status_code=404, detail="League not found")
        return league
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting league: {str(e)}")


@router.get("/api/leagues/{league_id}")
async def get_league(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a league (members only)."""
    try:
        league = await league_service.get_league(session, league_id)
        if not league:
            raise HTTPException(status_code=404, detail="League not found")
        return league
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting league: {str(e)}")


@router.put("/api/leagues/{league_id}/settings")
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_league_settings(
    request: Request,
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update league settings (commissioner only).

    Body: any subset of max_teams, contestant_draft_limit, draft_format,
    scoring_rules, notification_settings.
    """
    try:
        body = await request.json()
        return await league_service.update_league_settings(session, league_id, user["id"], body)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating league settings: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating league settings: {str(e)}")


@router.put("/api/leagues/{league_id}/status")
async def update_league_status(
    league_id: int,
    payload: LeagueStatusUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Move the league to another lifecycle status (commissioner only)."""
    try:
        return await league_service.update_league_status(
            session, league_id, user["id"], payload.status
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating league status: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating league status: {str(e)}")


@router.delete("/api/leagues/{league_id}")
async def delete_league(
    league_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a league and everything in it (commissioner only)."""
    try:
        await league_service.delete_league(session, league_id, user["id"])
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting league: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting league: {str(e)}")
