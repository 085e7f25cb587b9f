"""Team route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bachelor_league.database.db import get_db_session
from bachelor_league.services import team_service
from bachelor_league.services.errors import ServiceError
from bachelor_league.api.auth_dependencies import require_user, make_require_league_member
from bachelor_league.api.routes import limiter, MUTATION_RATE_LIMIT
from bachelor_league.models.schemas import TeamCreate, TeamUpdate, RosterChange

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/leagues/{league_id}/teams")
async def list_league_teams(
    league_id: int,
    user: dict = Depends(make_require_league_member()),
    session: AsyncSession = Depends(get_db_session),
):
    """Teams in a league."""
    try:
        return await team_service.list_teams_by_league(session, league_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing teams: {str(e)}")


@router.post("/api/leagues/{league_id}/teams")
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_team(
    request: Request,
    league_id: int,
    payload: TeamCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Create the caller's team in a league."""
    try:
        return await team_service.create_team(session, league_id, user["id"], payload.name)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating team: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error creating team: {str(e)}")


@router.get("/api/users/me/teams")
async def list_my_teams(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Teams owned by the caller."""
    try:
        return await team_service.list_user_teams(session, user["id"])
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error listing teams: {str(e)}")


@router.get("/api/teams/{team_id}")
async def get_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a team."""
    try:
        team = await team_service.get_team(session, team_id)
        if not team:
            raise HTTPException(status_code=404, detail="Team not found")
        return team
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error getting team: {str(e)}")


@router.put("/api/teams/{team_id}")
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Rename a team (owner or commissioner)."""
    try:
        return await team_service.update_team(session, team_id, user["id"], payload.name)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating team: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating team: {str(e)}")


@router.delete("/api/teams/{team_id}")
async def delete_team(
    team_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a team before the draft (owner or commissioner)."""
    try:
        await team_service.delete_team(session, team_id, user["id"])
        return {"success": True}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting team: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error deleting team: {str(e)}")


@router.post("/api/teams/{team_id}/contestants")
async def add_contestant_to_team(
    team_id: int,
    payload: RosterChange,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Commissioner roster adjustment: add a contestant to a team."""
    try:
        return await team_service.add_contestant_to_team(
            session, team_id, payload.contestant_id, user["id"]
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error adding contestant to team: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error adding contestant to team: {str(e)}")


@router.delete("/api/teams/{team_id}/contestants/{contestant_id}")
async def remove_contestant_from_team(
    team_id: int,
    contestant_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Commissioner roster adjustment: remove a contestant from a team."""
    try:
        return await team_service.remove_contestant_from_team(
            session, team_id, contestant_id, user["id"]
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error removing contestant from team: {str(e)}")
        raise HTTPException(
            status_code=500, detail=f"Error removing contestant from team: {str(e)}"
        )
