"""
Pydantic models for settings and API request validation.
"""

from datetime import datetime
from typing import Optional, List, Literal, Dict, Any
from pydantic import BaseModel, Field, ConfigDict, model_validator

from bachelor_league.utils.constants import (
    SCORING_CATEGORIES,
    DEFAULT_MAX_TEAMS,
    DEFAULT_CONTESTANT_DRAFT_LIMIT,
    MIN_TEAMS,
    MAX_TEAMS,
    MIN_DRAFT_LIMIT,
    MAX_DRAFT_LIMIT,
    DEFAULT_PICK_TIME_LIMIT,
    MIN_PICK_TIME_LIMIT,
    MAX_PICK_TIME_LIMIT,
    MIN_RULE_POINTS,
    MAX_RULE_POINTS,
)

DraftFormatLiteral = Literal["snake", "linear"]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class ScoringRule(BaseModel):
    """A point value the league awards for one action type."""

    action_type: str = Field(min_length=1, max_length=50)
    points: int = Field(ge=MIN_RULE_POINTS, le=MAX_RULE_POINTS)
    description: str = ""
    category: Optional[Literal["positive", "negative"]] = None

    @model_validator(mode="after")
    def fill_category(self):
        """Derive the category from the sign of points when omitted."""
        if self.category is None:
            self.category = "negative" if self.points < 0 else "positive"
        return self


def default_scoring_rules() -> List[ScoringRule]:
    """Build the default rule list from the show's category table."""
    return [
        ScoringRule(action_type=action_type, points=points, description=description)
        for action_type, points, description in SCORING_CATEGORIES
    ]


class NotificationSettings(BaseModel):
    """Per-league notification toggles."""

    scoring_updates: bool = True
    draft_notifications: bool = True
    standings_changes: bool = True
    episode_reminders: bool = True


class LeagueSettings(BaseModel):
    """Typed league configuration, stored as JSON on the league row."""

    max_teams: int = Field(default=DEFAULT_MAX_TEAMS, ge=MIN_TEAMS, le=MAX_TEAMS)
    contestant_draft_limit: int = Field(
        default=DEFAULT_CONTESTANT_DRAFT_LIMIT, ge=MIN_DRAFT_LIMIT, le=MAX_DRAFT_LIMIT
    )
    draft_format: DraftFormatLiteral = "snake"
    scoring_rules: List[ScoringRule] = Field(default_factory=default_scoring_rules)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)

    @model_validator(mode="after")
    def check_unique_action_types(self):
        """Each action type may appear only once in the rule list."""
        seen = set()
        for rule in self.scoring_rules:
            if rule.action_type in seen:
                raise ValueError(f"Duplicate scoring rule for action type '{rule.action_type}'")
            seen.add(rule.action_type)
        return self

    def rule_for(self, action_type: str) -> Optional[ScoringRule]:
        for rule in self.scoring_rules:
            if rule.action_type == action_type:
                return rule
        return None


class DraftSettings(BaseModel):
    """Draft timing and ordering configuration."""

    pick_time_limit: int = Field(
        default=DEFAULT_PICK_TIME_LIMIT, ge=MIN_PICK_TIME_LIMIT, le=MAX_PICK_TIME_LIMIT
    )
    draft_format: DraftFormatLiteral = "snake"
    auto_pick_enabled: bool = False


# ---------------------------------------------------------------------------
# League requests
# ---------------------------------------------------------------------------


class LeagueCreate(BaseModel):
    """Request to create a league."""

    name: str
    season: str
    settings: Optional[Dict[str, Any]] = None


class LeagueStatusUpdate(BaseModel):
    """Request to move a league to another status."""

    status: str


class JoinLeagueRequest(BaseModel):
    """Request to join a league by its code."""

    league_code: str
    team_name: str


# ---------------------------------------------------------------------------
# Team requests
# ---------------------------------------------------------------------------


class TeamCreate(BaseModel):
    """Request to create a team in a league."""

    name: str


class TeamUpdate(BaseModel):
    """Request to rename a team."""

    name: str


class RosterChange(BaseModel):
    """Commissioner roster adjustment."""

    contestant_id: int


# ---------------------------------------------------------------------------
# Contestant requests
# ---------------------------------------------------------------------------


class ContestantCreate(BaseModel):
    """Request to add a contestant to a league."""

    name: str
    age: Optional[int] = None
    hometown: Optional[str] = None
    occupation: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None


class ContestantUpdate(BaseModel):
    """Partial contestant update. Only provided fields change."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    age: Optional[int] = None
    hometown: Optional[str] = None
    occupation: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None


class BulkContestantCreate(BaseModel):
    """Request to add many contestants. Items are validated one by one."""

    contestants: List[Dict[str, Any]]


class EliminateRequest(BaseModel):
    """Request to eliminate a contestant."""

    episode_number: Optional[int] = None


# ---------------------------------------------------------------------------
# Episode requests
# ---------------------------------------------------------------------------


class EpisodeCreate(BaseModel):
    """Request to create an episode."""

    episode_number: Optional[int] = Field(default=None, ge=1)
    air_date: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Draft requests
# ---------------------------------------------------------------------------


class DraftCreate(BaseModel):
    """Request to open a draft lobby."""

    settings: Optional[Dict[str, Any]] = None


class StartDraftRequest(BaseModel):
    """Request to start a draft."""

    randomize: bool = True


class MakePickRequest(BaseModel):
    """Request to draft a contestant onto a team."""

    team_id: int
    contestant_id: int


# ---------------------------------------------------------------------------
# Scoring requests
# ---------------------------------------------------------------------------


class ScoreActionRequest(BaseModel):
    """Request to record a scoring action."""

    contestant_id: int
    action_type: str
    points: Optional[int] = None
    description: Optional[str] = None


class BulkScoreRequest(BaseModel):
    """Request to record several scoring actions."""

    actions: List[ScoreActionRequest]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
