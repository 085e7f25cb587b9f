"""
Input validation helpers shared by the record services.

Every helper raises errors.ValidationError carrying per-field entries.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from bachelor_league.models.schemas import LeagueSettings, DraftSettings
from bachelor_league.services.errors import ValidationError

TEAM_NAME_MAX_LENGTH = 50
TEAM_NAME_FORBIDDEN_CHARS = set("<>\"'&")
LEAGUE_NAME_MAX_LENGTH = 100
SEASON_MAX_LENGTH = 50
CONTESTANT_NAME_MAX_LENGTH = 100
CONTESTANT_MIN_AGE = 18
CONTESTANT_MAX_AGE = 65
CONTESTANT_TEXT_LIMITS = {"hometown": 100, "occupation": 100, "bio": 500}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _from_pydantic(exc: PydanticValidationError, message: str) -> ValidationError:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        errors.append({"field": field, "message": err.get("msg", "Invalid value"), "code": err.get("type", "invalid")})
    return ValidationError(message, errors=errors)


def _parse(model: Type[ModelT], raw: Any, message: str) -> ModelT:
    if raw is None:
        return model()
    if isinstance(raw, model):
        return raw
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise _from_pydantic(e, message) from e


def parse_league_settings(raw: Any) -> LeagueSettings:
    """Validate raw league settings (dict, model, or None for defaults)."""
    return _parse(LeagueSettings, raw, "Invalid league settings")


def parse_draft_settings(raw: Any) -> DraftSettings:
    """Validate raw draft settings (dict, model, or None for defaults)."""
    return _parse(DraftSettings, raw, "Invalid draft settings")


def _required_text(field: str, value: Optional[str], max_length: int, errors: List[Dict]) -> None:
    if value is None or not str(value).strip():
        errors.append({"field": field, "message": f"{field} is required", "code": "required"})
    elif len(str(value).strip()) > max_length:
        errors.append({
            "field": field,
            "message": f"{field} must be at most {max_length} characters",
            "code": "max_length",
        })


def validate_league_fields(name: Optional[str], season: Optional[str]) -> None:
    errors: List[Dict] = []
    _required_text("name", name, LEAGUE_NAME_MAX_LENGTH, errors)
    _required_text("season", season, SEASON_MAX_LENGTH, errors)
    if errors:
        raise ValidationError("Invalid league", errors=errors)


def validate_team_name(name: Optional[str]) -> str:
    """
    Validate a team name and return it stripped.

    Raises:
        ValidationError: empty, longer than 50 chars, or containing <>"'&
    """
    errors: List[Dict] = []
    _required_text("name", name, TEAM_NAME_MAX_LENGTH, errors)
    if not errors and TEAM_NAME_FORBIDDEN_CHARS.intersection(name):
        errors.append({
            "field": "name",
            "message": "Team name contains invalid characters",
            "code": "invalid_characters",
        })
    if errors:
        raise ValidationError("Invalid team name", errors=errors)
    return name.strip()


def validate_contestant_fields(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate contestant fields and return the cleaned values.

    Args:
        data: Field values keyed by column name
        partial: When True only the provided keys are checked (updates)

    Raises:
        ValidationError: One entry per invalid field
    """
    errors: List[Dict] = []
    cleaned: Dict[str, Any] = {}

    if not partial or "name" in data:
        _required_text("name", data.get("name"), CONTESTANT_NAME_MAX_LENGTH, errors)
        if data.get("name"):
            cleaned["name"] = str(data["name"]).strip()

    if data.get("age") is not None:
        age = data["age"]
        if not isinstance(age, int) or isinstance(age, bool) or not CONTESTANT_MIN_AGE <= age <= CONTESTANT_MAX_AGE:
            errors.append({
                "field": "age",
                "message": f"age must be between {CONTESTANT_MIN_AGE} and {CONTESTANT_MAX_AGE}",
                "code": "out_of_range",
            })
        else:
            cleaned["age"] = age
    elif "age" in data:
        cleaned["age"] = None

    for field, limit in CONTESTANT_TEXT_LIMITS.items():
        if field not in data:
            continue
        value = data[field]
        if value is not None and len(str(value)) > limit:
            errors.append({
                "field": field,
                "message": f"{field} must be at most {limit} characters",
                "code": "max_length",
            })
        else:
            cleaned[field] = value

    if "profile_image_url" in data:
        cleaned["profile_image_url"] = data["profile_image_url"]

    if errors:
        raise ValidationError("Invalid contestant", errors=errors)
    return cleaned
