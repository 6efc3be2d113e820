"""
Pydantic models for API request/response validation.

Request bodies use camelCase keys on the wire (the web client posts form
state as-is), so every model aliases its snake_case fields to camelCase.
Form inputs arrive as strings: numeric fields accept "150" as well as 150,
and blank values normalize to None rather than zero.
"""

import uuid
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

from teamfinder.database.models import (
    AffiliationType,
    BowlingHand,
    CompetitionLevel,
    Gender,
    TeamGenderType,
    TeamType,
)


def _blank_to_none(value: Any) -> Any:
    """Treat missing and whitespace-only form values as absent."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _none_to_false(value: Any) -> Any:
    return False if value is None else value


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _legacy_gender_type(value: Any) -> Any:
    # Older clients posted "other" for mixed teams
    if value == "other":
        return TeamGenderType.MIXED.value
    return value


# --- Reusable field types ---

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
OptionalCount = Annotated[Optional[Annotated[int, Field(ge=0)]], BeforeValidator(_blank_to_none)]
OptionalGameScore = Annotated[
    Optional[Annotated[int, Field(ge=0, le=300)]], BeforeValidator(_blank_to_none)
]
OptionalSeriesScore = Annotated[
    Optional[Annotated[int, Field(ge=0, le=900)]], BeforeValidator(_blank_to_none)
]
Flag = Annotated[bool, BeforeValidator(_none_to_false)]


class CamelModel(BaseModel):
    """Base model with camelCase aliases; snake_case names are accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class ProfilePayload(CamelModel):
    """Onboarding and profile update body (full replace semantics on update)."""

    usbc_member_id: NonEmptyStr
    gender: Gender
    bowling_hand: BowlingHand
    current_average: OptionalGameScore = None
    high_game: OptionalGameScore = None
    high_series: OptionalSeriesScore = None
    years_experience: OptionalCount = None
    preferred_team_types: Annotated[
        List[TeamType], BeforeValidator(_none_to_empty_list)
    ] = Field(default_factory=list)
    preferred_competition_level: Annotated[
        Optional[CompetitionLevel], BeforeValidator(_blank_to_none)
    ] = None
    looking_for_team: Flag = False
    open_to_substitute: Flag = False
    bio: OptionalText = None


class CreateTeamRequest(CamelModel):
    """Team creation body. ``user_id`` must be the caller's own user id."""

    user_id: uuid.UUID
    name: NonEmptyStr
    team_type: TeamType
    gender_type: Annotated[TeamGenderType, BeforeValidator(_legacy_gender_type)]
    competition_level: CompetitionLevel
    description: OptionalText = None
    looking_for_players: Flag = False
    open_positions: OptionalCount = None
    min_average: OptionalGameScore = None
    max_average: OptionalGameScore = None
    additional_notes: OptionalText = None
    max_roster_size: Annotated[
        Optional[Annotated[int, Field(ge=1, le=20)]], BeforeValidator(_blank_to_none)
    ] = None

    @model_validator(mode="after")
    def check_average_range(self):
        if (
            self.min_average is not None
            and self.max_average is not None
            and self.min_average > self.max_average
        ):
            raise ValueError("minAverage cannot be greater than maxAverage")
        return self


class CreateAffiliationRequest(CamelModel):
    """Affiliation creation body."""

    type: Annotated[
        AffiliationType,
        BeforeValidator(lambda v: AffiliationType.OTHER.value if _blank_to_none(v) is None else v),
    ] = AffiliationType.OTHER
    name: NonEmptyStr
    role: OptionalText = None
    start_year: OptionalText = None
    end_year: OptionalText = None


class IdentityWebhookEvent(BaseModel):
    """User sync event pushed by the identity provider."""

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


# --- Responses ---


class UserSummary(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None


class ProfileResponse(CamelModel):
    """Player profile as returned to the owner and to browsers."""

    id: uuid.UUID
    user_id: uuid.UUID
    usbc_member_id: str
    usbc_verified: bool
    usbc_verified_at: Optional[datetime] = None
    gender: str
    date_of_birth: Optional[date] = None
    bowling_hand: str
    home_bowling_center_id: Optional[uuid.UUID] = None
    current_average: Optional[int] = None
    high_game: Optional[int] = None
    high_series: Optional[int] = None
    years_experience: Optional[int] = None
    preferred_team_types: List[str] = Field(default_factory=list)
    preferred_competition_level: Optional[str] = None
    looking_for_team: bool
    open_to_substitute: bool
    bio: Optional[str] = None
    profile_complete: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileEnvelope(CamelModel):
    success: bool = True
    profile: ProfileResponse


class OnboardingStatusResponse(CamelModel):
    profile_complete: bool


class PlayerListItem(ProfileResponse):
    user: UserSummary


class PlayerListResponse(CamelModel):
    players: List[PlayerListItem]


class TeamResponse(CamelModel):
    id: uuid.UUID
    name: str
    captain_id: uuid.UUID
    team_type: str
    gender_type: str
    competition_level: str
    max_roster_size: int
    current_roster_size: int
    looking_for_players: bool
    open_positions: int
    recruitment_requirements: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    captain: Optional[UserSummary] = None


class TeamListResponse(CamelModel):
    teams: List[TeamResponse]


class TeamMemberResponse(CamelModel):
    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class TeamDetailResponse(CamelModel):
    team: TeamResponse
    members: List[TeamMemberResponse]


class CreateTeamResponse(CamelModel):
    success: bool = True
    team_id: uuid.UUID


class AffiliationResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    name: str
    role: Optional[str] = None
    start_year: Optional[str] = None
    end_year: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AffiliationListResponse(CamelModel):
    affiliations: List[AffiliationResponse]


class AffiliationEnvelope(CamelModel):
    affiliation: AffiliationResponse


class SuccessResponse(CamelModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
