"""
SQLAlchemy ORM models for the TeamFinder bowling matchmaking system.
"""

import enum
import uuid
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    CheckConstraint,
    Index,
    JSON,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB, ARRAY
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from teamfinder.database.db import Base
from teamfinder.utils.datetime_utils import utcnow


# JSONB / text[] on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")
StringArray = JSON().with_variant(ARRAY(String), "postgresql")


class Gender(str, enum.Enum):
    """Player gender enum."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class BowlingHand(str, enum.Enum):
    """Bowling hand enum."""

    LEFT = "left"
    RIGHT = "right"


class TeamType(str, enum.Enum):
    """Team format enum."""

    SINGLES = "singles"
    DOUBLES = "doubles"
    TEAM = "team"


class TeamGenderType(str, enum.Enum):
    """Men's, women's or mixed team."""

    MALE = "male"
    FEMALE = "female"
    MIXED = "mixed"


class CompetitionLevel(str, enum.Enum):
    """Competition level enum."""

    RECREATIONAL = "recreational"
    LEAGUE = "league"
    COMPETITIVE = "competitive"
    PROFESSIONAL = "professional"


class TeamRole(str, enum.Enum):
    """Role of a member within a team."""

    CAPTAIN = "captain"
    CO_CAPTAIN = "co_captain"
    MEMBER = "member"
    SUBSTITUTE = "substitute"


class InvitationStatus(str, enum.Enum):
    """Status shared by team invitations and player applications."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class AffiliationType(str, enum.Enum):
    """Affiliation type enum."""

    COLLEGE = "college"
    COMPANY = "company"
    ORGANIZATION = "organization"
    OTHER = "other"


DEFAULT_MAX_ROSTER_SIZE = 5


def _in_check(column: str, enum_cls, name: str) -> CheckConstraint:
    """CHECK constraint restricting a string column to the values of an enum."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return CheckConstraint(f"{column} IN ({values})", name=name)


class User(Base):
    """Users synced from the external identity provider."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id = Column(String, nullable=False, unique=True)  # Identity provider user id
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    player_profile = relationship(
        "PlayerProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    captain_of_teams = relationship(
        "Team", back_populates="captain", cascade="all, delete-orphan"
    )
    team_memberships = relationship(
        "TeamMember", back_populates="user", cascade="all, delete-orphan"
    )
    affiliations = relationship(
        "Affiliation", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_users_external_id", "external_id"),)


class BowlingCenter(Base):
    """Directory of bowling centers."""

    __tablename__ = "bowling_centers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    zip_code = Column(String, nullable=False)
    country = Column(String, nullable=False, default="USA")
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    website = Column(String, nullable=True)
    latitude = Column(Numeric(10, 7), nullable=True)
    longitude = Column(Numeric(10, 7), nullable=True)
    number_of_lanes = Column(String, nullable=True)
    amenities = Column(StringArray, nullable=True)  # e.g. ["pro shop", "bar"]
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    leagues = relationship("League", back_populates="bowling_center", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_bowling_centers_city_state", "city", "state"),)


class League(Base):
    """Bowling league hosted at a bowling center."""

    __tablename__ = "leagues"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    bowling_center_id = Column(
        Uuid, ForeignKey("bowling_centers.id", ondelete="CASCADE"), nullable=False
    )
    competition_level = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    season_start_date = Column(Date, nullable=True)
    season_end_date = Column(Date, nullable=True)
    day_of_week = Column(String, nullable=False)
    start_time = Column(String, nullable=False)
    number_of_weeks = Column(String, nullable=True)
    cost_per_bowler = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    bowling_center = relationship("BowlingCenter", back_populates="leagues")

    __table_args__ = (
        _in_check("competition_level", CompetitionLevel, "ck_leagues_competition_level"),
        Index("idx_leagues_bowling_center", "bowling_center_id"),
    )


class PlayerProfile(Base):
    """Bowling-specific information for a user.

    The USBC member id is the primary verification credential and is unique
    across all profiles.
    """

    __tablename__ = "player_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # USBC verification
    usbc_member_id = Column(String, nullable=False, unique=True)
    usbc_verified = Column(Boolean, default=False, nullable=False)
    usbc_verified_at = Column(DateTime(timezone=True), nullable=True)

    # Demographics
    gender = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)
    phone = Column(String, nullable=True)

    # Bowling information
    bowling_hand = Column(String, nullable=False)
    home_bowling_center_id = Column(Uuid, ForeignKey("bowling_centers.id"), nullable=True)

    # Statistics
    current_average = Column(Integer, nullable=True)  # 0-300 by convention
    high_game = Column(Integer, nullable=True)
    high_series = Column(Integer, nullable=True)
    years_experience = Column(Integer, nullable=True)

    # Availability and preferences
    availability = Column(JSONType, nullable=True)  # {"monday": ["evening"], ...}
    preferred_team_types = Column(StringArray, nullable=True)
    preferred_team_gender_types = Column(StringArray, nullable=True)
    preferred_competition_level = Column(String, nullable=True)

    # Matchmaking status
    looking_for_team = Column(Boolean, default=False, nullable=False)
    open_to_substitute = Column(Boolean, default=False, nullable=False)

    # Profile content
    bio = Column(Text, nullable=True)
    achievements = Column(StringArray, nullable=True)

    profile_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    user = relationship("User", back_populates="player_profile")
    home_bowling_center = relationship("BowlingCenter")

    __table_args__ = (
        _in_check("gender", Gender, "ck_player_profiles_gender"),
        _in_check("bowling_hand", BowlingHand, "ck_player_profiles_bowling_hand"),
        Index("idx_player_profiles_looking", "looking_for_team"),
    )


class Team(Base):
    """Bowling teams, owned by a captain."""

    __tablename__ = "teams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    captain_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Classification
    team_type = Column(String, nullable=False)
    gender_type = Column(String, nullable=False)
    competition_level = Column(String, nullable=False)

    # Location and schedule
    home_bowling_center_id = Column(Uuid, ForeignKey("bowling_centers.id"), nullable=True)
    bowling_schedule = Column(JSONType, nullable=True)  # {"dayOfWeek", "startTime", "leagueName"}

    # Statistics
    team_average = Column(Integer, nullable=True)
    current_standing = Column(String, nullable=True)
    seasons_active = Column(Integer, default=0)

    # Roster
    max_roster_size = Column(Integer, default=DEFAULT_MAX_ROSTER_SIZE, nullable=False)
    current_roster_size = Column(Integer, default=1, nullable=False)

    # Recruitment
    looking_for_players = Column(Boolean, default=False, nullable=False)
    open_positions = Column(Integer, default=0, nullable=False)
    recruitment_requirements = Column(JSONType, nullable=True)

    # Profile
    description = Column(Text, nullable=True)
    logo_url = Column(String, nullable=True)
    achievements = Column(StringArray, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    captain = relationship("User", back_populates="captain_of_teams")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (
        _in_check("team_type", TeamType, "ck_teams_team_type"),
        _in_check("gender_type", TeamGenderType, "ck_teams_gender_type"),
        _in_check("competition_level", CompetitionLevel, "ck_teams_competition_level"),
        CheckConstraint(
            "current_roster_size <= max_roster_size", name="ck_teams_roster_capacity"
        ),
        Index("idx_teams_captain", "captain_id"),
        Index("idx_teams_recruiting", "looking_for_players", "is_active"),
    )


class TeamMember(Base):
    """Membership of a user in a team, with a role."""

    __tablename__ = "team_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False, default=TeamRole.MEMBER.value)
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    left_at = Column(DateTime(timezone=True), nullable=True)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_memberships")

    __table_args__ = (
        _in_check("role", TeamRole, "ck_team_members_role"),
        # A user may rejoin after leaving, so only active rows are unique
        Index(
            "uq_team_members_active",
            "team_id",
            "user_id",
            unique=True,
            postgresql_where=left_at.is_(None),
            sqlite_where=left_at.is_(None),
        ),
        Index("idx_team_members_user", "user_id"),
    )


class Affiliation(Base):
    """User affiliations such as colleges, companies and organizations."""

    __tablename__ = "affiliations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False, default=AffiliationType.OTHER.value)
    name = Column(String, nullable=False)
    role = Column(String, nullable=True)  # e.g. "Student", "Employee"
    start_year = Column(String, nullable=True)
    end_year = Column(String, nullable=True)  # e.g. "2019" or "Present"
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    user = relationship("User", back_populates="affiliations")

    __table_args__ = (
        _in_check("type", AffiliationType, "ck_affiliations_type"),
        Index("idx_affiliations_user_created", "user_id", "created_at"),
    )


class TeamInvitation(Base):
    """A team inviting a player to join."""

    __tablename__ = "team_invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    invited_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invited_by_user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String, nullable=False, default=InvitationStatus.PENDING.value)
    message = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    team = relationship("Team")
    invited_user = relationship("User", foreign_keys=[invited_user_id])
    invited_by = relationship("User", foreign_keys=[invited_by_user_id])

    __table_args__ = (
        _in_check("status", InvitationStatus, "ck_team_invitations_status"),
        Index("idx_team_invitations_invited_status", "invited_user_id", "status"),
    )


class PlayerApplication(Base):
    """A player applying to join a team."""

    __tablename__ = "player_applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id = Column(Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    applicant_user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String, nullable=False, default=InvitationStatus.PENDING.value)
    message = Column(Text, nullable=True)
    cover_letter = Column(Text, nullable=True)
    reviewed_by_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    team = relationship("Team")
    applicant = relationship("User", foreign_keys=[applicant_user_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_user_id])

    __table_args__ = (
        _in_check("status", InvitationStatus, "ck_player_applications_status"),
        Index("idx_player_applications_team_status", "team_id", "status"),
    )


class Message(Base):
    """Direct messages between users."""

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipient_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    subject = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    parent_message_id = Column(Uuid, ForeignKey("messages.id"), nullable=True)  # Threading
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
    parent = relationship("Message", remote_side=[id])

    __table_args__ = (
        Index("idx_messages_recipient_read", "recipient_id", "is_read"),
    )
