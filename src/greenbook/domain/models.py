from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Echelon(str, Enum):
    TEAM = "Team"
    SQUAD = "Squad"
    PLATOON = "Platoon"
    COMPANY = "Company"
    BATTALION = "Battalion"


_ECHELON_RANKS = {
    Echelon.TEAM.value: 1,
    Echelon.SQUAD.value: 2,
    Echelon.PLATOON.value: 3,
    Echelon.COMPANY.value: 4,
    Echelon.BATTALION.value: 5,
}


def echelon_rank(echelon: Any) -> int:
    """
    Position of an echelon in the chain of command (Team=1 ... Battalion=5).
    Unknown or malformed values rank 0.
    """
    if isinstance(echelon, Enum):
        echelon = echelon.value
    return _ECHELON_RANKS.get(echelon, 0) if isinstance(echelon, str) else 0


class Role(str, Enum):
    SOLDIER = "Soldier"
    TEAM_LEADER = "Team Leader"
    SQUAD_LEADER = "Squad Leader"
    PLATOON_SERGEANT = "Platoon Sergeant"
    PLATOON_LEADER = "Platoon Leader"
    SECTION_SERGEANT = "Section Sergeant"
    FIRST_SERGEANT = "First Sergeant"
    XO = "XO"
    COMMANDER = "Commander"
    ADMIN = "admin"


class AssignmentType(str, Enum):
    PRIMARY = "PRIMARY"
    ATTACHED = "ATTACHED"
    TEMPORARY = "TEMPORARY"
    DUAL_HATTED = "DUAL_HATTED"


def _enum_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value.strip()
    return value


class Unit(BaseModel):
    """
    Organizational unit. `parent_id` is a weak reference; the echelon is kept as
    a raw string so malformed values load and are denied later instead of failing here.
    """
    id: int
    name: str
    parent_id: Optional[int] = None
    echelon: str = Field(..., description="Team, Squad, Platoon, Company or Battalion")
    referral_code: str = ""
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    @field_validator("echelon", mode="before")
    @classmethod
    def normalize_echelon(cls, v: Any) -> Any:
        return _enum_value(v)


class User(BaseModel):
    id: int
    username: str
    name: str = ""
    rank: str = ""
    role: str
    unit_id: int
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        return _enum_value(v)


class UnitAssignment(BaseModel):
    id: int
    user_id: int
    unit_id: int
    assignment_type: AssignmentType = AssignmentType.PRIMARY
    leadership_role: Optional[str] = None
    assigned_by: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.end_date is None


class Event(BaseModel):
    """Training event. Participants are user ids, participating units are unit ids."""
    id: int
    title: str
    unit_id: int
    created_by: int
    step: int = Field(1, ge=1, le=8)
    date: Optional[datetime] = None
    participants: List[int] = Field(default_factory=list)
    participating_units: List[int] = Field(default_factory=list)
    is_deleted: bool = False


class AARItem(BaseModel):
    """A single sustain/improve/action comment. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    author_id: Optional[int] = None
    author_rank: str = ""
    unit_id: Optional[int] = None
    unit_level: str = ""
    created_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)


class AAR(BaseModel):
    id: int
    event_id: int
    unit_id: int
    created_by: int
    sustain_items: List[AARItem] = Field(default_factory=list)
    improve_items: List[AARItem] = Field(default_factory=list)
    action_items: List[AARItem] = Field(default_factory=list)
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None


class Trend(BaseModel):
    category: str
    description: str
    frequency: int
    severity: str


class FrictionPoint(BaseModel):
    category: str
    description: str
    impact: str


class Recommendation(BaseModel):
    category: str
    description: str
    priority: str


class InsightReport(BaseModel):
    """
    Derived trends / friction points / recommendations for a set of AARs.
    Serialized with camelCase keys, the shape a generative analysis service returns.
    """
    model_config = ConfigDict(populate_by_name=True)

    trends: List[Trend] = Field(default_factory=list)
    friction_points: List[FrictionPoint] = Field(default_factory=list, alias="frictionPoints")
    recommendations: List[Recommendation] = Field(default_factory=list)
