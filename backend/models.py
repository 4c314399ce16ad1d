"""
models.py: vocabulary, participant/team records and errors for case-competition matching

Every value the matching engine reasons about is one of the closed enumerations
below. The enum values are the canonical survey labels; `from_label` accepts the
label, the member name, or the member itself.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from utils import get_any, split_multi

VALID_TEAM_SIZES = (2, 3, 4)
MAX_CORE_STRENGTHS = 3
MAX_PREFERRED_ROLES = 2
MAX_CASE_PREFERENCES = 3


class MatchingError(Exception):
    """Base class for everything the matching engine raises on purpose."""


class InputError(MatchingError, ValueError):
    """Malformed or out-of-vocabulary input. Raised before any matching happens."""


class InvariantViolation(MatchingError, AssertionError):
    """A team or result broke a hard constraint. Indicates a bug, never recovered silently."""


class _LabelledEnum(str, Enum):

    @classmethod
    def from_label(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            lowered = text.lower()
            for member in cls:
                if lowered == member.value.lower() or lowered == member.name.lower():
                    return member
            # survey exports sometimes carry a plain hyphen instead of the en dash
            for member in cls:
                if lowered == member.value.lower().replace("–", "-"):
                    return member
        raise InputError(f"{value!r} is not a valid {cls.__name__}")

    def __str__(self) -> str:
        return self.value


class AvailabilityLevel(_LabelledEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Availability(_LabelledEnum):
    FULL = "Fully Available (10–15 hrs/week)"
    MODERATE = "Moderately Available (5–10 hrs/week)"
    LIGHT = "Lightly Available (1–4 hrs/week)"
    NOT_AVAILABLE = "Not available now, but interested later"

    @property
    def rank(self) -> int:
        return AVAILABILITY_RANK[self]

    @property
    def level(self) -> AvailabilityLevel:
        return AVAILABILITY_TO_LEVEL[self]


class Experience(_LabelledEnum):
    NONE = "None"
    PARTICIPATED_1_2 = "Participated in 1–2"
    PARTICIPATED_3_PLUS = "Participated in 3+"
    FINALIST_WINNER = "Finalist/Winner in at least one"

    @property
    def rank(self) -> int:
        return EXPERIENCE_RANK[self]


class TeamPreference(_LabelledEnum):
    UG_ONLY = "Undergrads only"
    PG_ONLY = "Postgrads only"
    EITHER = "Either UG or PG"


class EducationLevel(_LabelledEnum):
    UG = "UG"
    PG = "PG"


class Skill(_LabelledEnum):
    RESEARCH = "Research"
    MODELING = "Modeling"
    MARKETS = "Markets"
    DESIGN = "Design"
    PITCHING = "Pitching"
    COORDINATION = "Coordination"
    IDEATION = "Ideation"
    PRODUCT = "Product"
    STORYTELLING = "Storytelling"
    TECHNICAL = "Technical"


class Role(_LabelledEnum):
    TEAM_LEAD = "Team Lead"
    RESEARCHER = "Researcher"
    DATA_ANALYST = "Data Analyst"
    DESIGNER = "Designer"
    PRESENTER = "Presenter"
    COORDINATOR = "Coordinator"
    FLEXIBLE = "Flexible with any role"


class CaseType(_LabelledEnum):
    CONSULTING = "Consulting"
    PRODUCT_TECH = "Product/Tech"
    MARKETING = "Marketing"
    SOCIAL_IMPACT = "Social Impact"
    OPERATIONS = "Operations/Supply Chain"
    FINANCE = "Finance"
    PUBLIC_POLICY = "Public Policy/ESG"


AVAILABILITY_RANK = {
    Availability.FULL: 3,
    Availability.MODERATE: 2,
    Availability.LIGHT: 1,
    Availability.NOT_AVAILABLE: 0,
}

AVAILABILITY_TO_LEVEL = {
    Availability.FULL: AvailabilityLevel.HIGH,
    Availability.MODERATE: AvailabilityLevel.MEDIUM,
    Availability.LIGHT: AvailabilityLevel.LOW,
    Availability.NOT_AVAILABLE: AvailabilityLevel.LOW,
}

# Only HIGH with LOW is incompatible.
AVAILABILITY_COMPATIBILITY = {
    AvailabilityLevel.HIGH: frozenset({AvailabilityLevel.HIGH, AvailabilityLevel.MEDIUM}),
    AvailabilityLevel.MEDIUM: frozenset({AvailabilityLevel.HIGH, AvailabilityLevel.MEDIUM, AvailabilityLevel.LOW}),
    AvailabilityLevel.LOW: frozenset({AvailabilityLevel.MEDIUM, AvailabilityLevel.LOW}),
}

EXPERIENCE_RANK = {
    Experience.NONE: 0,
    Experience.PARTICIPATED_1_2: 1,
    Experience.PARTICIPATED_3_PLUS: 2,
    Experience.FINALIST_WINNER: 3,
}

PG_YEAR_MARKERS = ("PG", "MBA")


def education_level_for(current_year: str) -> EducationLevel:
    text = current_year or ""
    if any(marker in text for marker in PG_YEAR_MARKERS):
        return EducationLevel.PG
    return EducationLevel.UG


def availability_compatible(a: Availability, b: Availability) -> bool:
    return b.level in AVAILABILITY_COMPATIBILITY[a.level]


def _enum_tuple(enum_cls, values: Iterable[Any], limit: int, label: str, pid: str) -> tuple:
    parsed = []
    for v in values:
        member = enum_cls.from_label(v)
        if member not in parsed:
            parsed.append(member)
    if len(parsed) > limit:
        raise InputError(f"participant {pid}: at most {limit} {label} allowed, got {len(parsed)}")
    return tuple(parsed)


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    current_year: str
    preferred_team_size: int
    team_preference: TeamPreference
    availability: Availability
    experience: Experience
    core_strengths: Tuple[Skill, ...] = ()
    preferred_roles: Tuple[Role, ...] = ()
    case_preferences: Tuple[CaseType, ...] = ()
    email: str = ""
    college_name: str = ""
    work_style: str = ""

    def __post_init__(self):
        if not self.id:
            raise InputError("participant id is required")
        if self.preferred_team_size not in VALID_TEAM_SIZES:
            raise InputError(
                f"participant {self.id}: preferred team size must be one of {VALID_TEAM_SIZES}, "
                f"got {self.preferred_team_size!r}"
            )
        # normalise enum fields so callers may pass labels
        object.__setattr__(self, "team_preference", TeamPreference.from_label(self.team_preference))
        object.__setattr__(self, "availability", Availability.from_label(self.availability))
        object.__setattr__(self, "experience", Experience.from_label(self.experience))
        object.__setattr__(self, "core_strengths",
                           _enum_tuple(Skill, self.core_strengths, MAX_CORE_STRENGTHS, "core strengths", self.id))
        object.__setattr__(self, "preferred_roles",
                           _enum_tuple(Role, self.preferred_roles, MAX_PREFERRED_ROLES, "preferred roles", self.id))
        object.__setattr__(self, "case_preferences",
                           _enum_tuple(CaseType, self.case_preferences, MAX_CASE_PREFERENCES, "case preferences", self.id))

    @property
    def education_level(self) -> EducationLevel:
        return education_level_for(self.current_year)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Participant":
        """Build a participant from an already-normalised row (snake_case or camelCase keys)."""
        pid = get_any(record, ["id", "participant_id", "participantid"])
        if pid in (None, ""):
            raise InputError("participant record without an id")
        pid = str(pid)
        size_raw = get_any(record, ["preferred_team_size", "preferredteamsize", "preferredTeamSize", "team_size"])
        try:
            size = int(size_raw)
        except (TypeError, ValueError):
            raise InputError(f"participant {pid}: preferred team size {size_raw!r} is not an integer")
        for key, keys in (
            ("team_preference", ["team_preference", "teampreference", "teamPreference"]),
            ("availability", ["availability"]),
            ("experience", ["experience", "previous_case_comp_experience"]),
        ):
            if get_any(record, keys) is None:
                raise InputError(f"participant {pid}: missing {key}")
        return cls(
            id=pid,
            name=str(get_any(record, ["name", "full_name", "fullname", "fullName"], pid)),
            email=str(get_any(record, ["email"], "")),
            college_name=str(get_any(record, ["college_name", "collegename", "collegeName"], "")),
            current_year=str(get_any(record, ["current_year", "currentyear", "currentYear"], "")),
            work_style=str(get_any(record, ["work_style", "workstyle", "workStyle"], "")),
            preferred_team_size=size,
            team_preference=get_any(record, ["team_preference", "teampreference", "teamPreference"]),
            availability=get_any(record, ["availability"]),
            experience=get_any(record, ["experience", "previous_case_comp_experience"]),
            core_strengths=split_multi(get_any(record, ["core_strengths", "corestrengths", "coreStrengths"], [])),
            preferred_roles=split_multi(get_any(record, ["preferred_roles", "preferredroles", "preferredRoles"], [])),
            case_preferences=split_multi(get_any(record, ["case_preferences", "casepreferences", "casePreferences"], [])),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "college_name": self.college_name,
            "current_year": self.current_year,
            "education_level": self.education_level.value,
            "preferred_team_size": self.preferred_team_size,
            "team_preference": self.team_preference.value,
            "availability": self.availability.value,
            "experience": self.experience.value,
            "core_strengths": [s.value for s in self.core_strengths],
            "preferred_roles": [r.value for r in self.preferred_roles],
            "case_preferences": [c.value for c in self.case_preferences],
        }


@dataclass(frozen=True)
class Team:
    id: str
    members: Tuple[Participant, ...]
    compatibility_score: float
    common_case_types: Tuple[CaseType, ...] = ()
    average_experience: float = 0.0
    preferred_team_size_match: float = 0.0
    category: str = ""

    @property
    def team_size(self) -> int:
        return len(self.members)

    @property
    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def with_id(self, new_id: str) -> "Team":
        return replace(self, id=new_id)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "teamId": self.id,
            "members": self.member_ids,
            "teamSize": self.team_size,
            "compatibilityScore": self.compatibility_score,
        }


@dataclass
class IterationRecord:
    iteration: int
    participants_processed: int
    teams_formed: int
    participants_matched: int
    remaining_unmatched: int
    efficiency: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iteration": self.iteration,
            "participants_processed": self.participants_processed,
            "teams_formed": self.teams_formed,
            "participants_matched": self.participants_matched,
            "remaining_unmatched": self.remaining_unmatched,
            "efficiency": self.efficiency,
        }


@dataclass
class MatchingStatistics:
    total_participants: int
    teams_formed: int
    average_team_size: float
    matching_efficiency: float
    team_size_distribution: Dict[int, int] = field(default_factory=dict)
    case_type_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass
class MatchingResult:
    teams: List[Team]
    unmatched: List[Participant]
    statistics: MatchingStatistics
    iterations: Optional[int] = None
    iteration_history: List[IterationRecord] = field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def matched_count(self) -> int:
        return sum(t.team_size for t in self.teams)
