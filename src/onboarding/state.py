"""
Onboarding State Management.

Tracks what the intake conversation has collected so far and what it is
currently waiting for. OnboardingProgress is mutated only by the dialogue;
it is serialized to a record snapshot on every successful extraction.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any
import uuid


# =============================================================================
# Enums
# =============================================================================


class SystemType(Enum):
    """Building-system categories, in the order they are asked about."""
    HEATING = "Heating"
    COOLING = "Cooling"
    WATER = "Water"
    POWER = "Power"
    WASTE = "Waste"
    PLUMBING = "Plumbing"
    ELECTRICAL = "Electrical"
    ROOFING = "Roofing"
    FOUNDATION = "Foundation"
    LANDSCAPING = "Landscaping"
    SECURITY = "Security"
    OTHER = "Other"


# Every house has these; they are recorded without asking.
AUTO_AFFIRMED_SYSTEMS = frozenset({
    SystemType.PLUMBING,
    SystemType.ELECTRICAL,
    SystemType.ROOFING,
    SystemType.FOUNDATION,
})

# Catch-all category, never asked and never recorded by the sequencer.
CATCH_ALL_SYSTEM = SystemType.OTHER

SYSTEM_TYPES: tuple[SystemType, ...] = tuple(SystemType)


class OccupancyFrequency(Enum):
    """How often the owner stays at the house."""
    DAILY = "Daily"
    WEEKLY = "Weekly"
    BIWEEKLY = "Bi-weekly"
    MONTHLY = "Monthly"
    SEASONALLY = "Seasonally"
    RARELY = "Rarely"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class QuestionKind(Enum):
    """What the dialogue is waiting an answer for."""
    LOCATION = "location"
    AGE = "age"
    SYSTEM = "system"
    USAGE_PATTERN = "usage_pattern"
    NONE = "none"                       # Terminal: onboarding complete


# =============================================================================
# Attribute Values
# =============================================================================


@dataclass
class Coordinates:
    latitude: float
    longitude: float


@dataclass
class Location:
    """US-style street address. Coordinates are filled in later by geocoding."""
    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    coordinates: Coordinates | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.street and self.city and self.region)

    def display(self) -> str:
        tail = " ".join(p for p in (self.region, self.postal_code) if p)
        return ", ".join(p for p in (self.street, self.city, tail) if p)


@dataclass
class SystemPresence:
    """A building system known to exist at the property. Identity is system_type."""
    system_type: SystemType
    age_years: int | None = None
    last_serviced_at: datetime | None = None
    notes: str | None = None

    def to_dict(self) -> dict:
        return {
            "type": self.system_type.value,
            "age_years": self.age_years,
            "last_serviced_at": self.last_serviced_at.isoformat() if self.last_serviced_at else None,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SystemPresence":
        serviced = data.get("last_serviced_at")
        return cls(
            system_type=SystemType(data["type"]),
            age_years=data.get("age_years"),
            last_serviced_at=datetime.fromisoformat(serviced) if serviced else None,
            notes=data.get("notes"),
        )


@dataclass
class UsagePattern:
    occupancy_frequency: OccupancyFrequency | None = None
    seasonal: bool = False
    typical_stay_days: int | None = None
    notes: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.occupancy_frequency is not None


# =============================================================================
# Questions
# =============================================================================


@dataclass(frozen=True)
class OnboardingQuestion:
    """
    Tagged variant: Location | Age | System(type) | UsagePattern | None.

    system_type is set only for QuestionKind.SYSTEM.
    """
    kind: QuestionKind
    system_type: SystemType | None = None

    def __post_init__(self):
        if (self.kind == QuestionKind.SYSTEM) != (self.system_type is not None):
            raise ValueError("system_type is required for, and only for, SYSTEM questions")

    @classmethod
    def system(cls, system_type: SystemType) -> "OnboardingQuestion":
        return cls(QuestionKind.SYSTEM, system_type)

    @property
    def is_terminal(self) -> bool:
        return self.kind == QuestionKind.NONE

    def __str__(self) -> str:
        if self.system_type is not None:
            return f"system({self.system_type.value})"
        return self.kind.value


LOCATION_QUESTION = OnboardingQuestion(QuestionKind.LOCATION)
AGE_QUESTION = OnboardingQuestion(QuestionKind.AGE)
USAGE_PATTERN_QUESTION = OnboardingQuestion(QuestionKind.USAGE_PATTERN)
NO_QUESTION = OnboardingQuestion(QuestionKind.NONE)


# =============================================================================
# Progress
# =============================================================================


@dataclass
class OnboardingProgress:
    """
    Attributes collected so far.

    Created at dialogue start, discarded when onboarding completes or
    resets. system_cursor indexes SYSTEM_TYPES and marks the system type
    currently being asked about.
    """
    location: Location | None = None
    age: int | None = None
    systems: dict[SystemType, SystemPresence] = field(default_factory=dict)
    usage_pattern: UsagePattern | None = None
    system_cursor: int = 0
    name: str | None = None

    def add_system(self, presence: SystemPresence) -> None:
        """Insert a system, keeping the first entry per type."""
        self.systems.setdefault(presence.system_type, presence)

    def has_system(self, system_type: SystemType) -> bool:
        return system_type in self.systems

    @property
    def systems_done(self) -> bool:
        return self.system_cursor >= len(SYSTEM_TYPES)

    def to_dict(self) -> dict:
        """Serialize progress to a JSON-safe dict."""
        location = asdict(self.location) if self.location else None
        usage = None
        if self.usage_pattern:
            usage = asdict(self.usage_pattern)
            freq = self.usage_pattern.occupancy_frequency
            usage["occupancy_frequency"] = freq.value if freq else None
        return {
            "name": self.name,
            "location": location,
            "age": self.age,
            "systems": [s.to_dict() for s in self.systems.values()],
            "usage_pattern": usage,
            "system_cursor": self.system_cursor,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingProgress":
        """Deserialize progress from dict."""
        location = None
        if data.get("location"):
            loc = dict(data["location"])
            if loc.get("coordinates"):
                loc["coordinates"] = Coordinates(**loc["coordinates"])
            location = Location(**loc)

        usage = None
        if data.get("usage_pattern"):
            usage_data = dict(data["usage_pattern"])
            freq = usage_data.get("occupancy_frequency")
            usage_data["occupancy_frequency"] = OccupancyFrequency(freq) if freq else None
            usage = UsagePattern(**usage_data)

        progress = cls(
            location=location,
            age=data.get("age"),
            usage_pattern=usage,
            system_cursor=data.get("system_cursor", 0),
            name=data.get("name"),
        )
        for item in data.get("systems", []):
            progress.add_system(SystemPresence.from_dict(item))
        return progress


# =============================================================================
# Transcript
# =============================================================================


@dataclass(frozen=True)
class TranscriptMessage:
    """
    One chat message. Identity is id: the same id from the local buffer
    and from the remote feed is the same logical message.
    """
    role: MessageRole
    text: str
    timestamp: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    record_id: str | None = None
    user_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "record_id": self.record_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "content": self.text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptMessage":
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            id=data["id"],
            role=MessageRole(data["role"]),
            text=data.get("content", ""),
            timestamp=timestamp,
            record_id=data.get("record_id"),
            user_id=data.get("user_id"),
        )
