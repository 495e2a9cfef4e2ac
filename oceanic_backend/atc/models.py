from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..core_math.conflict_level import ConflictLevel

RVSM_FORBIDDEN_LEVELS = (420, 440)
MAX_FILEABLE_LEVEL = 450


class PerformanceProfile(str, Enum):
    STANDARD = "Standard"
    SUPERSONIC = "Supersonic"


class CandidateSource(str, Enum):
    CLEARED = "Cleared"
    PENDING = "Pending"


def first_token(routeing: Optional[str]) -> Optional[str]:
    if not routeing:
        return None
    parts = routeing.split()
    return parts[0] if parts else None


@dataclass(frozen=True)
class RouteingChoice:
    """
    Track OR random routeing. Both/neither still construct; the validator
    reports them as field errors.
    """
    track_id: Optional[int] = None
    random_routeing: Optional[str] = None

    @property
    def is_track(self) -> bool:
        return self.track_id is not None and not self.random_routeing

    @property
    def is_random(self) -> bool:
        return bool(self.random_routeing) and self.track_id is None

    @property
    def is_exclusive(self) -> bool:
        return self.is_track or self.is_random


@dataclass(frozen=True)
class ClearanceRequest:
    callsign: str
    destination: str
    flight_level: int
    mach: str
    entry_time: str
    routeing: RouteingChoice
    target_authority_id: str
    entry_fix: Optional[str] = None
    tmi: Optional[int] = None
    profile: PerformanceProfile = PerformanceProfile.STANDARD
    max_flight_level: Optional[int] = None
    upper_flight_level: Optional[int] = None

    @property
    def is_supersonic(self) -> bool:
        return self.profile is PerformanceProfile.SUPERSONIC

    def datalink_message(self, track_identifier: Optional[str] = None) -> str:
        """RCL text as it goes out over datalink."""
        ceiling = self.upper_flight_level if self.is_supersonic else self.max_flight_level
        via = f"TRACK {track_identifier}" if track_identifier else (self.routeing.random_routeing or "")
        return (
            f"{self.callsign} REQ CLRNCE {self.destination} VIA {self.entry_fix}/{self.entry_time} "
            f"{via} F{self.flight_level:03d} M{self.mach} MAX F{_fl(ceiling)} TMI {self.tmi or ''}".rstrip()
        )


def _fl(level: Optional[int]) -> str:
    return f"{level:03d}" if level is not None else ""


@dataclass(frozen=True)
class ClearanceCandidate:
    callsign: str
    flight_level: int
    entry_time: str
    source: CandidateSource
    entry_fix: Optional[str] = None


@dataclass(frozen=True)
class AnnotatedCandidate:
    id: int
    callsign: str
    level: int
    time: str
    diff_visual: str
    diff_minutes: int
    source: CandidateSource


@dataclass
class ScanResult:
    # overall_level is None when the cleared lookup was unavailable (unknown).
    overall_level: Optional[ConflictLevel]
    cleared_conflicts: List[AnnotatedCandidate] = field(default_factory=list)
    pending_conflicts: List[AnnotatedCandidate] = field(default_factory=list)
    cleared_available: bool = True
    pending_available: bool = True


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    def for_field(self, name: str) -> List[FieldError]:
        return [e for e in self.errors if e.field == name]

    def as_dict(self) -> dict:
        grouped = {}
        for e in self.errors:
            grouped.setdefault(e.field, []).append(e.message)
        return grouped
