from dataclasses import dataclass, replace
from typing import Optional

from ..core_math.time_of_day import parse_time_of_day
from ..repository.interfaces import TrackDirectory
from .models import first_token


@dataclass(frozen=True)
class CheckerState:
    """
    What the conflict checker currently looks at for one request, plus the
    values it was opened with. Clearing a field falls back to the original.
    """
    entry_fix: str
    flight_level: int
    entry_time: str
    original_entry_fix: str
    original_flight_level: int
    original_entry_time: str

    @classmethod
    def open(cls, entry_fix: str, flight_level: int, entry_time: str) -> "CheckerState":
        parse_time_of_day(entry_time)
        return cls(entry_fix, flight_level, entry_time, entry_fix, flight_level, entry_time)


def level_changed(state: CheckerState, new_level: Optional[str]) -> CheckerState:
    if not new_level:
        return replace(state, flight_level=state.original_flight_level)
    return replace(state, flight_level=int(new_level))


def time_changed(state: CheckerState, new_time: Optional[str]) -> CheckerState:
    if not new_time:
        return replace(state, entry_time=state.original_entry_time)
    parse_time_of_day(new_time)
    return replace(state, entry_time=new_time)


def track_changed(state: CheckerState, new_track_id: Optional[str], tracks: TrackDirectory) -> CheckerState:
    if not new_track_id:
        return replace(state, entry_fix=state.original_entry_fix)
    return replace(state, entry_fix=tracks.resolve_entry_fix(int(new_track_id)))


def rr_changed(state: CheckerState, new_routeing: Optional[str]) -> CheckerState:
    fix = first_token(new_routeing)
    if fix is None:
        return replace(state, entry_fix=state.original_entry_fix)
    return replace(state, entry_fix=fix)


def apply_event(state: CheckerState, event: str, value: Optional[str], tracks: TrackDirectory) -> CheckerState:
    if event == "levelChanged":
        return level_changed(state, value)
    if event == "timeChanged":
        return time_changed(state, value)
    if event == "trackChanged":
        return track_changed(state, value, tracks)
    if event == "rrChanged":
        return rr_changed(state, value)
    raise ValueError(f"Unknown checker event: {event!r}")
