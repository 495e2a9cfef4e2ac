from dataclasses import dataclass
from datetime import datetime, timedelta

from .time_of_day import parse_time_of_day


@dataclass(frozen=True)
class SubmissionWindow:
    # How far before estimated oceanic entry a request may be submitted.
    lower_bound_minutes: int = 15
    upper_bound_minutes: int = 90

    def __post_init__(self):
        if self.lower_bound_minutes < 0 or self.upper_bound_minutes < self.lower_bound_minutes:
            raise ValueError(
                f"Invalid submission window [{self.lower_bound_minutes}, {self.upper_bound_minutes}]"
            )


def _whole_minutes(delta: timedelta) -> int:
    return int(abs(delta.total_seconds()) // 60)


def resolve_entry_instant(requested: str, now: datetime) -> datetime:
    """
    Next occurrence of the HHMM clock value at or after `now`.
    Seconds are carried over from `now` so a request on the exact minute
    boundary measures a whole number of minutes.
    """
    minutes = parse_time_of_day(requested)
    entry = now.replace(hour=minutes // 60, minute=minutes % 60)
    if entry < now:
        entry += timedelta(days=1)
    return entry


def minutes_until_entry(requested: str, now: datetime) -> int:
    return _whole_minutes(resolve_entry_instant(requested, now) - now)


def is_within_window(requested: str, now: datetime, window: SubmissionWindow) -> bool:
    """
    Whether a request for entry at `requested` may be submitted at `now`.

    Primary branch: minutes until entry inside [lower, upper].
    Midnight branch: at least `lower` minutes remain before midnight and the
    entry sits within `upper` minutes of that midnight (either side).
    """
    entry = resolve_entry_instant(requested, now)

    until_entry = _whole_minutes(entry - now)
    if window.lower_bound_minutes <= until_entry <= window.upper_bound_minutes:
        return True

    midnight = datetime.combine(now.date(), datetime.min.time(), tzinfo=now.tzinfo) + timedelta(days=1)
    to_midnight = _whole_minutes(midnight - now)
    entry_to_midnight = _whole_minutes(entry - midnight)

    if to_midnight >= window.lower_bound_minutes and 0 <= entry_to_midnight <= window.upper_bound_minutes:
        return True

    return False
