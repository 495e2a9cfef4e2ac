import re
from datetime import datetime, timedelta
from typing import Callable, List

import numpy as np

from ..errors import ParseError

MINUTES_PER_DAY = 1440

_LABEL_RE = re.compile(r"[0-9]{4}")

# Injected source of "now". Every time-sensitive call takes the instant
# explicitly, this only exists for the outer layers that need to produce one.
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now()


class FixedClock:
    """Clock pinned to one instant; advance() moves it by whole minutes."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant

    def advance(self, minutes: int):
        self.instant = self.instant + timedelta(minutes=minutes)


def is_time_label(value) -> bool:
    """True when value is syntactically a 4-digit HHMM string."""
    return isinstance(value, str) and bool(_LABEL_RE.fullmatch(value))


def parse_time_of_day(label: str) -> int:
    """
    "HHMM" -> minutes after midnight.
    Raises ParseError for anything that is not a real 24h clock value.
    """
    if not is_time_label(label):
        raise ParseError(f"Time of day must be 4 digits (HHMM), got {label!r}")
    hours, minutes = int(label[:2]), int(label[2:])
    if hours > 23 or minutes > 59:
        raise ParseError(f"Time of day out of range: {label!r}")
    return hours * 60 + minutes


def format_time_of_day(minutes: int) -> str:
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}{minutes % 60:02d}"


def signed_delta_minutes(from_label: str, to_label: str) -> int:
    """
    Shortest signed distance on the 24h clock from one label to another,
    in (-720, 720]. Positive means to_label is later.
    """
    delta = (parse_time_of_day(to_label) - parse_time_of_day(from_label)) % MINUTES_PER_DAY
    if delta > MINUTES_PER_DAY // 2:
        delta -= MINUTES_PER_DAY
    return delta


def diff_in_minutes(a: str, b: str) -> int:
    return abs(signed_delta_minutes(a, b))


def generate_time_window(center: str, span: int) -> List[str]:
    """
    Minute-granular labels from center - span to center + span inclusive.

    Every label wraps modulo 1440 so a window crossing midnight still yields
    valid HHMM values. Length is always 2 * span + 1.
    """
    if span < 0:
        raise ValueError(f"span must be >= 0, got {span}")
    c = parse_time_of_day(center)
    offsets = np.arange(-span, span + 1, dtype=np.int64)
    minutes = np.mod(c + offsets, MINUTES_PER_DAY)
    return [format_time_of_day(m) for m in minutes.tolist()]
