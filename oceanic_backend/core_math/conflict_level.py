from enum import Enum
from typing import Iterable

import numpy as np

WARNING_BELOW_MINUTES = 5
POTENTIAL_UP_TO_MINUTES = 10


class ConflictLevel(str, Enum):
    NONE = "None"
    POTENTIAL = "Potential"
    WARNING = "Warning"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other):
        if not isinstance(other, ConflictLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, ConflictLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, ConflictLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, ConflictLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANK = {ConflictLevel.NONE: 0, ConflictLevel.POTENTIAL: 1, ConflictLevel.WARNING: 2}


def classify_diff(diff_minutes: float) -> ConflictLevel:
    if diff_minutes < WARNING_BELOW_MINUTES:
        return ConflictLevel.WARNING
    if diff_minutes <= POTENTIAL_UP_TO_MINUTES:
        return ConflictLevel.POTENTIAL
    return ConflictLevel.NONE


def determine_conflict_level(diffs: Iterable[float]) -> ConflictLevel:
    """
    Severity flag for a sequence of minute differences, in fetch order.

    The LAST diff that falls inside the 10 minute band decides the tier, not
    the worst one seen: [3, 7] gives POTENTIAL. Diffs beyond 10 minutes never
    reset an earlier match.
    """
    arr = np.asarray(list(diffs), dtype=float)
    if arr.size == 0:
        return ConflictLevel.NONE

    matches = np.flatnonzero(arr <= POTENTIAL_UP_TO_MINUTES)
    if matches.size == 0:
        return ConflictLevel.NONE
    return classify_diff(float(arr[matches[-1]]))
