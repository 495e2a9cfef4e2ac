import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from ..core_math.conflict_level import determine_conflict_level
from ..core_math.time_diff import format_diff
from ..core_math.time_of_day import diff_in_minutes, generate_time_window
from ..errors import DataUnavailable
from ..repository.interfaces import ClearanceRepository
from .models import AnnotatedCandidate, CandidateSource, ClearanceCandidate, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_SPAN_MINUTES = 10


def annotate_candidates(entry_time: str, candidates: Sequence[ClearanceCandidate]) -> List[AnnotatedCandidate]:
    return [
        AnnotatedCandidate(
            id=i,
            callsign=c.callsign,
            level=c.flight_level,
            time=c.entry_time,
            diff_visual=format_diff(entry_time, c.entry_time),
            diff_minutes=diff_in_minutes(entry_time, c.entry_time),
            source=c.source,
        )
        for i, c in enumerate(candidates)
    ]


def build_scan_result(entry_time: str,
                      cleared: Optional[Sequence[ClearanceCandidate]],
                      pending: Optional[Sequence[ClearanceCandidate]]) -> ScanResult:
    """
    Pure half of a scan. None for a candidate list means that lookup was
    unavailable. Only cleared traffic feeds the overall level.
    """
    cleared_conflicts = annotate_candidates(entry_time, cleared or [])
    pending_conflicts = annotate_candidates(entry_time, pending or [])

    overall = None
    if cleared is not None:
        overall = determine_conflict_level(c.diff_minutes for c in cleared_conflicts)

    return ScanResult(
        overall_level=overall,
        cleared_conflicts=cleared_conflicts,
        pending_conflicts=pending_conflicts,
        cleared_available=cleared is not None,
        pending_available=pending is not None,
    )


class ConflictScanner:
    def __init__(self, repository: ClearanceRepository, fetch_timeout_s: float = 2.0):
        self.repository = repository
        self.fetch_timeout_s = fetch_timeout_s

    async def _fetch(self, source: CandidateSource, finder: Callable, args: Tuple) -> List[ClearanceCandidate]:
        try:
            return await asyncio.wait_for(asyncio.to_thread(finder, *args), timeout=self.fetch_timeout_s)
        except asyncio.TimeoutError:
            raise DataUnavailable(source.value, f"no answer within {self.fetch_timeout_s}s") from None
        except Exception as e:
            raise DataUnavailable(source.value, str(e)) from e

    async def scan_at(self, entry_fix: str, flight_level: int, entry_time: str,
                      span_minutes: Optional[int] = None) -> ScanResult:
        span = DEFAULT_SPAN_MINUTES if span_minutes is None else span_minutes
        labels = generate_time_window(entry_time, span)
        args = (entry_fix, flight_level, labels)

        # Cleared and pending lookups are independent; a failure on one side
        # only blanks that side of the result.
        cleared, pending = await asyncio.gather(
            self._fetch(CandidateSource.CLEARED, self.repository.find_cleared, args),
            self._fetch(CandidateSource.PENDING, self.repository.find_pending, args),
            return_exceptions=True,
        )

        if isinstance(cleared, DataUnavailable):
            logger.warning(f"Conflict scan {entry_fix}/{entry_time} F{flight_level:03d}: {cleared}")
            cleared = None
        if isinstance(pending, DataUnavailable):
            logger.warning(f"Conflict scan {entry_fix}/{entry_time} F{flight_level:03d}: {pending}")
            pending = None
        for outcome in (cleared, pending):
            if isinstance(outcome, BaseException):
                raise outcome

        return build_scan_result(entry_time, cleared, pending)

    async def scan(self, request, span_minutes: Optional[int] = None) -> ScanResult:
        return await self.scan_at(request.entry_fix, request.flight_level, request.entry_time, span_minutes)
