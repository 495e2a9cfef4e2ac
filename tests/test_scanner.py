import asyncio
import time

import pytest

from oceanic_backend.atc.models import CandidateSource, ClearanceCandidate, ClearanceRequest, RouteingChoice
from oceanic_backend.atc.scanner import ConflictScanner, build_scan_result
from oceanic_backend.core_math.conflict_level import ConflictLevel


def cleared(callsign, entry_time, level=350):
    return ClearanceCandidate(callsign, level, entry_time, CandidateSource.CLEARED, "MALOT")


def pending(callsign, entry_time, level=350):
    return ClearanceCandidate(callsign, level, entry_time, CandidateSource.PENDING, "MALOT")


class StubRepository:
    # Records the window it was asked about and returns canned candidates
    def __init__(self, cleared=(), pending=(), fail=None, slow=None, delay_s=0.5):
        self.cleared = list(cleared)
        self.pending = list(pending)
        self.fail = fail
        self.slow = slow
        self.delay_s = delay_s
        self.calls = []

    def _answer(self, kind, entry_fix, flight_level, time_labels, items):
        self.calls.append((kind, entry_fix, flight_level, list(time_labels)))
        if self.fail == kind:
            raise ConnectionError(f"{kind} store offline")
        if self.slow == kind:
            time.sleep(self.delay_s)
        return items

    def find_cleared(self, entry_fix, flight_level, time_labels):
        return self._answer("cleared", entry_fix, flight_level, time_labels, self.cleared)

    def find_pending(self, entry_fix, flight_level, time_labels):
        return self._answer("pending", entry_fix, flight_level, time_labels, self.pending)


def make_request(entry_time="1200"):
    return ClearanceRequest(
        callsign="DLH400",
        destination="KJFK",
        flight_level=350,
        max_flight_level=370,
        mach="085",
        entry_fix="MALOT",
        entry_time=entry_time,
        tmi=100,
        routeing=RouteingChoice(track_id=1),
        target_authority_id="EGGX",
    )


def test_scan_queries_both_sources_with_the_label_window():
    repo = StubRepository()
    asyncio.run(ConflictScanner(repo).scan(make_request("1200"), 10))

    kinds = sorted(c[0] for c in repo.calls)
    assert kinds == ["cleared", "pending"]
    for _, fix, level, labels in repo.calls:
        assert fix == "MALOT"
        assert level == 350
        assert len(labels) == 21
        assert labels[0] == "1150" and labels[-1] == "1210"


def test_default_span_is_ten_minutes():
    repo = StubRepository()
    asyncio.run(ConflictScanner(repo).scan(make_request("1200")))
    assert all(len(c[3]) == 21 for c in repo.calls)


def test_scan_annotates_and_classifies_cleared_traffic():
    repo = StubRepository(cleared=[cleared("BAW1", "1203"), cleared("AAL2", "1208")])
    result = asyncio.run(ConflictScanner(repo).scan(make_request("1200")))

    assert result.overall_level == ConflictLevel.POTENTIAL
    assert [c.diff_minutes for c in result.cleared_conflicts] == [3, 8]
    assert [c.diff_visual for c in result.cleared_conflicts] == ["3 minutes after", "8 minutes after"]
    assert [c.id for c in result.cleared_conflicts] == [0, 1]
    assert result.cleared_available and result.pending_available


def test_pending_traffic_never_drives_the_level():
    repo = StubRepository(pending=[pending("UAL9", "1201")])
    result = asyncio.run(ConflictScanner(repo).scan(make_request("1200")))

    assert result.overall_level == ConflictLevel.NONE
    [p] = result.pending_conflicts
    assert p.callsign == "UAL9"
    assert p.diff_visual == "Same"
    assert p.source is CandidateSource.PENDING


def test_diff_across_midnight_uses_clock_arithmetic():
    repo = StubRepository(cleared=[cleared("EIN5", "0002")])
    result = asyncio.run(ConflictScanner(repo).scan(make_request("2358")))

    assert result.cleared_conflicts[0].diff_minutes == 4
    assert result.overall_level == ConflictLevel.WARNING


def test_failed_pending_lookup_degrades_that_side_only():
    repo = StubRepository(cleared=[cleared("BAW1", "1202")], fail="pending")
    result = asyncio.run(ConflictScanner(repo).scan(make_request("1200")))

    assert result.overall_level == ConflictLevel.WARNING
    assert result.pending_available is False
    assert result.pending_conflicts == []
    assert result.cleared_available is True


def test_failed_cleared_lookup_leaves_level_unknown():
    repo = StubRepository(pending=[pending("UAL9", "1205")], fail="cleared")
    result = asyncio.run(ConflictScanner(repo).scan(make_request("1200")))

    assert result.overall_level is None
    assert result.cleared_available is False
    assert len(result.pending_conflicts) == 1


def test_slow_lookup_times_out():
    repo = StubRepository(cleared=[cleared("BAW1", "1202")], pending=[pending("UAL9", "1205")],
                          slow="pending", delay_s=0.5)
    result = asyncio.run(ConflictScanner(repo, fetch_timeout_s=0.05).scan(make_request("1200")))

    assert result.pending_available is False
    assert result.cleared_available is True
    assert result.overall_level == ConflictLevel.WARNING


@pytest.mark.parametrize("cleared_list, expected", [
    ([], ConflictLevel.NONE),
    ([cleared("A", "1211")], ConflictLevel.NONE),
    ([cleared("A", "1203"), cleared("B", "1207")], ConflictLevel.POTENTIAL),
    ([cleared("A", "1207"), cleared("B", "1203")], ConflictLevel.WARNING),
])
def test_build_scan_result(cleared_list, expected):
    assert build_scan_result("1200", cleared_list, []).overall_level == expected


def test_build_scan_result_marks_missing_sources():
    result = build_scan_result("1200", None, None)
    assert result.overall_level is None
    assert not result.cleared_available and not result.pending_available
