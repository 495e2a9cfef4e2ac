import pytest

from oceanic_backend.core_math.conflict_level import ConflictLevel, determine_conflict_level
from oceanic_backend.core_math.time_diff import format_diff


@pytest.mark.parametrize("diff, expected", [
    (0, ConflictLevel.WARNING),
    (4, ConflictLevel.WARNING),
    (5, ConflictLevel.POTENTIAL),
    (10, ConflictLevel.POTENTIAL),
    (11, ConflictLevel.NONE),
    (45, ConflictLevel.NONE),
])
def test_single_candidate_boundaries(diff, expected):
    assert determine_conflict_level([diff]) == expected


def test_no_candidates_is_none():
    assert determine_conflict_level([]) == ConflictLevel.NONE


def test_last_matching_candidate_wins():
    # fetch order, not severity order
    assert determine_conflict_level([3, 7]) == ConflictLevel.POTENTIAL
    assert determine_conflict_level([7, 3]) == ConflictLevel.WARNING


def test_far_candidate_does_not_reset_earlier_match():
    assert determine_conflict_level([2, 15]) == ConflictLevel.WARNING
    assert determine_conflict_level([8, 30, 40]) == ConflictLevel.POTENTIAL


def test_accepts_generators():
    assert determine_conflict_level(d for d in (12, 9)) == ConflictLevel.POTENTIAL


def test_levels_are_ordered():
    assert ConflictLevel.NONE < ConflictLevel.POTENTIAL < ConflictLevel.WARNING
    assert ConflictLevel.WARNING > ConflictLevel.NONE
    assert max([ConflictLevel.POTENTIAL, ConflictLevel.WARNING, ConflictLevel.NONE]) == ConflictLevel.WARNING


@pytest.mark.parametrize("reference, other, expected", [
    ("1200", "1200", "Same"),
    ("1200", "1201", "Same"),
    ("1201", "1200", "Same"),
    ("1200", "1202", "2 minutes after"),
    ("1200", "1153", "7 minutes before"),
    ("1200", "1301", "1 hour 1 minute after"),
    ("1200", "0848", "3 hours 12 minutes before"),
    ("1200", "1400", "2 hours after"),
    ("2358", "0004", "6 minutes after"),
])
def test_format_diff(reference, other, expected):
    assert format_diff(reference, other) == expected
