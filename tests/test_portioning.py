"""
Tests for roster portioning
"""

import pytest

from portioning import InvalidPartitionRequest, partition, portion_bounds
from stage_helpers import make_submission


def roster_of(length):
    return [make_submission(i) for i in range(1, length + 1)]


def test_portions_cover_roster_in_order():
    for length in range(1, 21):
        roster = roster_of(length)
        for count in range(1, length + 1):
            portions = partition(roster, count)

            assert len(portions) == count
            assert [s for p in portions for s in p.submissions] == roster
            assert all(p.size > 0 for p in portions)

            base = length // count
            assert [p.size for p in portions[:-1]] == [base] * (count - 1)
            assert portions[-1].size == length - base * (count - 1)
            assert [p.index for p in portions] == list(range(count))


def test_seven_into_three_puts_remainder_last():
    portions = partition(roster_of(7), 3)
    assert [p.size for p in portions] == [2, 2, 3]
    assert [s.submission_id for s in portions[1].submissions] == [3, 4]


def test_portions_reference_same_submissions():
    roster = roster_of(4)
    portions = partition(roster, 2)
    assert portions[0].submissions[0] is roster[0]


@pytest.mark.parametrize("count", [0, -1, 6])
def test_invalid_counts_rejected(count):
    with pytest.raises(InvalidPartitionRequest):
        partition(roster_of(5), count)


def test_empty_roster_rejected():
    with pytest.raises(InvalidPartitionRequest):
        partition([], 1)


def test_partition_request_is_value_error():
    with pytest.raises(ValueError):
        partition(roster_of(2), 3)


def test_portion_bounds_matches_partition():
    assert portion_bounds(7, 3, 0) == (0, 2)
    assert portion_bounds(7, 3, 2) == (4, 7)
    with pytest.raises(InvalidPartitionRequest):
        portion_bounds(7, 3, 3)
