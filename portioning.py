"""
Roster portioning for DuckStage

Splits an ordered submission roster into contiguous portions so several
graders (or several sittings) can share one assignment. Every portion but
the last gets len(roster) // count submissions; the last one also takes the
remainder.
"""

from typing import List, Sequence, Tuple

from submission_models import Portion, Submission


class InvalidPartitionRequest(ValueError):
    """Raised when a roster cannot be split into the requested portions"""


def portion_bounds(total: int, portion_count: int, index: int) -> Tuple[int, int]:
    """
    Get the [start, end) slice of one portion

    Args:
        total: Number of submissions in the roster
        portion_count: Number of portions requested
        index: 0-based portion index

    Returns:
        (start, end) indexes into the roster
    """
    if portion_count <= 0:
        raise InvalidPartitionRequest(f"Portion count must be positive, got {portion_count}")
    if portion_count > total:
        raise InvalidPartitionRequest(
            f"Cannot split {total} submission(s) into {portion_count} non-empty portions"
        )
    if not 0 <= index < portion_count:
        raise InvalidPartitionRequest(
            f"Portion {index + 1} does not exist (choose 1-{portion_count})"
        )

    base = total // portion_count
    start = base * index
    if index < portion_count - 1:
        end = start + base
    else:
        end = total
    return start, end


def partition(roster: Sequence[Submission], portion_count: int) -> List[Portion]:
    """Split the roster into portion_count contiguous, non-empty portions"""
    total = len(roster)
    # validates the count even when the loop below would not run
    portion_bounds(total, portion_count, 0)

    portions = []
    for index in range(portion_count):
        start, end = portion_bounds(total, portion_count, index)
        portions.append(Portion(index=index, submissions=list(roster[start:end])))
    return portions
