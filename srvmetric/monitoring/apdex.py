"""
Two-tier Apdex satisfaction score.

A request is either satisfied (weight 1) or tolerated (weight 0.5). There is
no frustrated tier, so the score of any non-empty interval lies in [0.5, 1].
"""

from typing import Optional

SATISFIED_WEIGHT = 1.0
TOLERATED_WEIGHT = 0.5


def apdex_score(requests: int, tolerated: int) -> Optional[float]:
    """
    Calculate the satisfaction score for one interval.

    Args:
        requests: Completed requests in the interval
        tolerated: How many of them exceeded the satisfied threshold

    Returns:
        Score in [0.5, 1.0], or None when there were no requests

    Raises:
        ValueError: If counts are negative or tolerated > requests
    """
    if requests < 0 or tolerated < 0:
        raise ValueError(
            f"Counts must be >= 0, got requests={requests}, tolerated={tolerated}"
        )
    if tolerated > requests:
        raise ValueError(
            f"tolerated ({tolerated}) cannot exceed requests ({requests})"
        )
    if requests == 0:
        return None

    satisfied = requests - tolerated
    return (satisfied * SATISFIED_WEIGHT + tolerated * TOLERATED_WEIGHT) / requests
