"""Degree-of-success resolution for skill checks.

A check total is compared to the DC first; a natural 20 or natural 1 on the
d20 then shifts the result one step up or down.
"""

from .models import DegreeOfSuccess

CRITICAL_MARGIN = 10
NATURAL_TWENTY = 20
NATURAL_ONE = 1


def degree_from_difference(diff: int) -> DegreeOfSuccess:
    """Map ``total - dc`` to a degree, ignoring the die face."""
    if diff >= CRITICAL_MARGIN:
        return DegreeOfSuccess.CRITICAL_SUCCESS
    if diff >= 0:
        return DegreeOfSuccess.SUCCESS
    if diff > -CRITICAL_MARGIN:
        return DegreeOfSuccess.FAILURE
    return DegreeOfSuccess.CRITICAL_FAILURE


def adjust_for_natural_die(degree: DegreeOfSuccess, natural_die: int | None) -> DegreeOfSuccess:
    """Shift a degree one step for a natural 20 or natural 1."""
    rank = degree.rank
    if natural_die == NATURAL_TWENTY:
        rank = min(rank + 1, DegreeOfSuccess.CRITICAL_SUCCESS.rank)
    elif natural_die == NATURAL_ONE:
        rank = max(rank - 1, DegreeOfSuccess.CRITICAL_FAILURE.rank)
    return DegreeOfSuccess.from_rank(rank)


def resolve_degree(total: int, dc: int, natural_die: int | None = None) -> DegreeOfSuccess:
    """Resolve a check total against a DC.

    Args:
        total: Check total (die + modifiers).
        dc: Difficulty class.
        natural_die: Face shown on the d20, if known.

    Returns:
        The degree of success after the natural-die adjustment.
    """
    return adjust_for_natural_die(degree_from_difference(total - dc), natural_die)
