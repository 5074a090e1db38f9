"""Points for a single answer.

A correct answer earns between half and all of the question's base points
depending on speed, then a streak multiplier and any active modifier
multiplier. Incorrect or missing answers earn nothing.
"""

import math


STREAK_TIERS = (
    (5, 2.0),
    (3, 1.5),
    (2, 1.2),
)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def elapsed_fraction(elapsed_ms: float, time_limit_seconds: int) -> float:
    if time_limit_seconds <= 0:
        return 1.0
    fraction = elapsed_ms / (time_limit_seconds * 1000.0)
    return min(1.0, max(0.0, fraction))


def streak_multiplier(streak: int) -> float:
    for threshold, multiplier in STREAK_TIERS:
        if streak >= threshold:
            return multiplier
    return 1.0


def points(is_correct: bool, elapsed: float, base_points: int, streak: int, modifier_multiplier: float = 1) -> int:
    """Score one answer.

    ``streak`` is the player's streak with this answer already counted, so an
    answer that extends a streak to 5 is itself paid at the top tier.
    """
    if not is_correct:
        return 0
    elapsed = min(1.0, max(0.0, elapsed))
    time_bonus = 1.0 - elapsed
    base = round_half_away(base_points * (0.5 + 0.5 * time_bonus))
    return round_half_away(base * streak_multiplier(streak) * modifier_multiplier)
