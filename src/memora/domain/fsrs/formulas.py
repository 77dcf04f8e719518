"""
Pure FSRS formulas.

No state and no I/O; every function takes the values it needs and returns a number.
"""

import math

from ..constants import FSRS_DECAY, FSRS_FACTOR, MAX_DIFFICULTY, MIN_DIFFICULTY
from .models import FsrsParams, Outcome


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def power_forgetting_curve(delta_t: float, stability: float) -> float:
    """Recall probability ``delta_t`` days after a review."""
    return (1.0 + FSRS_FACTOR * delta_t / stability) ** FSRS_DECAY


def next_interval(stability: float, target_retention: float) -> float:
    """Days until recall probability drops to ``target_retention``, at least one."""
    return max(1.0, stability / FSRS_FACTOR * (target_retention ** (1.0 / FSRS_DECAY) - 1.0))


def new_difficulty(difficulty: float, grade: float, params: FsrsParams) -> float:
    w = params.w
    new_d = difficulty - w[6] * (grade - 3.0)
    new_d = w[7] * (w[4] - new_d) + new_d
    return min(max(new_d, MIN_DIFFICULTY), MAX_DIFFICULTY)


def new_stability_correct(
    difficulty: float,
    stability: float,
    retention: float,
    outcome: Outcome,
    params: FsrsParams,
) -> float:
    """
    Stability after a successful recall.

    S' = S * (e^w8 * (11 - D) * S^-w9 * (e^(w10 * (1 - R)) - 1) * hard_penalty * easy_bonus + 1)
    """
    w = params.w
    hard_penalty = w[15] if outcome is Outcome.HARD else 1.0
    easy_bonus = w[16] if outcome is Outcome.EASY else 1.0

    return stability * (
        math.exp(w[8])
        * (11.0 - difficulty)
        * stability ** (-w[9])
        * (math.exp(w[10] * (1.0 - retention)) - 1.0)
        * hard_penalty
        * easy_bonus
        + 1.0
    )


def new_stability_incorrect(
    difficulty: float,
    stability: float,
    retention: float,
    params: FsrsParams,
) -> float:
    """
    Stability after a lapse.

    S' = w11 * D^-w12 * ((S + 1)^w13 - 1) * e^(w14 * (1 - R))
    """
    w = params.w
    return (
        w[11]
        * difficulty ** (-w[12])
        * ((stability + 1.0) ** w[13] - 1.0)
        * math.exp(w[14] * (1.0 - retention))
    )


def initial_stability(outcome: Outcome, params: FsrsParams) -> float:
    return params.w[outcome.grade - 1]


def initial_difficulty(outcome: Outcome, params: FsrsParams) -> float:
    # Again: w4 + 2*w5, Hard: w4 + w5, Good: w4, Easy: w4 - w5
    w = params.w
    return w[4] + w[5] * (3 - outcome.grade)
