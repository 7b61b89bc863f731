"""
verdict.py - Verdict and Poem Selection

Maps the final score to one of eight verdict phrases and picks a poem from a
pool of verdict, element and base lines.
"""

import math
from typing import Mapping, Optional, Tuple, Union

from bitmix import fnv1a32, make_rng
from config_schema import VerdictThresholds
from scorers import Elements
from tables import (
    BASE_POEMS,
    ELEMENT_ORDER,
    ELEMENT_POEMS,
    POEM_FALLBACK,
    VERDICT_FLAT_WAIT,
    VERDICT_FLAT_WATCH,
    VERDICT_GOOD_ACT,
    VERDICT_GOOD_STEADY,
    VERDICT_GREAT_RIDE,
    VERDICT_GREAT_SWIFT,
    VERDICT_ILL_CAREFUL,
    VERDICT_ILL_STILL,
    VERDICT_POEMS,
)

__all__ = ["pick_verdict", "dominant_element", "poem_pool", "pick_poem"]


def pick_verdict(score: int, thresholds: VerdictThresholds, changing_line: int) -> str:
    """
    Four bands on score / 100, each split by the changing line.

    Band:        >= great_good  >= good  >= flat  below
    Low phrase:  line <= 2      <= 3     <= 3     line >= 5 gets 守静
    """
    s = score / 100
    if s >= thresholds.great_good:
        return VERDICT_GREAT_SWIFT if changing_line <= 2 else VERDICT_GREAT_RIDE
    if s >= thresholds.good:
        return VERDICT_GOOD_ACT if changing_line <= 3 else VERDICT_GOOD_STEADY
    if s >= thresholds.flat:
        return VERDICT_FLAT_WAIT if changing_line <= 3 else VERDICT_FLAT_WATCH
    return VERDICT_ILL_STILL if changing_line >= 5 else VERDICT_ILL_CAREFUL


def dominant_element(elements: Union[Elements, Mapping[str, float]]) -> str:
    """Highest-energy element; ties go to the earlier of wood/fire/earth/metal/water."""
    if isinstance(elements, Elements):
        return elements.dominant()
    best = "earth"
    best_val = -1.0
    for key in ELEMENT_ORDER:
        val = elements.get(key, 0.0)
        if val > best_val:
            best_val = val
            best = key
    return best


def poem_pool(verdict: str, element: str) -> Tuple[str, ...]:
    return VERDICT_POEMS.get(verdict, ()) + ELEMENT_POEMS.get(element, ()) + BASE_POEMS


def pick_poem(
    verdict: str,
    seed: int,
    dominant_element: str,
    hexagram_name: str,
    signature: Optional[str] = None,
) -> str:
    """
    Deterministic pick from poem_pool, seeded by
    seed ^ fnv1a32(verdict + hexagram_name [+ "|" + signature]).
    """
    key = verdict + hexagram_name
    if signature:
        key += "|" + signature
    pick = make_rng(seed ^ fnv1a32(key))
    pool = poem_pool(verdict, dominant_element)
    idx = math.floor(pick() * len(pool))
    return pool[idx] if 0 <= idx < len(pool) else POEM_FALLBACK
