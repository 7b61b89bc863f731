"""
entropy.py - Shannon Entropy and the Entropy Pool

Shannon entropy of count distributions, feature vectors and text, plus the
caller-side EntropyPool that folds pointer-movement samples into the 32-bit
entropy value fed to the engine.
"""

import math
from collections import Counter
from typing import Iterable, Optional, Sequence

import numpy as np

from bitmix import MASK32, fold32

__all__ = [
    "DEFAULT_POOL_SEED",
    "shannon_bits",
    "vector_entropy",
    "text_entropy",
    "EntropyPool",
]

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_POOL_SEED = 0x12345678
MAX_POINTER_SPEED = 4095


# =============================================================================
# CORE FUNCTION 1: shannon_bits
# =============================================================================

def shannon_bits(counts: Iterable[float]) -> float:
    """
    Shannon entropy H = -sum(p * log2(p)) of a count distribution.

    Args:
        counts: Non-negative weights (negatives are treated as 0)

    Returns:
        float: Entropy in bits; 0.0 for an empty or all-zero distribution
    """
    arr = np.clip(np.asarray(list(counts), dtype=np.float64), 0.0, None)
    total = float(arr.sum())
    if total <= 0.0:
        return 0.0
    p = arr[arr > 0] / total
    return float(-(p * np.log2(p)).sum())


# =============================================================================
# CORE FUNCTION 2: vector_entropy
# =============================================================================

def vector_entropy(vec: Sequence[float]) -> float:
    """
    Normalized Shannon entropy of a feature vector, in [0, 1].

    The vector is clamped to non-negative, normalized to a probability
    distribution, and its entropy is divided by log2(len(vec)).

    Edge cases:
        - len <= 1 -> 0.0
        - all zeros -> 0.0
    """
    n = len(vec)
    if n <= 1:
        return 0.0
    h = shannon_bits(vec)
    return min(1.0, max(0.0, h / math.log2(n)))


# =============================================================================
# CORE FUNCTION 3: text_entropy
# =============================================================================

def text_entropy(text: str) -> float:
    """Shannon entropy in bits over the code-point distribution of text."""
    if not text:
        return 0.0
    return shannon_bits(Counter(text).values())


# =============================================================================
# ENTROPY POOL
# =============================================================================

class EntropyPool:
    """
    Accumulates pointer samples into a 32-bit entropy value.

    The first sample folds the position; every later sample folds timing,
    speed and low bits of the displacement. The engine treats the result as
    an opaque seed, so any value (including the untouched default) is valid.
    """

    def __init__(self, seed: int = DEFAULT_POOL_SEED):
        self.seed = seed & MASK32
        self._last_t: Optional[float] = None
        self._last_x = 0
        self._last_y = 0

    @property
    def value(self) -> int:
        return self.seed

    @property
    def primed(self) -> bool:
        return self._last_t is not None

    def feed(self, x: float, y: float, t_ms: float) -> int:
        """
        Fold one pointer sample.

        Args:
            x, y: pointer position in pixels
            t_ms: high-resolution timestamp in milliseconds

        Returns:
            int: the updated seed
        """
        xi = math.floor(x)
        yi = math.floor(y)

        if self._last_t is None:
            self._last_t = t_ms
            self._last_x = xi
            self._last_y = yi
            self.seed = fold32(self.seed, (xi << 16) ^ yi)
            return self.seed

        dt = max(1, math.floor(t_ms - self._last_t))
        dx = xi - self._last_x
        dy = yi - self._last_y
        self._last_t = t_ms
        self._last_x = xi
        self._last_y = yi

        speed = min(MAX_POINTER_SPEED, math.floor(math.sqrt(dx * dx + dy * dy) * 64))
        sample = (
            ((dt & 0xFFF) << 20)
            ^ ((speed & 0xFFF) << 8)
            ^ ((dx & 0xF) << 4)
            ^ (dy & 0xF)
        )
        self.seed = fold32(self.seed, sample)
        return self.seed
