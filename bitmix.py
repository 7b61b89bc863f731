"""
bitmix.py - 32-bit Mixing Primitives and Seeded PRNG

FNV-1a string hashing, rotate-left, avalanche mixing and an xorshift32
generator. Everything here is a pure function of its integer inputs: no
hidden state, no wall clock. All arithmetic wraps modulo 2**32.
"""

import math
from typing import Callable, Iterator

__all__ = [
    "MASK32",
    "u32",
    "fnv1a32",
    "rotl32",
    "avalanche32",
    "mix32",
    "fold32",
    "hex8",
    "make_rng",
    "stage_stream",
    "XorShift32",
    "clamp01",
    "clamp_int",
    "round_half_up",
]

# =============================================================================
# CONSTANTS
# =============================================================================

MASK32 = 0xFFFFFFFF

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193

AVALANCHE_MUL_1 = 0x7FEB352D
AVALANCHE_MUL_2 = 0x846CA68B

# xorshift32 output is scaled just below 1.0 so floor(r * n) < n always
RNG_SCALE = 0.999999999


# =============================================================================
# INTEGER PRIMITIVES
# =============================================================================

def u32(x: int) -> int:
    """Wrap an integer to unsigned 32 bits."""
    return x & MASK32


def fnv1a32(text: str) -> int:
    """
    FNV-1a over the Unicode code points of text.

    Code points, not UTF-16 units or UTF-8 bytes: an astral character
    contributes one step.

    Args:
        text: Input string

    Returns:
        int: 32-bit unsigned hash
    """
    h = FNV_OFFSET_BASIS
    for ch in text:
        h ^= ord(ch)
        h = (h * FNV_PRIME) & MASK32
    return h


def rotl32(x: int, r: int) -> int:
    """32-bit left rotate."""
    x &= MASK32
    r &= 31
    if r == 0:
        return x
    return ((x << r) | (x >> (32 - r))) & MASK32


def avalanche32(x: int) -> int:
    """Two-round multiply-xorshift finalizer (shifts 16/15/16)."""
    x &= MASK32
    x = ((x ^ (x >> 16)) * AVALANCHE_MUL_1) & MASK32
    x = ((x ^ (x >> 15)) * AVALANCHE_MUL_2) & MASK32
    return (x ^ (x >> 16)) & MASK32


def mix32(a: int, b: int, c: int = 0) -> int:
    """
    Combine two or three integers into one well-distributed 32-bit seed.

    Inputs are XOR-folded after rotating b by 11 and c by 7, then passed
    through avalanche32.
    """
    return avalanche32(u32(a) ^ rotl32(b, 11) ^ rotl32(c, 7))


def fold32(seed: int, n: int) -> int:
    """Fold one sample into a running seed: avalanche32(seed ^ n)."""
    return avalanche32(u32(seed) ^ u32(n))


def hex8(x: int) -> str:
    """Render a 32-bit value as 8 lowercase hex digits."""
    return f"{x & MASK32:08x}"


# =============================================================================
# PRNG
# =============================================================================

class XorShift32:
    """
    xorshift32 (13/17/5) producing floats in [0, 1).

    A seed of 0 is a fixed point and yields 0.0 forever; that is accepted
    since every 32-bit entropy value is valid input.
    """

    __slots__ = ("_x",)

    def __init__(self, seed: int):
        self._x = u32(seed)

    def next_u32(self) -> int:
        x = self._x
        x = (x ^ (x << 13)) & MASK32
        x ^= x >> 17
        x = (x ^ (x << 5)) & MASK32
        self._x = x
        return x

    def __call__(self) -> float:
        return (self.next_u32() / MASK32) * RNG_SCALE

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self()

    def randint(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi] inclusive: lo + floor(r * (hi - lo + 1))."""
        return lo + math.floor(self() * (hi - lo + 1))


def make_rng(seed: int) -> Callable[[], float]:
    """Fresh xorshift32 stream for seed. Never share one across concerns."""
    return XorShift32(seed)


def stage_stream(seed: int, tag: int) -> XorShift32:
    """
    Independent stream for one concern, keyed by mixing seed with a tag.

    Changing how many numbers one stage draws never shifts another stage's
    numbers, because each stage owns its stream.
    """
    return XorShift32(mix32(seed, tag))


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def clamp01(n: float) -> float:
    if n < 0:
        return 0.0
    if n > 1:
        return 1.0
    return n


def clamp_int(n: int, lo: int, hi: int) -> int:
    if n < lo:
        return lo
    if n > hi:
        return hi
    return n


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves toward +inf (not banker's rounding)."""
    return math.floor(x + 0.5)
