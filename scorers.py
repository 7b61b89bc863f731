"""
scorers.py - Domain Sub-Scorers

Feature derivation and the five independent scorers: time (five elements),
text, I Ching, numerology and entropy. Each scorer is pure and returns a
float clamped to [0, 1].
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterator, Tuple

from bitmix import MASK32, clamp01, fnv1a32, rotl32
from calendar_pillars import Pillars
from tables import (
    BRANCH_ELEMENT,
    BRANCH_WEIGHT,
    BRIDGE_BOOST,
    ELEMENT_FLOW,
    ELEMENT_ORDER,
    HARMONIOUS_HEXAGRAMS,
    HARMONY_HIGH,
    HARMONY_LOW,
    HARMONY_NEUTRAL,
    HEXAGRAM_FALLBACK,
    HEXAGRAM_NAMES,
    INHARMONIOUS_HEXAGRAMS,
    INQUIRY_TILT,
    LIFE_BOOST,
    NUMEROLOGY_DEFAULT,
    STEM_ELEMENT,
    STEM_WEIGHT,
    TRIGRAMS,
)

__all__ = [
    "MAX_QUESTION_LENGTH",
    "Elements",
    "TextNumbers",
    "Hexagram",
    "Numerology",
    "DomainScores",
    "normalize_question",
    "time_signature",
    "elements_from_pillars",
    "score_time",
    "pseudo_stroke",
    "text_numbers",
    "score_text",
    "hexagram_base",
    "hexagram_name",
    "cast_hexagram",
    "harmony_of",
    "score_iching",
    "digital_root",
    "numerology_for",
    "score_numerology",
    "score_entropy",
]

MAX_QUESTION_LENGTH = 120

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# FEATURE TYPES
# =============================================================================

@dataclass(frozen=True)
class Elements:
    """Normalized five-element energies; always sum to 1."""
    wood: float
    fire: float
    earth: float
    metal: float
    water: float

    def __iter__(self) -> Iterator[Tuple[str, float]]:
        for key in ELEMENT_ORDER:
            yield key, getattr(self, key)

    def to_dict(self) -> Dict[str, float]:
        return dict(self)

    def dominant(self) -> str:
        """Element with the highest energy; earlier in ELEMENT_ORDER wins ties."""
        best = "earth"
        best_val = -1.0
        for key, val in self:
            if val > best_val:
                best_val = val
                best = key
        return best


@dataclass(frozen=True)
class TextNumbers:
    length: int
    unicode_sum: int
    pseudo_strokes: int
    chaos: int


@dataclass(frozen=True)
class Hexagram:
    upper: str
    lower: str
    name: str
    changing_line: int
    upper_index: int = 0
    lower_index: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "upper": self.upper,
            "lower": self.lower,
            "name": self.name,
            "changing_line": self.changing_line,
        }


@dataclass(frozen=True)
class Numerology:
    life: int
    inquiry: int
    bridge: int


@dataclass(frozen=True)
class DomainScores:
    """The five sub-scores, each in [0, 1]."""
    time: float
    text: float
    iching: float
    numerology: float
    entropy: float

    def as_tuple(self) -> Tuple[float, float, float, float, float]:
        return (self.time, self.text, self.iching, self.numerology, self.entropy)

    def to_dict(self) -> Dict[str, float]:
        return {
            "time": self.time,
            "text": self.text,
            "iching": self.iching,
            "numerology": self.numerology,
            "entropy": self.entropy,
        }


# =============================================================================
# INPUT NORMALIZATION AND TIME SIGNATURE
# =============================================================================

def normalize_question(question: str) -> str:
    """Trim, collapse whitespace runs to one space, cap at 120 code points."""
    return _WHITESPACE.sub(" ", question.strip())[:MAX_QUESTION_LENGTH]


def time_signature(moment: datetime) -> int:
    """32-bit signature of the wall-clock fields of moment."""
    y, m, d = moment.year, moment.month, moment.day
    h, mi, s = moment.hour, moment.minute, moment.second
    a = y * 3721 + m * 521 + d * 97 + h * 23 + mi * 7 + s
    return ((a & MASK32) ^ rotl32(m * 131 + d * 17 + h, 9)) & MASK32


# =============================================================================
# TIME SCORE (five elements)
# =============================================================================

def elements_from_pillars(pillars: Pillars) -> Elements:
    """
    Tally stem (1.35) and branch (1.0) occurrences per element, normalized.

    A pillar string with no recognised characters gives a zero total, which
    is treated as 1 so the result is all zeros rather than a division error.
    """
    raw = {key: 0.0 for key in ELEMENT_ORDER}
    for token in pillars.joined():
        stem_el = STEM_ELEMENT.get(token)
        if stem_el:
            raw[stem_el] += STEM_WEIGHT
        branch_el = BRANCH_ELEMENT.get(token)
        if branch_el:
            raw[branch_el] += BRANCH_WEIGHT

    total = sum(raw.values()) or 1.0
    return Elements(**{key: raw[key] / total for key in ELEMENT_ORDER})


def score_time(elements: Elements) -> float:
    """0.62 x balance against a uniform 0.2 split + 0.38 x weighted flow."""
    balance = 1 - sum(abs(val - 0.2) for _, val in elements) / 2
    flow = clamp01(sum(val * ELEMENT_FLOW[key] for key, val in elements))
    return clamp01(balance * 0.62 + flow * 0.38)


# =============================================================================
# TEXT SCORE
# =============================================================================

def pseudo_stroke(code_point: int) -> int:
    """Deterministic stand-in for a stroke count, in [5, 27]."""
    a = ((code_point >> 3) ^ (code_point * 1315423911)) & MASK32
    b = (a ^ (a >> 11) ^ ((a << 7) & MASK32)) & MASK32
    return 5 + (b % 23)


def text_numbers(question: str) -> TextNumbers:
    unicode_sum = 0
    strokes = 0
    chaos = 0
    count = 0
    for ch in question:
        cp = ord(ch)
        unicode_sum = (unicode_sum + cp) & MASK32
        st = pseudo_stroke(cp)
        strokes += st
        chaos = (chaos + (cp ^ st) * 2654435761) & MASK32
        count += 1
    return TextNumbers(
        length=max(1, count),
        unicode_sum=unicode_sum,
        pseudo_strokes=strokes,
        chaos=chaos,
    )


def score_text(nums: TextNumbers) -> float:
    """density 0.44 + focus 0.36 + omen 0.2."""
    density = clamp01(nums.pseudo_strokes / (nums.length * 22))
    focus = clamp01(1 - abs((nums.unicode_sum % 97) / 97 - 0.5) * 1.9)
    omen = clamp01(((nums.chaos ^ (nums.chaos >> 13)) % 1000) / 1000)
    return clamp01(density * 0.44 + focus * 0.36 + omen * 0.2)


# =============================================================================
# I CHING SCORE
# =============================================================================

def hexagram_base(time_seed: int, question_hash: int, entropy: int) -> int:
    return (time_seed + rotl32(question_hash, 5) + rotl32(entropy, 9)) & MASK32


def hexagram_name(upper_index: int, lower_index: int) -> str:
    """Name for trigram indices in 1..8; out-of-range pairs get the fallback."""
    if not (1 <= upper_index <= 8 and 1 <= lower_index <= 8):
        return HEXAGRAM_FALLBACK
    return HEXAGRAM_NAMES[(upper_index - 1) * 8 + (lower_index - 1)]


def cast_hexagram(
    time_seed: int,
    question_hash: int,
    entropy: int,
    rng: Callable[[], float],
) -> Hexagram:
    """
    Cast a hexagram. Consumes exactly one draw from rng (the changing line).
    """
    base = hexagram_base(time_seed, question_hash, entropy)
    upper_index = (base % 8) + 1
    lower_index = (((base >> 3) + (question_hash % 37)) % 8) + 1
    changing_line = 1 + math.floor(rng() * 6)

    return Hexagram(
        upper=TRIGRAMS[upper_index].name,
        lower=TRIGRAMS[lower_index].name,
        name=hexagram_name(upper_index, lower_index),
        changing_line=changing_line,
        upper_index=upper_index,
        lower_index=lower_index,
    )


def harmony_of(name: str) -> float:
    if name in HARMONIOUS_HEXAGRAMS:
        return HARMONY_HIGH
    if name in INHARMONIOUS_HEXAGRAMS:
        return HARMONY_LOW
    return HARMONY_NEUTRAL


def score_iching(hexagram: Hexagram) -> float:
    """0.64 x omen (calmest near line 3.5) + 0.36 x harmony."""
    agitation = clamp01(abs(3.5 - hexagram.changing_line) / 3.5)
    omen = clamp01(1 - agitation * 0.55)
    return clamp01(omen * 0.64 + harmony_of(hexagram.name) * 0.36)


# =============================================================================
# NUMEROLOGY SCORE
# =============================================================================

def _sum_digits(n: int) -> int:
    return sum(int(ch) for ch in str(abs(n)))


def digital_root(n: int) -> int:
    x = abs(n)
    while x >= 10:
        x = _sum_digits(x)
    return x


def numerology_for(moment: datetime, question: str, nickname: str) -> Numerology:
    y, m, d = moment.year, moment.month, moment.day
    life = digital_root(_sum_digits(y) + _sum_digits(m) + _sum_digits(d))
    inquiry = digital_root(_sum_digits(fnv1a32(question)) + _sum_digits(fnv1a32(nickname)))
    bridge = digital_root(life * 7 + inquiry * 3 + ((y + m + d) % 9))
    return Numerology(life=life, inquiry=inquiry, bridge=bridge)


def _lookup(table: Tuple[float, ...], idx: int) -> float:
    return table[idx] if 0 <= idx < len(table) else NUMEROLOGY_DEFAULT


def score_numerology(numerology: Numerology) -> float:
    """0.45 x life + 0.35 x inquiry + 0.2 x bridge table lookups."""
    life = _lookup(LIFE_BOOST, numerology.life)
    inquiry = _lookup(INQUIRY_TILT, numerology.inquiry)
    bridge = _lookup(BRIDGE_BOOST, numerology.bridge)
    return clamp01(life * 0.45 + inquiry * 0.35 + bridge * 0.2)


# =============================================================================
# ENTROPY SCORE
# =============================================================================

def score_entropy(entropy: int) -> float:
    """Tent over entropy mod 100000, peaking at the midpoint, lifted by 0.35."""
    n = ((entropy & MASK32) % 100000) / 100000
    curve = 1 - abs(n - 0.5) * 1.6
    return clamp01(0.35 + curve * 0.65)
