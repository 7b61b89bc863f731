"""
fusion.py - Score Fusion

Five domain scores -> weighted linear sum -> logistic sharpening -> factor
gate blend -> 0..100 integer.

    linear   = sum(w_i * s_i), weights normalized to sum 1
    squashed = 1 / (1 + e^(-6.2 (linear - 0.5)))
    base     = clamp01(0.92 squashed + 0.08 linear)
    gate     = clamp01(0.25 + 0.28 radiation + 0.22 entropy_score + 0.14 r)
    combined = base (1 - gate) + factor gate
    score    = round_half_up(clamp01(combined + (jitter - 0.5) 0.06) * 100)
"""

import math
from dataclasses import dataclass
from typing import Dict

from bitmix import clamp01, clamp_int, round_half_up
from config_schema import ScoreWeights
from scorers import DomainScores

__all__ = [
    "Fusion",
    "normalize_weights",
    "fuse",
    "combine_scores",
    "factor_gate",
    "blend_factor",
    "remap_to_100",
    "final_score",
]

SIGMOID_GAIN = 6.2
SQUASHED_SHARE = 0.92
LINEAR_SHARE = 0.08
JITTER_SPAN = 0.06


@dataclass(frozen=True)
class Fusion:
    """Every intermediate of combine_scores, for tracing."""
    weights: Dict[str, float]
    linear: float
    squashed: float
    base: float


def normalize_weights(weights: ScoreWeights) -> Dict[str, float]:
    """
    Divide each weight by the total. A zero total divides by 1, so all-zero
    weights stay all zero instead of raising.
    """
    raw = weights.to_dict()
    total = sum(raw.values()) or 1.0
    return {key: val / total for key, val in raw.items()}


def fuse(scores: DomainScores, weights: ScoreWeights) -> Fusion:
    norm = normalize_weights(weights)
    values = scores.to_dict()
    linear = sum(norm[key] * values[key] for key in norm)
    squashed = 1.0 / (1.0 + math.exp(-SIGMOID_GAIN * (linear - 0.5)))
    base = clamp01(squashed * SQUASHED_SHARE + linear * LINEAR_SHARE)
    return Fusion(weights=norm, linear=linear, squashed=squashed, base=base)


def combine_scores(scores: DomainScores, weights: ScoreWeights) -> float:
    return fuse(scores, weights).base


def factor_gate(radiation: float, entropy_score: float, r: float) -> float:
    return clamp01(0.25 + radiation * 0.28 + entropy_score * 0.22 + r * 0.14)


def blend_factor(base: float, factor: float, gate: float) -> float:
    return base * (1 - gate) + factor * gate


def remap_to_100(combined: float, jitter: float) -> float:
    return clamp01(combined + (jitter - 0.5) * JITTER_SPAN) * 100


def final_score(combined: float, jitter: float) -> int:
    return clamp_int(round_half_up(remap_to_100(combined, jitter)), 0, 100)
