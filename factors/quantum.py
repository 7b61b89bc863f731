"""
factors/quantum.py - Path-Interference Stage

Sums 5..12 unit phasors ("paths") at 16 screen positions and reads the
detection probability |psi|^2. Bits of the entropy value flip path phases
by pi.
"""

import math

import numpy as np

from bitmix import clamp01, stage_stream

from .constants import QUANTUM_MAX_PATHS, QUANTUM_MIN_PATHS, TAG_QUANTUM, VEC_LEN
from .types import StageContext, StageOutput
from .vectors import stage_output


def detection_probability(phases, wavenumbers, screen) -> np.ndarray:
    """|sum_j exp(i(phase_j + k_j x))|^2 / n^2 at each screen position x."""
    phases = np.asarray(phases, dtype=np.float64)
    wavenumbers = np.asarray(wavenumbers, dtype=np.float64)
    amp = np.exp(1j * (phases[None, :] + np.outer(screen, wavenumbers))).sum(axis=1)
    return np.abs(amp / phases.size) ** 2


def quantum_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_QUANTUM)

    n_paths = QUANTUM_MIN_PATHS + math.floor(rng() * (QUANTUM_MAX_PATHS - QUANTUM_MIN_PATHS + 1))
    phases = []
    wavenumbers = []
    for j in range(n_paths):
        flip = math.pi if (ctx.entropy >> j) & 1 else 0.0
        phases.append(2 * math.pi * rng() + flip)
        wavenumbers.append(0.5 + 2.5 * rng())

    screen = np.linspace(-1.0, 1.0, VEC_LEN)
    prob = detection_probability(phases, wavenumbers, screen)

    scalar = clamp01(0.5 * float(prob.max()) + 0.5 * math.sqrt(float(prob.mean())))
    return stage_output("quantum", scalar, prob)
