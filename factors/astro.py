"""
factors/astro.py - Tidal and Geomagnetic Stages

Tidal: M2/S2/K1 constituent sinusoids sampled every 1.5 h.
Geomagnetic: dipole field and scalar potential over 16 altitude shells with
a Kp disturbance draw.
"""

import math

import numpy as np

from bitmix import clamp01, stage_stream

from .constants import (
    DIPOLE_MAX_UT,
    EARTH_RADIUS_KM,
    K1_PERIOD_H,
    KP_MAX,
    M2_PERIOD_H,
    S2_PERIOD_H,
    SHELL_STEP_KM,
    TAG_GEOMAGNETIC,
    TAG_TIDAL,
    TIDE_SAMPLE_STEP_H,
    VEC_LEN,
)
from .types import StageContext, StageOutput
from .vectors import stage_output, to_unit


def tidal_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_TIDAL)
    env = ctx.env

    hours = np.arange(VEC_LEN, dtype=np.float64) * TIDE_SAMPLE_STEP_H
    m2 = env.tide * np.cos(2 * math.pi * hours / M2_PERIOD_H + 2 * math.pi * env.lunar_phase)
    s2 = 0.46 * env.tide * np.cos(2 * math.pi * hours / S2_PERIOD_H + 2 * math.pi * env.solar_cycle)
    k1 = 0.29 * np.cos(2 * math.pi * hours / K1_PERIOD_H + 2 * math.pi * rng())
    height = m2 + s2 + k1 + (rng() - 0.5) * 0.1

    tidal_range = float(height.max() - height.min())
    scalar = 0.5 + 0.5 * math.tanh(tidal_range - 1.2)
    return stage_output("tidal", scalar, to_unit(height, -2.0, 2.0))


def geomagnetic_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_GEOMAGNETIC)
    env = ctx.env

    alt_km = env.altitude / 1000.0
    shells = alt_km + np.arange(VEC_LEN, dtype=np.float64) * SHELL_STEP_KM
    ratio = EARTH_RADIUS_KM / (EARTH_RADIUS_KM + shells)
    field = env.geomagnetic * ratio ** 3
    # V ~ cos(colatitude) / r^2, normalized to [-1, 1]
    colatitude = math.pi / 2 - math.radians(env.latitude)
    potential = math.cos(colatitude) * ratio ** 2

    kp = rng() * KP_MAX
    vec = 0.6 * (field / DIPOLE_MAX_UT) + 0.4 * (0.5 + 0.5 * potential)
    vec = vec + (np.array([rng() for _ in range(VEC_LEN)]) - 0.5) * 0.05 * (kp / KP_MAX)

    scalar = clamp01(0.55 * (env.geomagnetic / DIPOLE_MAX_UT) + 0.45 * (1 - kp / KP_MAX))
    return stage_output("geomagnetic", scalar, vec)
