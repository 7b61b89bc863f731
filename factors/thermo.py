"""
factors/thermo.py - Thermal Noise and Chemical Kinetics Stages

Thermal: 12-step Brownian walk whose step size scales with sqrt(T).
Kinetics: Arrhenius rate k = A exp(-Ea / RT) over 16 temperatures around
ambient, read out as log-scaled first-order conversion.
"""

import math

import numpy as np

from bitmix import clamp01, stage_stream

from .constants import (
    GAS_CONSTANT,
    KELVIN,
    REACTION_TIME_S,
    SEA_LEVEL_HPA,
    TAG_KINETICS,
    TAG_THERMAL,
    THERMAL_SIGMA,
    THERMAL_STEPS,
    VEC_LEN,
)
from .types import StageContext, StageOutput
from .vectors import stage_output, to_unit


def thermal_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_THERMAL)

    kelvin = max(1.0, ctx.env.temperature + KELVIN)
    sigma = THERMAL_SIGMA * math.sqrt(kelvin / 300.0)

    x = 0.0
    path = []
    for _ in range(THERMAL_STEPS):
        # Irwin-Hall(3) centred: variance 1/4
        kick = rng() + rng() + rng() - 1.5
        x += kick * sigma * 2
        path.append(x)
    walk = np.array(path)

    stats = np.array([walk.mean(), walk.std(), walk.min(), walk.max()])
    vec = np.concatenate([to_unit(walk, -0.6, 0.6), to_unit(stats, -0.6, 0.6)])

    msd = float(np.mean(walk ** 2))
    scalar = clamp01(0.5 + walk[-1] - msd)
    return stage_output("thermal", scalar, vec)


def arrhenius_rate(prefactor: float, activation_j: float, kelvin):
    """k = A * exp(-Ea / (R * T)); kelvin may be an array."""
    return prefactor * np.exp(-activation_j / (GAS_CONSTANT * np.asarray(kelvin, dtype=np.float64)))


def kinetics_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_KINETICS)
    env = ctx.env

    activation = (40.0 + 40.0 * rng()) * 1000.0  # J/mol
    prefactor = 10.0 ** (7.0 + 3.0 * rng())  # 1/s
    t0 = max(150.0, env.temperature + KELVIN)
    temps = t0 + np.linspace(-15.0, 30.0, VEC_LEN)
    exposure = REACTION_TIME_S * (env.pressure / SEA_LEVEL_HPA)

    k = arrhenius_rate(prefactor, activation, temps)
    # log10(k * t) spans ~1e-12..1e6; map to [0, 1]
    vec = np.clip(0.5 + 0.12 * np.log10(k * exposure + 1e-300), 0.0, 1.0)

    k0 = float(arrhenius_rate(prefactor, activation, t0))
    conversion = 1.0 - math.exp(-k0 * exposure)
    scalar = clamp01(0.5 * conversion + 0.5 * (0.5 + 0.12 * math.log10(k0 * exposure + 1e-300)))
    return stage_output("kinetics", scalar, vec)
