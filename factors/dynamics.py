"""
factors/dynamics.py - Chaotic and Epidemic Dynamics Stages

Chaos: 24 iterations of the logistic map in its chaotic band, then 80 Euler
steps of the Lorenz system.
Epidemic: 24-step discrete SIR model.
"""

import numpy as np

from bitmix import clamp01, stage_stream

from .constants import (
    LOGISTIC_STEPS,
    LORENZ_BETA,
    LORENZ_DT,
    LORENZ_RHO,
    LORENZ_SIGMA,
    LORENZ_STEPS,
    SIR_STEPS,
    TAG_CHAOS,
    TAG_EPIDEMIC,
    VEC_LEN,
)
from .types import StageContext, StageOutput
from .vectors import resample, stage_output, to_unit


def logistic_orbit(r: float, x0: float, steps: int = LOGISTIC_STEPS):
    x = x0
    orbit = []
    for _ in range(steps):
        x = r * x * (1 - x)
        orbit.append(x)
    return orbit


def lorenz_euler(x: float, y: float, z: float, steps: int = LORENZ_STEPS, dt: float = LORENZ_DT):
    """Explicit Euler integration; returns the (x, y, z) trajectory."""
    traj = []
    for _ in range(steps):
        dx = LORENZ_SIGMA * (y - x)
        dy = x * (LORENZ_RHO - z) - y
        dz = x * y - LORENZ_BETA * z
        x += dx * dt
        y += dy * dt
        z += dz * dt
        traj.append((x, y, z))
    return traj


def chaos_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_CHAOS)

    # r < 4 keeps the orbit inside (0, 1)
    r = 3.57 + 0.43 * rng()
    x0 = 0.01 + 0.98 * ((ctx.seed % 10007) / 10007)
    orbit = logistic_orbit(r, x0)

    traj = np.array(lorenz_euler((rng() - 0.5) * 20, (rng() - 0.5) * 20, 10 + rng() * 20))
    lorenz_x = to_unit(traj[9::10, 0], -25.0, 25.0)

    vec = np.concatenate([np.array(orbit[::3]), lorenz_x])
    scalar = clamp01(0.5 * orbit[-1] + 0.5 * float(to_unit(traj[-1, 2], 0.0, 50.0)))
    return stage_output("chaos", scalar, vec)


def sir_run(beta: float, gamma: float, infected0: float, steps: int = SIR_STEPS):
    s, i, r = 1.0 - infected0, infected0, 0.0
    infected = []
    for _ in range(steps):
        new_inf = beta * s * i
        recovered = gamma * i
        s -= new_inf
        i += new_inf - recovered
        r += recovered
        infected.append(i)
    return infected, s, r


def epidemic_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_EPIDEMIC)

    beta = 0.18 + 0.3 * rng() + 0.1 * ctx.env.humidity
    gamma = 0.06 + 0.1 * rng()
    infected0 = 0.001 + 0.01 * rng()
    infected, _, recovered = sir_run(beta, gamma, infected0)

    peak = max(infected)
    curve = resample(infected, VEC_LEN)
    vec = curve / peak if peak > 0 else curve

    scalar = 0.5 * (1 - recovered) + 0.5 * (1 - peak)
    return stage_output("epidemic", scalar, vec)
