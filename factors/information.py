"""
factors/information.py - Information and Avalanche Stages

Information: Shannon entropy of the question's byte-nibble histogram and a
Shannon-Hartley capacity estimate for a channel shaped by humidity/pressure.
Avalanche: popcounts of 16 chained mixing rounds plus the single-bit-flip
avalanche ratio of mix32.
"""

import math

import numpy as np

from bitmix import clamp01, mix32, stage_stream
from entropy import text_entropy, vector_entropy

from .constants import SEA_LEVEL_HPA, TAG_AVALANCHE, TAG_INFORMATION, VEC_LEN
from .types import StageContext, StageOutput
from .vectors import stage_output

# bandwidth 4 kHz at 40 dB SNR
MAX_CAPACITY = 4.0 * math.log2(1 + 10 ** 4)


def nibble_histogram(text: str) -> np.ndarray:
    hist = np.zeros(VEC_LEN)
    for b in text.encode("utf-8"):
        hist[b & 0xF] += 1.0
        hist[b >> 4] += 0.5
    return hist


def channel_capacity(bandwidth_khz: float, snr_db: float) -> float:
    """Shannon-Hartley C = B log2(1 + S/N), in kbit/s."""
    return bandwidth_khz * math.log2(1 + 10 ** (snr_db / 10))


def information_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_INFORMATION)
    env = ctx.env

    hist = nibble_histogram(ctx.question)
    peak = hist.max()
    vec = hist / peak if peak > 0 else hist

    snr_db = 10 + 20 * env.humidity + (env.pressure - SEA_LEVEL_HPA) / 10 + (rng() - 0.5) * 4
    bandwidth = 1.0 + 3.0 * rng()
    capacity = clamp01(channel_capacity(bandwidth, snr_db) / MAX_CAPACITY)

    # bits per symbol vs the 7-bit ceiling of a 120-char alphabet
    text_bits = clamp01(text_entropy(ctx.question) / 7.0)
    scalar = 0.4 * vector_entropy(hist) + 0.2 * text_bits + 0.4 * capacity
    return stage_output("information", scalar, vec)


def popcount(x: int) -> int:
    return bin(x).count("1")


def avalanche_stage(ctx: StageContext) -> StageOutput:
    rng = stage_stream(ctx.seed, TAG_AVALANCHE)

    h = mix32(ctx.seed, ctx.question_hash, ctx.time_seed)
    vec = []
    for k in range(VEC_LEN):
        h = mix32(h, ctx.entropy, k)
        vec.append(popcount(h) / 32.0)

    flip_bit = math.floor(rng() * 32)
    a = mix32(ctx.seed, ctx.question_hash, ctx.entropy)
    b = mix32(ctx.seed ^ (1 << flip_bit), ctx.question_hash, ctx.entropy)
    diffusion = popcount(a ^ b) / 32.0

    scalar = 0.5 * diffusion + 0.5 * float(np.mean(vec))
    return stage_output("avalanche", scalar, vec)
