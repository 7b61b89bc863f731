"""
factors/vectors.py - Feature Vector Helpers

numpy helpers shared by all stages: normalization into [0, 1], resampling
to the fixed vector and fingerprint lengths, and the 8-hex stage signature.
"""

from typing import Sequence, Tuple

import numpy as np

from bitmix import fnv1a32, hex8

from .constants import FP_LEN, VEC_LEN
from .types import StageOutput


def squash(x):
    """Logistic 1 / (1 + e^-x); works on scalars and arrays."""
    return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=np.float64)))


def to_unit(values, lo: float, hi: float) -> np.ndarray:
    """Linear map of [lo, hi] onto [0, 1], clipped."""
    arr = np.asarray(values, dtype=np.float64)
    return np.clip((arr - lo) / (hi - lo), 0.0, 1.0)


def resample(values: Sequence[float], n: int = VEC_LEN) -> np.ndarray:
    """
    Linear resampling of values onto n evenly spaced points.

    Empty input gives zeros; a single value is repeated.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return np.zeros(n)
    if arr.size == 1:
        return np.full(n, float(arr[0]))
    src = np.linspace(0.0, 1.0, arr.size)
    dst = np.linspace(0.0, 1.0, n)
    return np.interp(dst, src, arr)


def fingerprint(values: Sequence[float], n: int = FP_LEN) -> Tuple[float, ...]:
    """Chunk means of values (interpolated when shorter than n), clipped to [0, 1]."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size < n:
        arr = resample(arr, n)
    chunks = np.array_split(arr, n)
    return tuple(float(np.clip(c.mean(), 0.0, 1.0)) for c in chunks)


def stage_signature(name: str, scalar: float, vec: Sequence[float]) -> str:
    body = ",".join(f"{v:.6f}" for v in vec)
    return hex8(fnv1a32(f"{name}|{scalar:.6f}|{body}"))


def stage_output(name: str, scalar: float, vec) -> StageOutput:
    """
    Package a stage result: clamp the scalar, resample and clip the vector
    to VEC_LEN, derive fingerprint and signature.
    """
    arr = np.asarray(vec, dtype=np.float64)
    if arr.size != VEC_LEN:
        arr = resample(arr, VEC_LEN)
    arr = np.clip(np.nan_to_num(arr, nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
    s = float(np.clip(np.nan_to_num(scalar, nan=0.0), 0.0, 1.0))
    values = tuple(float(v) for v in arr)
    return StageOutput(
        name=name,
        scalar=s,
        vec=values,
        fp=fingerprint(values),
        sig=stage_signature(name, s, values),
    )
