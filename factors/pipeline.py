"""
factors/pipeline.py - Multidisciplinary Factor Pipeline

Runs the nine stages in fixed order, blending each stage's vector into a
running 16-vector, accumulating scalars and chaining stage signatures.

Aggregate:
    score01 = clamp01(mean_scalar * 0.58 + vector_entropy(vec) * 0.42)
    fp = (score01, vec_entropy, time, text, iching, numerology, entropy, radiation)
"""

from typing import Callable, Tuple

import numpy as np

from bitmix import clamp01, fnv1a32, hex8, mix32, stage_stream
from entropy import vector_entropy
from scorers import DomainScores
from tracelog import NullRecorder, Phase

from .astro import geomagnetic_stage, tidal_stage
from .constants import (
    BLEND_BASE,
    BLEND_JITTER,
    BLEND_RADIATION,
    ENTROPY_SHARE,
    N_STAGES,
    SCALAR_SHARE,
    TAG_BLEND,
    VEC_LEN,
)
from .dynamics import chaos_stage, epidemic_stage
from .information import avalanche_stage, information_stage
from .quantum import quantum_stage
from .thermo import kinetics_stage, thermal_stage
from .types import FactorReport, StageContext, StageOutput

StageFn = Callable[[StageContext], StageOutput]

# (name, trace label, stage function), in execution order
STAGES: Tuple[Tuple[str, str, StageFn], ...] = (
    ("tidal", "潮汐共振", tidal_stage),
    ("geomagnetic", "地磁势场", geomagnetic_stage),
    ("thermal", "热噪布朗", thermal_stage),
    ("kinetics", "阿伦尼乌斯", kinetics_stage),
    ("information", "信息容量", information_stage),
    ("chaos", "混沌吸引子", chaos_stage),
    ("quantum", "量子干涉", quantum_stage),
    ("epidemic", "传播动力", epidemic_stage),
    ("avalanche", "雪崩扩散", avalanche_stage),
)

GROUP_LABEL = "多学科因子"
AGGREGATE_LABEL = "因子聚合"


def initial_vector(seed: int) -> np.ndarray:
    return np.array([(mix32(seed, k) & 0xFFFF) / 0xFFFF for k in range(VEC_LEN)])


def blend_weight(radiation: float, r: float) -> float:
    return clamp01(BLEND_BASE + radiation * BLEND_RADIATION + (r - 0.5) * BLEND_JITTER)


def run_factor_pipeline(
    ctx: StageContext,
    scores: DomainScores,
    recorder=None,
) -> FactorReport:
    """
    Run all stages and aggregate.

    Args:
        ctx: shared stage context (seed, hashes, question, environment)
        scores: the five domain scores, folded into the fingerprint
        recorder: TraceRecorder or NullRecorder; one event per stage

    Returns:
        FactorReport
    """
    rec = recorder if recorder is not None else NullRecorder()
    blend = stage_stream(ctx.seed, TAG_BLEND)

    vec = initial_vector(ctx.seed)
    sum_scalar = 0.0
    sig_acc = ctx.seed
    outputs = []

    with rec.group(Phase.OCCULT, GROUP_LABEL, {"stages": N_STAGES}):
        for index, (_, label, stage) in enumerate(STAGES):
            out = stage(ctx)
            w = blend_weight(ctx.env.radiation, blend())
            vec = vec * (1 - w) + np.asarray(out.vec) * w
            sum_scalar += out.scalar
            sig_acc = mix32(sig_acc, int(out.sig, 16), index)
            outputs.append(out)
            rec.emit(Phase.OCCULT, label, {
                "scalar": out.scalar,
                "w": w,
                "sig": out.sig,
            }, fp=out.fp)

        vec_h = vector_entropy(vec)
        mean_scalar = sum_scalar / N_STAGES
        score01 = clamp01(mean_scalar * SCALAR_SHARE + vec_h * ENTROPY_SHARE)
        signature = hex8(mix32(sig_acc, fnv1a32(f"{score01:.6f}"), N_STAGES))
        fp = tuple(
            clamp01(v)
            for v in (score01, vec_h) + scores.as_tuple() + (ctx.env.radiation,)
        )
        rec.emit(Phase.OCCULT, AGGREGATE_LABEL, {
            "score": score01,
            "vec_h": vec_h,
            "sig": signature,
        }, fp=fp)

    return FactorReport(
        score01=score01,
        vec_entropy=vec_h,
        mean_scalar=mean_scalar,
        vec=tuple(float(v) for v in vec),
        fp=fp,
        signature=signature,
        stages=tuple(outputs),
    )
