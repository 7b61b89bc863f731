"""
engine.py - Divination Engine Entry Points

divine() and divine_with_trace() share one computation; the only difference
is whether a TraceRecorder or a NullRecorder receives the steps. Results are
therefore identical for identical inputs.

Pipeline:
    normalize -> seed -> pillars/elements -> text -> hexagram -> numerology
    -> entropy -> environment -> nine factor stages -> fusion -> verdict/poem

Each call owns its recorder and PRNG streams; nothing is shared between
calls and nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bitmix import MASK32, fnv1a32, hex8, make_rng, mix32
from calendar_pillars import Pillars, pillars_for
from config_schema import DEFAULT_CONFIG, DivinationConfig
from factors import FactorReport, StageContext, fingerprint, run_factor_pipeline, synthesize_environment
from fusion import blend_factor, factor_gate, final_score, fuse, remap_to_100
from scorers import (
    DomainScores,
    Elements,
    Hexagram,
    cast_hexagram,
    elements_from_pillars,
    harmony_of,
    hexagram_base,
    normalize_question,
    numerology_for,
    score_entropy,
    score_iching,
    score_numerology,
    score_text,
    score_time,
    text_numbers,
    time_signature,
)
from tracelog import FACTOR_SUMMARY_MESSAGE, NullRecorder, Phase, TraceEvent, TraceRecorder
from verdict import dominant_element, pick_poem, pick_verdict, poem_pool

__all__ = [
    "DivinationInput",
    "Carry",
    "DivinationResult",
    "TracedDivination",
    "divine",
    "divine_with_trace",
]


# =============================================================================
# TYPES
# =============================================================================

@dataclass(frozen=True)
class DivinationInput:
    question: str
    datetime: datetime
    nickname: Optional[str] = None


@dataclass(frozen=True)
class Carry:
    """Intermediate artifacts carried along with the verdict."""
    seed: int
    pillars: Pillars
    elements: Elements
    hexagram: Hexagram

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "pillars": self.pillars.to_dict(),
            "elements": self.elements.to_dict(),
            "hexagram": self.hexagram.to_dict(),
        }


@dataclass(frozen=True)
class DivinationResult:
    verdict: str
    score: int
    poem: str
    carry: Carry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict,
            "score": self.score,
            "poem": self.poem,
            "carry": self.carry.to_dict(),
        }


@dataclass(frozen=True)
class TracedDivination:
    result: DivinationResult
    trace: Tuple[TraceEvent, ...]
    root_digest: str
    factors: FactorReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "trace": [e.to_dict() for e in self.trace],
            "root_digest": self.root_digest,
        }


# =============================================================================
# ENTRY POINTS
# =============================================================================

def divine(
    inp: DivinationInput,
    entropy: int,
    config: Optional[DivinationConfig] = None,
) -> DivinationResult:
    """
    Compute a divination without recording a trace.

    Args:
        inp: question, moment and optional nickname
        entropy: any 32-bit value (wider ints are masked)
        config: weights and verdict thresholds (default DEFAULT_CONFIG)

    Returns:
        DivinationResult

    Raises:
        Whatever the calendar conversion raises; nothing is caught.
    """
    result, _, _, _ = _compute(inp, entropy, config or DEFAULT_CONFIG, traced=False)
    return result


def divine_with_trace(
    inp: DivinationInput,
    entropy: int,
    config: Optional[DivinationConfig] = None,
) -> TracedDivination:
    """Same computation as divine(), plus the full hash-chained trace."""
    result, events, digest, report = _compute(inp, entropy, config or DEFAULT_CONFIG, traced=True)
    return TracedDivination(result=result, trace=tuple(events), root_digest=digest, factors=report)


# =============================================================================
# COMPUTATION
# =============================================================================

def _r4(x: float) -> float:
    return round(x, 4)


def _compute(
    inp: DivinationInput,
    entropy: int,
    config: DivinationConfig,
    traced: bool,
) -> Tuple[DivinationResult, List[TraceEvent], str, FactorReport]:
    entropy &= MASK32
    question = normalize_question(inp.question)
    question_hash = fnv1a32(question)
    time_seed = time_signature(inp.datetime)
    seed = mix32(question_hash, time_seed, entropy)
    rng = make_rng(seed)
    rec = TraceRecorder(seed) if traced else NullRecorder()

    # --- time ---------------------------------------------------------------
    with rec.group(Phase.TIME, "时间起盘"):
        rec.emit(Phase.TIME, "输入归一", {"len": len(question), "q": hex8(question_hash)})
        rec.emit(Phase.TIME, "时间签名", {
            "ts": inp.datetime.strftime("%Y-%m-%d %H:%M:%S"),
            "sig": hex8(time_seed),
        })
        rec.emit(Phase.TIME, "种子混合", {"entropy": hex8(entropy), "seed": hex8(seed)})
        pillars = pillars_for(inp.datetime)
        rec.emit(Phase.TIME, "四柱排盘", pillars.to_dict())
        elements = elements_from_pillars(pillars)
        element_values = [val for _, val in elements]
        rec.emit(Phase.TIME, "五行能量", {k: _r4(v) for k, v in elements}, fp=fingerprint(element_values))
        time_score = score_time(elements)
        rec.emit(Phase.TIME, "时间评分", {"score": time_score})

    # --- text ---------------------------------------------------------------
    with rec.group(Phase.TEXT, "字象解析"):
        nums = text_numbers(question)
        rec.emit(Phase.TEXT, "笔画拟算", {"len": nums.length, "strokes": nums.pseudo_strokes})
        rec.emit(Phase.TEXT, "码位混沌", {"sum": nums.unicode_sum, "chaos": hex8(nums.chaos)})
        text_score = score_text(nums)
        rec.emit(Phase.TEXT, "文字评分", {"score": text_score})

    # --- I Ching ------------------------------------------------------------
    with rec.group(Phase.ICHING, "起卦"):
        rec.emit(Phase.ICHING, "卦基", {"base": hex8(hexagram_base(time_seed, question_hash, entropy))})
        hexagram = cast_hexagram(time_seed, question_hash, entropy, rng)
        rec.emit(Phase.ICHING, "上下卦", {"upper": hexagram.upper, "lower": hexagram.lower})
        rec.emit(Phase.ICHING, "卦象", {"name": hexagram.name, "line": hexagram.changing_line})
        iching_score = score_iching(hexagram)
        rec.emit(Phase.ICHING, "易经评分", {"harmony": harmony_of(hexagram.name), "score": iching_score})

    # --- numerology ---------------------------------------------------------
    with rec.group(Phase.NUMEROLOGY, "数理推演"):
        numerology = numerology_for(inp.datetime, question, inp.nickname or "")
        rec.emit(Phase.NUMEROLOGY, "生命数", {"life": numerology.life})
        rec.emit(Phase.NUMEROLOGY, "问数", {"inquiry": numerology.inquiry})
        rec.emit(Phase.NUMEROLOGY, "桥数", {"bridge": numerology.bridge})
        numerology_score = score_numerology(numerology)
        rec.emit(Phase.NUMEROLOGY, "数理评分", {"score": numerology_score})

    # --- entropy, environment, factors --------------------------------------
    with rec.group(Phase.OCCULT, "天机"):
        entropy_score = score_entropy(entropy)
        rec.emit(Phase.OCCULT, "熵值采样", {"entropy": hex8(entropy), "score": entropy_score})

        with rec.group(Phase.OCCULT, "伪环境合成"):
            env = synthesize_environment(seed, time_seed, entropy, inp.datetime)
            rec.emit(Phase.OCCULT, "坐标", {
                "lat": _r4(env.latitude),
                "lon": _r4(env.longitude),
                "alt": _r4(env.altitude),
                "tz": env.timezone,
            })
            rec.emit(Phase.OCCULT, "天象", {
                "solar": _r4(env.solar_cycle),
                "lunar": _r4(env.lunar_phase),
                "tide": _r4(env.tide),
            })
            rec.emit(Phase.OCCULT, "气象", {
                "temp": _r4(env.temperature),
                "pressure": _r4(env.pressure),
                "humidity": _r4(env.humidity),
                "salinity": _r4(env.salinity),
            })
            rec.emit(Phase.OCCULT, "场与辐射", {
                "geomag": _r4(env.geomagnetic),
                "radiation": _r4(env.radiation),
                "gravity": _r4(env.gravity),
            })

        scores = DomainScores(
            time=time_score,
            text=text_score,
            iching=iching_score,
            numerology=numerology_score,
            entropy=entropy_score,
        )
        ctx = StageContext(
            seed=seed,
            time_seed=time_seed,
            question_hash=question_hash,
            entropy=entropy,
            question=question,
            moment=inp.datetime,
            env=env,
        )
        report = run_factor_pipeline(ctx, scores, rec)

    # --- fusion -------------------------------------------------------------
    with rec.group(Phase.FUSION, "融合"):
        fusion = fuse(scores, config.weights)
        rec.emit(Phase.FUSION, "权重归一", {k: _r4(v) for k, v in fusion.weights.items()})
        rec.emit(Phase.FUSION, "线性叠加", {"linear": fusion.linear})
        rec.emit(Phase.FUSION, "非线性压缩", {"squashed": fusion.squashed, "base": fusion.base})
        gate = factor_gate(env.radiation, entropy_score, rng())
        combined = blend_factor(fusion.base, report.score01, gate)
        rec.emit(Phase.FUSION, "因子门控", {"gate": gate, "combined": combined})
        rec.emit(Phase.FUSION, FACTOR_SUMMARY_MESSAGE, {
            "factor": report.score01,
            "sig": report.signature,
        }, fp=report.fp)
        jitter = rng()
        score = final_score(combined, jitter)
        rec.emit(Phase.FUSION, "呼吸扰动", {"raw": remap_to_100(combined, jitter), "score": score})

    # --- verdict ------------------------------------------------------------
    with rec.group(Phase.VERDICT, "裁决"):
        verdict = pick_verdict(score, config.verdict_thresholds, hexagram.changing_line)
        rec.emit(Phase.VERDICT, "判词", {"verdict": verdict, "score": score, "line": hexagram.changing_line})
        element = dominant_element(elements)
        rec.emit(Phase.VERDICT, "主导五行", {"element": element})
        poem = pick_poem(verdict, seed, element, hexagram.name, report.signature)
        rec.emit(Phase.VERDICT, "诗签", {"pool": len(poem_pool(verdict, element)), "poem": poem})

    digest = rec.finalize()

    result = DivinationResult(
        verdict=verdict,
        score=score,
        poem=poem,
        carry=Carry(seed=seed, pillars=pillars, elements=elements, hexagram=hexagram),
    )
    return result, list(rec.events), digest, report
