"""
tests/test_factors.py - Tests for the factors package

Environment ranges, per-stage output contracts, and the aggregate pipeline.
Correctness here is reproducibility: same context, same numbers.
"""

import re
from datetime import datetime

import numpy as np
import pytest

from bitmix import fnv1a32, mix32
from factors import (
    STAGES,
    StageContext,
    arrhenius_rate,
    blend_weight,
    channel_capacity,
    detection_probability,
    dipole_field,
    fingerprint,
    initial_vector,
    logistic_orbit,
    lorenz_euler,
    normal_gravity,
    resample,
    run_factor_pipeline,
    sir_run,
    synthesize_environment,
)
from factors.constants import N_STAGES
from scorers import DomainScores, time_signature
from tracelog import NullRecorder, TraceRecorder

HEX8 = re.compile(r"^[0-9a-f]{8}$")

MOMENT = datetime(2024, 1, 1, 9, 0, 0)


def make_ctx(seed: int = 0x5EED1234, question: str = "这次面试能过吗", entropy: int = 0x12345678,
             moment: datetime = MOMENT) -> StageContext:
    time_seed = time_signature(moment)
    return StageContext(
        seed=seed,
        time_seed=time_seed,
        question_hash=fnv1a32(question),
        entropy=entropy,
        question=question,
        moment=moment,
        env=synthesize_environment(seed, time_seed, entropy, moment),
    )


SCORES = DomainScores(time=0.7, text=0.55, iching=0.8, numerology=0.66, entropy=0.9)


class TestEnvironment:
    """Synthetic physical state."""

    @pytest.mark.parametrize("seed", [0, 1, 0xFFFFFFFF, 0x12345678, 0xDEADBEEF, 424242])
    def test_ranges(self, seed):
        env = synthesize_environment(seed, mix32(seed, 3), mix32(seed, 5), MOMENT)
        assert -60.0 <= env.latitude <= 70.0
        assert -180.0 <= env.longitude <= 180.0
        assert 0.0 <= env.altitude <= 3200.0
        assert -11 <= env.timezone <= 12
        for unit in (env.solar_cycle, env.lunar_phase, env.tide, env.humidity, env.radiation):
            assert 0.0 <= unit <= 1.0
        assert 20.0 < env.geomagnetic < 66.0
        assert 9.76 < env.gravity < 9.84
        assert 600.0 < env.pressure < 1030.0

    def test_deterministic(self):
        a = synthesize_environment(7, 8, 9, MOMENT)
        b = synthesize_environment(7, 8, 9, MOMENT)
        assert a == b

    def test_normal_gravity_pole_exceeds_equator(self):
        assert normal_gravity(70.0, 0.0) > normal_gravity(0.0, 0.0)
        assert normal_gravity(0.0, 0.0) == pytest.approx(9.780327)

    def test_free_air_correction(self):
        assert normal_gravity(45.0, 1000.0) < normal_gravity(45.0, 0.0)

    def test_dipole_doubles_at_pole(self):
        assert dipole_field(0.0, 0.0) == pytest.approx(30.0)
        assert dipole_field(90.0, 0.0) == pytest.approx(60.0)


class TestStages:
    """Each stage returns scalar, 16-vector, 8-fingerprint and 8-hex signature."""

    @pytest.mark.parametrize("name,label,stage", STAGES)
    def test_output_contract(self, name, label, stage):
        out = stage(make_ctx())
        assert out.name == name
        assert 0.0 <= out.scalar <= 1.0
        assert len(out.vec) == 16
        assert len(out.fp) == 8
        assert all(0.0 <= v <= 1.0 for v in out.vec)
        assert all(0.0 <= v <= 1.0 for v in out.fp)
        assert HEX8.match(out.sig)

    @pytest.mark.parametrize("name,label,stage", STAGES)
    def test_reproducible(self, name, label, stage):
        assert stage(make_ctx()) == stage(make_ctx())

    @pytest.mark.parametrize("name,label,stage", STAGES)
    def test_empty_question_is_valid(self, name, label, stage):
        out = stage(make_ctx(question="", entropy=0))
        assert 0.0 <= out.scalar <= 1.0

    def test_stage_order(self):
        assert len(STAGES) == N_STAGES
        assert [name for name, _, _ in STAGES] == [
            "tidal", "geomagnetic", "thermal", "kinetics", "information",
            "chaos", "quantum", "epidemic", "avalanche",
        ]


class TestStageModels:
    """The small numeric models behind the stages."""

    def test_logistic_orbit_stays_in_unit_interval(self):
        orbit = logistic_orbit(3.99, 0.123)
        assert len(orbit) == 24
        assert all(0.0 < x < 1.0 for x in orbit)

    def test_lorenz_trajectory_bounded(self):
        traj = lorenz_euler(1.0, 1.0, 20.0)
        assert len(traj) == 80
        assert all(abs(x) < 60 and abs(y) < 60 and -5 < z < 80 for x, y, z in traj)

    def test_sir_conserves_population(self):
        infected, s, r = sir_run(0.4, 0.1, 0.01)
        assert len(infected) == 24
        assert s + infected[-1] + r == pytest.approx(1.0)

    def test_arrhenius_increases_with_temperature(self):
        k = arrhenius_rate(1e8, 60000.0, np.array([280.0, 300.0, 320.0]))
        assert k[0] < k[1] < k[2]

    def test_channel_capacity_zero_db(self):
        """S/N = 1 gives one bit per hertz."""
        assert channel_capacity(1.0, 0.0) == pytest.approx(1.0)

    def test_single_path_always_detected(self):
        prob = detection_probability([0.3], [1.7], np.linspace(-1, 1, 16))
        assert np.allclose(prob, 1.0)


class TestVectors:

    def test_resample_keeps_endpoints(self):
        out = resample([0.0, 1.0, 0.5], 16)
        assert len(out) == 16
        assert out[0] == pytest.approx(0.0)
        assert out[-1] == pytest.approx(0.5)

    def test_resample_degenerate(self):
        assert np.all(resample([], 4) == 0.0)
        assert np.all(resample([0.3], 4) == 0.3)

    def test_fingerprint_chunk_means(self):
        fp = fingerprint([0.0, 1.0] * 8)
        assert fp == tuple([0.5] * 8)

    def test_initial_vector(self):
        vec = initial_vector(0x5EED)
        assert vec.shape == (16,)
        assert np.all((vec >= 0.0) & (vec <= 1.0))

    def test_blend_weight_bounds(self):
        assert blend_weight(0.0, 0.5) == pytest.approx(0.12)
        assert blend_weight(1.0, 0.999) <= 1.0
        assert blend_weight(0.0, 0.0) == pytest.approx(0.07)


class TestPipeline:
    """Aggregate factor."""

    def test_report_shape(self):
        ctx = make_ctx()
        report = run_factor_pipeline(ctx, SCORES)
        assert 0.0 <= report.score01 <= 1.0
        assert 0.0 <= report.vec_entropy <= 1.0
        assert HEX8.match(report.signature)
        assert [s.name for s in report.stages] == [name for name, _, _ in STAGES]
        assert len(report.vec) == 16

    def test_fingerprint_layout(self):
        """fp = score01, vec entropy, the five domain scores, radiation."""
        ctx = make_ctx()
        report = run_factor_pipeline(ctx, SCORES)
        assert len(report.fp) == 8
        assert report.fp[0] == report.score01
        assert report.fp[1] == report.vec_entropy
        assert report.fp[2:7] == SCORES.as_tuple()
        assert report.fp[7] == ctx.env.radiation

    def test_aggregate_formula(self):
        report = run_factor_pipeline(make_ctx(), SCORES)
        expected = report.mean_scalar * 0.58 + report.vec_entropy * 0.42
        assert report.score01 == pytest.approx(min(1.0, max(0.0, expected)))

    def test_reproducible(self):
        a = run_factor_pipeline(make_ctx(), SCORES)
        b = run_factor_pipeline(make_ctx(), SCORES)
        assert a == b

    def test_recorder_does_not_change_numbers(self):
        """Tracing consumes its own stream; the factor is identical either way."""
        ctx = make_ctx()
        plain = run_factor_pipeline(ctx, SCORES, NullRecorder())
        traced = run_factor_pipeline(ctx, SCORES, TraceRecorder(ctx.seed))
        assert plain == traced

    def test_trace_events(self):
        """One group, nine stage events, one aggregate event."""
        ctx = make_ctx()
        rec = TraceRecorder(ctx.seed)
        run_factor_pipeline(ctx, SCORES, rec)
        events = rec.events
        assert len(events) == 12
        assert events[0].kind == "group_start"
        assert events[-1].kind == "group_end"
        assert all(e.depth == 1 for e in events[1:-1])
        assert all(e.phase == "天机" for e in events)
        assert [e.data["sig"] for e in events[1:10]] == [s.sig for s in run_factor_pipeline(ctx, SCORES).stages]

    def test_seed_changes_signature(self):
        a = run_factor_pipeline(make_ctx(seed=1), SCORES)
        b = run_factor_pipeline(make_ctx(seed=2), SCORES)
        assert a.signature != b.signature
