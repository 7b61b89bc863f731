"""
tests/test_entropy.py - Tests for entropy.py

Shannon entropy helpers and the pointer-sample EntropyPool.
"""

import math

import pytest

from bitmix import fold32
from entropy import DEFAULT_POOL_SEED, EntropyPool, shannon_bits, text_entropy, vector_entropy


class TestShannonBits:
    """Entropy of count distributions."""

    def test_empty_is_zero(self):
        assert shannon_bits([]) == 0.0

    def test_all_zero_is_zero(self):
        assert shannon_bits([0, 0, 0]) == 0.0

    def test_uniform_two(self):
        assert abs(shannon_bits([1, 1]) - 1.0) < 1e-10

    def test_uniform_four(self):
        assert abs(shannon_bits([5, 5, 5, 5]) - 2.0) < 1e-10

    def test_non_uniform(self):
        """p = (0.75, 0.25) -> 0.8113 bits."""
        expected = -(0.75 * math.log2(0.75) + 0.25 * math.log2(0.25))
        assert shannon_bits([3, 1]) == pytest.approx(expected)

    def test_negatives_clamped(self):
        assert shannon_bits([-4, 1, 1]) == pytest.approx(1.0)


class TestVectorEntropy:
    """Normalized entropy of a feature vector."""

    def test_uniform_vector_is_one(self):
        assert vector_entropy([0.3] * 16) == pytest.approx(1.0)

    def test_one_hot_is_zero(self):
        assert vector_entropy([1.0] + [0.0] * 15) == 0.0

    def test_degenerate_lengths(self):
        assert vector_entropy([]) == 0.0
        assert vector_entropy([0.7]) == 0.0

    def test_bounded(self):
        v = [0.1, 0.9, 0.4, 0.0, 0.33, 0.5, 0.2, 0.8]
        assert 0.0 < vector_entropy(v) < 1.0


class TestTextEntropy:

    def test_empty(self):
        assert text_entropy("") == 0.0

    def test_repeated_char(self):
        assert text_entropy("aaaa") == 0.0

    def test_two_symbols(self):
        assert text_entropy("abab") == pytest.approx(1.0)


class TestEntropyPool:
    """Pointer-sample accumulator."""

    def test_default_seed(self):
        pool = EntropyPool()
        assert pool.value == DEFAULT_POOL_SEED == 0x12345678
        assert not pool.primed

    def test_first_sample_folds_position(self):
        pool = EntropyPool()
        value = pool.feed(10.7, 20.2, 1000.0)
        assert value == fold32(0x12345678, (10 << 16) ^ 20)
        assert pool.primed

    def test_later_sample_folds_motion(self):
        """dt=16, dx=3, dy=-4 -> speed floor(5 * 64) = 320."""
        pool = EntropyPool()
        first = pool.feed(10, 20, 1000.0)
        value = pool.feed(13, 16, 1016.4)
        sample = (16 << 20) ^ (320 << 8) ^ ((3 & 0xF) << 4) ^ (-4 & 0xF)
        assert value == fold32(first, sample)

    def test_zero_dt_counts_as_one_ms(self):
        a = EntropyPool()
        a.feed(0, 0, 5.0)
        b = EntropyPool()
        b.feed(0, 0, 5.0)
        assert a.feed(1, 1, 5.0) == b.feed(1, 1, 6.0)

    def test_same_samples_same_value(self):
        samples = [(1, 2, 0.0), (4, 9, 12.5), (40, 3, 30.0), (41, 3, 31.0)]
        a, b = EntropyPool(), EntropyPool()
        for x, y, t in samples:
            a.feed(x, y, t)
            b.feed(x, y, t)
        assert a.value == b.value

    def test_value_stays_32_bit(self):
        pool = EntropyPool(seed=0xFFFFFFFF)
        for i in range(200):
            pool.feed(i * 37 % 1920, i * 91 % 1080, i * 7.3)
            assert 0 <= pool.value <= 0xFFFFFFFF
