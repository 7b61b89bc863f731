"""
tests/test_verdict.py - Tests for verdict.py
"""

import pytest

from config_schema import VerdictThresholds
from scorers import Elements
from tables import BASE_POEMS, ELEMENT_POEMS, VERDICT_POEMS, VERDICTS
from verdict import dominant_element, pick_poem, pick_verdict, poem_pool

DEFAULT = VerdictThresholds()


class TestPickVerdict:
    """Four bands, two phrasings each."""

    @pytest.mark.parametrize("score,line,expected", [
        (80, 2, "大吉，宜速战"),
        (78, 3, "大吉，乘势行"),
        (62, 3, "吉，宜主动"),
        (70, 4, "吉，稳中进"),
        (46, 1, "平，待时机"),
        (50, 6, "平，宜观望"),
        (10, 5, "凶，宜守静"),
        (45, 4, "凶，慎言行"),
    ])
    def test_bands(self, score, line, expected):
        assert pick_verdict(score, DEFAULT, line) == expected

    def test_always_in_fixed_set(self):
        for score in range(0, 101):
            for line in range(1, 7):
                assert pick_verdict(score, DEFAULT, line) in VERDICTS

    def test_thresholds_are_respected(self):
        lenient = VerdictThresholds(great_good=0.0, good=0.0, flat=0.0)
        assert pick_verdict(0, lenient, 1).startswith("大吉")


class TestDominantElement:

    def test_from_elements(self):
        assert dominant_element(Elements(0.1, 0.1, 0.1, 0.1, 0.6)) == "water"

    def test_tie_goes_to_earlier_key(self):
        assert dominant_element({"wood": 0.3, "fire": 0.3, "earth": 0.2, "metal": 0.1, "water": 0.1}) == "wood"
        assert dominant_element({"wood": 0.1, "fire": 0.1, "earth": 0.4, "metal": 0.4, "water": 0.0}) == "earth"

    def test_all_zero(self):
        assert dominant_element(Elements(0.0, 0.0, 0.0, 0.0, 0.0)) == "wood"


class TestPoems:

    def test_pool_order(self):
        verdict = "吉，宜主动"
        pool = poem_pool(verdict, "metal")
        assert pool == VERDICT_POEMS[verdict] + ELEMENT_POEMS["metal"] + BASE_POEMS
        assert len(pool) == 13

    def test_unknown_keys_fall_back_to_base(self):
        assert poem_pool("?", "aether") == BASE_POEMS

    def test_pick_is_idempotent(self):
        args = ("平，宜观望", 0x5EED, "water", "坎为水", "a1b2c3d4")
        assert pick_poem(*args) == pick_poem(*args)

    def test_pick_from_pool(self):
        for seed in range(50):
            poem = pick_poem("凶，慎言行", seed, "fire", "离为火", f"{seed:08x}")
            assert poem in poem_pool("凶，慎言行", "fire")

    def test_signature_optional(self):
        poem = pick_poem("大吉，宜速战", 1, "wood", "乾为天")
        assert poem in poem_pool("大吉，宜速战", "wood")
