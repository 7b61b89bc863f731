"""
tests/test_config_schema.py - Tests for config_schema.py

Covers defaults, alias handling, strict validation, self-healing with
warnings, JSON/YAML loading and per-call overrides.
"""

import json
import re

import pytest

import config_schema
from config_schema import (
    DEFAULT_CONFIG,
    DivinationConfig,
    ScoreWeights,
    VerdictThresholds,
    json_schema,
    with_overrides,
)


class TestDefaults:

    def test_documented_defaults(self):
        assert DEFAULT_CONFIG.weights == ScoreWeights(0.28, 0.22, 0.24, 0.16, 0.1)
        assert DEFAULT_CONFIG.verdict_thresholds == VerdictThresholds(0.78, 0.62, 0.46)

    def test_empty_dict_gives_defaults(self):
        assert DivinationConfig.from_dict({}) == DEFAULT_CONFIG

    def test_partial_dict_keeps_other_defaults(self):
        config = DivinationConfig.from_dict({"weights": {"time": 1.0}})
        assert config.weights.time == 1.0
        assert config.weights.text == 0.22
        assert config.verdict_thresholds == DEFAULT_CONFIG.verdict_thresholds

    def test_round_trip_dict(self):
        assert DivinationConfig.from_dict(DEFAULT_CONFIG.to_dict()) == DEFAULT_CONFIG

    def test_camel_case_aliases(self):
        config = DivinationConfig.from_dict({"verdictThresholds": {"greatGood": 0.9, "good": 0.7}})
        assert config.verdict_thresholds.great_good == 0.9
        assert config.verdict_thresholds.good == 0.7


class TestStrictValidation:
    """strict=True raises ValueError listing what is wrong."""

    @pytest.mark.parametrize("data", [
        {"weights": {"time": -0.1}},
        {"weights": {"time": "heavy"}},
        {"weights": {"luck": 0.5}},
        {"verdict_thresholds": {"flat": 1.5}},
        {"verdict_thresholds": {"great_good": 0.5, "good": 0.7}},
        {"colour": "red"},
    ])
    def test_invalid_raises(self, data):
        with pytest.raises(ValueError, match="Config validation failed"):
            DivinationConfig.from_dict(data, strict=True)

    def test_zero_weights_are_valid(self):
        config = DivinationConfig.from_dict(
            {"weights": {"time": 0, "text": 0, "iching": 0, "numerology": 0, "entropy": 0}},
            strict=True,
        )
        assert config.weights.as_tuple() == (0.0, 0.0, 0.0, 0.0, 0.0)

    def test_validate_false_skips_checks(self):
        config = DivinationConfig.from_dict({"weights": {"time": -1}}, validate=False)
        assert config.weights.time == -1.0


class TestSelfHealing:
    """strict=False repairs and warns."""

    def test_negative_weight_clamped(self):
        with pytest.warns(UserWarning, match="Clamped weights.time"):
            config = DivinationConfig.from_dict({"weights": {"time": -2}})
        assert config.weights.time == 0.0

    def test_non_numeric_uses_default(self):
        with pytest.warns(UserWarning, match="must be numeric"):
            config = DivinationConfig.from_dict({"weights": {"text": "lots"}})
        assert config.weights.text == 0.22

    def test_out_of_range_threshold_clamped(self):
        with pytest.warns(UserWarning, match="Clamped verdict_thresholds.great_good"):
            config = DivinationConfig.from_dict({"verdict_thresholds": {"great_good": 3}})
        assert config.verdict_thresholds.great_good == 1.0

    def test_unordered_thresholds_reset(self):
        with pytest.warns(UserWarning, match="out of order"):
            config = DivinationConfig.from_dict({"verdict_thresholds": {"great_good": 0.3, "good": 0.6}})
        assert config.verdict_thresholds == VerdictThresholds()

    def test_unknown_fields_dropped(self):
        with pytest.warns(UserWarning, match="Ignoring unknown field"):
            config = DivinationConfig.from_dict({"mood": "hopeful", "weights": {"luck": 1}})
        assert config == DEFAULT_CONFIG


class TestLoad:

    def test_json(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"weights": {"entropy": 0.5}}))
        assert config_schema.load(path).weights.entropy == 0.5

    def test_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("verdict_thresholds:\n  great_good: 0.8\n  good: 0.6\n  flat: 0.4\n")
        config = config_schema.load(path)
        assert config.verdict_thresholds == VerdictThresholds(0.8, 0.6, 0.4)

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert config_schema.load(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            config_schema.load(tmp_path / "nope.json")

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="mapping"):
            config_schema.load(path)

    def test_strict_load_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"weights": {"time": -1}}))
        with pytest.raises(ValueError):
            config_schema.load(path, strict=True)

    @pytest.mark.parametrize("name", ["saved.json", "saved.yaml"])
    def test_save_and_reload(self, tmp_path, name):
        config = with_overrides(DEFAULT_CONFIG, iching=0.5)
        path = tmp_path / name
        config.save(path)
        assert config_schema.load(path, strict=True) == config


class TestHashAndOverrides:

    def test_config_hash_shape(self):
        assert re.match(r"^[0-9a-f]{16}$", DEFAULT_CONFIG.config_hash())

    def test_config_hash_tracks_content(self):
        assert DivinationConfig().config_hash() == DEFAULT_CONFIG.config_hash()
        assert with_overrides(DEFAULT_CONFIG, time=0.9).config_hash() != DEFAULT_CONFIG.config_hash()

    def test_overrides_return_new_instance(self):
        config = with_overrides(DEFAULT_CONFIG, time=0.5, entropy=0.0)
        assert config.weights.time == 0.5
        assert config.weights.entropy == 0.0
        assert DEFAULT_CONFIG.weights.time == 0.28

    def test_override_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown weight"):
            with_overrides(DEFAULT_CONFIG, luck=1.0)

    def test_override_negative(self):
        with pytest.raises(ValueError, match=">= 0"):
            with_overrides(DEFAULT_CONFIG, text=-0.1)

    def test_json_schema_is_a_copy(self):
        schema = json_schema()
        schema["title"] = "changed"
        assert json_schema()["title"] == "DivinationConfig"
        assert set(schema["properties"]) == {"weights", "verdict_thresholds"}
