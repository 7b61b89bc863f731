"""
Divination Configuration Schema - Self-Validating Score Weights and Verdict Bands

DivinationConfig holds the five fusion weights and the three verdict
thresholds. It is an immutable value object: loaded once, validated on load,
hashed for receipts, and overridden per call with with_overrides().

Consumed by:
- engine.py (fusion weights, verdict bands)
- oracle.py (CLI --config / validate-config)

Design Principles:
- Self-validating: JSON Schema (Draft 2020-12) checked on load
- Self-healing: invalid input -> safe defaults + warnings (unless strict)
- Immutable: frozen dataclasses, overrides return new instances
"""

from __future__ import annotations

import hashlib
import json
import warnings
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple, Union

import yaml
from jsonschema import Draft202012Validator

__all__ = [
    'ScoreWeights',
    'VerdictThresholds',
    'DivinationConfig',
    'DEFAULT_CONFIG',
    'json_schema',
    'load',
    'with_overrides',
]


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_WEIGHT_KEYS = ('time', 'text', 'iching', 'numerology', 'entropy')
_THRESHOLD_KEYS = ('great_good', 'good', 'flat')

_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "DivinationConfig",
    "description": "Fusion weights and verdict thresholds",
    "type": "object",
    "properties": {
        "weights": {
            "type": "object",
            "description": "Sub-score weights; normalized to sum 1 at fusion time",
            "properties": {
                key: {"type": "number", "minimum": 0.0} for key in _WEIGHT_KEYS
            },
            "additionalProperties": False,
        },
        "verdict_thresholds": {
            "type": "object",
            "description": "Score cut points on the 0..1 scale",
            "properties": {
                key: {"type": "number", "minimum": 0.0, "maximum": 1.0}
                for key in _THRESHOLD_KEYS
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

# Compiled once at import
Draft202012Validator.check_schema(_JSON_SCHEMA)
_COMPILED_VALIDATOR = Draft202012Validator(_JSON_SCHEMA)

# camelCase aliases accepted on input
_ALIASES = {
    'verdictThresholds': 'verdict_thresholds',
    'greatGood': 'great_good',
}


def json_schema() -> Dict[str, Any]:
    """Returns the JSON Schema dict for external validation."""
    return json.loads(json.dumps(_JSON_SCHEMA))


def _compute_hash(data: Dict[str, Any]) -> str:
    """SHA3-256 of canonical JSON, first 16 hex."""
    canonical = json.dumps(data, sort_keys=True, separators=(',', ':'))
    return hashlib.sha3_256(canonical.encode()).hexdigest()[:16]


# =============================================================================
# Config Dataclasses
# =============================================================================

@dataclass(frozen=True)
class ScoreWeights:
    time: float = 0.28
    text: float = 0.22
    iching: float = 0.24
    numerology: float = 0.16
    entropy: float = 0.1

    def as_tuple(self) -> Tuple[float, float, float, float, float]:
        return (self.time, self.text, self.iching, self.numerology, self.entropy)

    def to_dict(self) -> Dict[str, float]:
        return dict(zip(_WEIGHT_KEYS, self.as_tuple()))


@dataclass(frozen=True)
class VerdictThresholds:
    great_good: float = 0.78
    good: float = 0.62
    flat: float = 0.46

    def to_dict(self) -> Dict[str, float]:
        return {'great_good': self.great_good, 'good': self.good, 'flat': self.flat}


@dataclass(frozen=True)
class DivinationConfig:
    """
    Engine configuration.

    Attributes:
        weights: relative weights of the time/text/iching/numerology/entropy scores
        verdict_thresholds: great_good >= good >= flat, all in [0, 1]
    """
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    verdict_thresholds: VerdictThresholds = field(default_factory=VerdictThresholds)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'weights': self.weights.to_dict(),
            'verdict_thresholds': self.verdict_thresholds.to_dict(),
        }

    def to_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2, sort_keys=True)
        return json.dumps(self.to_dict(), separators=(',', ':'))

    def config_hash(self) -> str:
        return _compute_hash(self.to_dict())

    def save(self, path: Union[str, Path]) -> None:
        """Write to .json or .yaml/.yml."""
        path_obj = Path(path)
        if path_obj.suffix in ('.yaml', '.yml'):
            content = yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)
        else:
            content = json.dumps(self.to_dict(), indent=2, sort_keys=True)
        path_obj.write_text(content)

    # -------------------------------------------------------------------------
    # Class Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        validate: bool = True,
        strict: bool = False
    ) -> DivinationConfig:
        """
        Create from dictionary. Missing keys take defaults.

        Args:
            data: configuration mapping (snake_case or camelCase keys)
            validate: whether to validate (default True)
            strict: if True, raise ValueError on invalid; if False, self-heal

        Returns:
            DivinationConfig
        """
        return _create_config(data, validate, strict)


DEFAULT_CONFIG = DivinationConfig()


# =============================================================================
# Module-Level Functions
# =============================================================================

def load(
    path: Union[str, Path],
    validate: bool = True,
    strict: bool = False
) -> DivinationConfig:
    """
    Load config from a JSON or YAML file.

    Raises:
        FileNotFoundError: if path doesn't exist
        ValueError: if strict=True and validation fails, or the file is not a mapping
    """
    path_obj = Path(path)

    if not path_obj.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path_obj.read_text()

    if path_obj.suffix in ('.yaml', '.yml'):
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")

    return _create_config(data, validate, strict)


def with_overrides(config: DivinationConfig, **weights: float) -> DivinationConfig:
    """
    Return a copy of config with some weights replaced.

    Raises:
        ValueError: unknown weight name or negative weight
    """
    unknown = set(weights) - set(_WEIGHT_KEYS)
    if unknown:
        raise ValueError(f"Unknown weight(s): {sorted(unknown)}")
    for key, val in weights.items():
        if val < 0:
            raise ValueError(f"Weight '{key}' must be >= 0, got {val}")
    return replace(config, weights=replace(config.weights, **weights))


# =============================================================================
# Internal Validation Functions
# =============================================================================

def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase aliases to snake_case, recursively one level down."""
    out: Dict[str, Any] = {}
    for key, val in data.items():
        key = _ALIASES.get(key, key)
        if isinstance(val, Mapping):
            val = {_ALIASES.get(k, k): v for k, v in val.items()}
        out[key] = val
    return out


def _is_number(val: Any) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def _validate(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate normalized config data.

    Returns: (is_valid, errors)

    Rules:
    - schema: known keys only, numbers, weights >= 0, thresholds in [0, 1]
    - thresholds ordered great_good >= good >= flat
    """
    errors: List[str] = []

    for err in _COMPILED_VALIDATOR.iter_errors(data):
        where = "/".join(str(p) for p in err.absolute_path) or "<root>"
        errors.append(f"{where}: {err.message}")

    thresholds = data.get('verdict_thresholds')
    if isinstance(thresholds, Mapping):
        merged = {**VerdictThresholds().to_dict(), **thresholds}
        if all(_is_number(merged[k]) for k in _THRESHOLD_KEYS):
            if not merged['great_good'] >= merged['good'] >= merged['flat']:
                errors.append(
                    "verdict_thresholds must satisfy great_good >= good >= flat, got "
                    f"{merged['great_good']} / {merged['good']} / {merged['flat']}"
                )

    return len(errors) == 0, errors


def _self_heal(data: Dict[str, Any], warns: List[str]) -> Dict[str, Any]:
    """
    Apply self-healing to normalized config data.

    Self-healing behavior:
    - Unknown field -> dropped, add warning
    - Non-numeric value -> default, add warning
    - Out-of-range value -> clamped, add warning
    - Unordered thresholds -> default thresholds, add warning
    """
    healed: Dict[str, Any] = {}

    for key in data:
        if key not in ('weights', 'verdict_thresholds'):
            warns.append(f"Ignoring unknown field: {key}")

    sections = (
        ('weights', _WEIGHT_KEYS, ScoreWeights().to_dict(), 0.0, None),
        ('verdict_thresholds', _THRESHOLD_KEYS, VerdictThresholds().to_dict(), 0.0, 1.0),
    )
    for section, keys, defaults, lo, hi in sections:
        raw = data.get(section, {})
        if not isinstance(raw, Mapping):
            warns.append(f"'{section}' is not a mapping, using defaults")
            raw = {}
        fixed: Dict[str, float] = {}
        for key, val in raw.items():
            if key not in keys:
                warns.append(f"Ignoring unknown field: {section}.{key}")
                continue
            if not _is_number(val):
                warns.append(f"{section}.{key} must be numeric, using default: {defaults[key]}")
                val = defaults[key]
            elif val < lo:
                warns.append(f"Clamped {section}.{key} from {val} to {lo}")
                val = lo
            elif hi is not None and val > hi:
                warns.append(f"Clamped {section}.{key} from {val} to {hi}")
                val = hi
            fixed[key] = val
        healed[section] = fixed

    merged = {**VerdictThresholds().to_dict(), **healed['verdict_thresholds']}
    if not merged['great_good'] >= merged['good'] >= merged['flat']:
        warns.append("verdict_thresholds out of order, using defaults")
        healed['verdict_thresholds'] = {}

    return healed


def _create_config(
    data: Mapping[str, Any],
    validate: bool,
    strict: bool
) -> DivinationConfig:
    """
    Internal factory: normalize keys, validate, self-heal, build.
    """
    normalized = _normalize_keys(data)
    all_warnings: List[str] = []

    if validate:
        is_valid, errors = _validate(normalized)
        if not is_valid:
            if strict:
                raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
            normalized = _self_heal(normalized, all_warnings)
            is_valid, errors = _validate(normalized)
            if not is_valid:
                raise ValueError("Config validation failed after self-healing:\n" +
                                 "\n".join(f"  - {e}" for e in errors))

    for w in all_warnings:
        warnings.warn(f"DivinationConfig: {w}", UserWarning, stacklevel=3)

    weights = normalized.get('weights') or {}
    thresholds = normalized.get('verdict_thresholds') or {}
    return DivinationConfig(
        weights=ScoreWeights(**{k: float(v) for k, v in weights.items() if k in _WEIGHT_KEYS}),
        verdict_thresholds=VerdictThresholds(
            **{k: float(v) for k, v in thresholds.items() if k in _THRESHOLD_KEYS}
        ),
    )
