"""
factors/types.py - Factor Pipeline Dataclasses

Environment, per-stage context and output, and the aggregate report.
Frozen dataclasses, no behavior beyond serialization.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Environment:
    """Synthetic physical state. Deterministic; models nothing real."""
    latitude: float
    longitude: float
    altitude: float  # m
    timezone: int
    solar_cycle: float  # [0, 1]
    lunar_phase: float  # [0, 1), 0 = new moon
    tide: float  # [0, 1]
    temperature: float  # deg C
    pressure: float  # hPa
    humidity: float  # [0, 1]
    salinity: float  # psu
    geomagnetic: float  # uT
    radiation: float  # [0, 1]
    gravity: float  # m/s^2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StageContext:
    """Everything a stage may read. Stages never see each other's output."""
    seed: int
    time_seed: int
    question_hash: int
    entropy: int
    question: str
    moment: datetime
    env: Environment


@dataclass(frozen=True)
class StageOutput:
    name: str
    scalar: float
    vec: Tuple[float, ...]  # VEC_LEN
    fp: Tuple[float, ...]  # FP_LEN
    sig: str  # 8 hex

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "scalar": self.scalar,
            "vec": list(self.vec),
            "fp": list(self.fp),
            "sig": self.sig,
        }


@dataclass(frozen=True)
class FactorReport:
    """Aggregate of all nine stages."""
    score01: float
    vec_entropy: float
    mean_scalar: float
    vec: Tuple[float, ...]
    fp: Tuple[float, ...]
    signature: str
    stages: Tuple[StageOutput, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score01": self.score01,
            "vec_entropy": self.vec_entropy,
            "mean_scalar": self.mean_scalar,
            "vec": list(self.vec),
            "fp": list(self.fp),
            "signature": self.signature,
            "stages": [s.to_dict() for s in self.stages],
        }
