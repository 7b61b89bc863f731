"""
factors - Multidisciplinary Factor Package

Pseudo-environment synthesis and the nine stylized numeric stages that feed
one more blended input into the final score. Reproducibility is the only
correctness criterion; nothing here models a real phenomenon.
"""

# =============================================================================
# TYPES
# =============================================================================
from .types import Environment, StageContext, StageOutput, FactorReport

# =============================================================================
# ENVIRONMENT
# =============================================================================
from .environment import synthesize_environment, normal_gravity, dipole_field

# =============================================================================
# STAGES
# =============================================================================
from .astro import tidal_stage, geomagnetic_stage
from .thermo import thermal_stage, kinetics_stage, arrhenius_rate
from .information import information_stage, avalanche_stage, channel_capacity
from .dynamics import chaos_stage, epidemic_stage, logistic_orbit, lorenz_euler, sir_run
from .quantum import quantum_stage, detection_probability

# =============================================================================
# PIPELINE
# =============================================================================
from .vectors import fingerprint, resample, stage_output
from .pipeline import STAGES, run_factor_pipeline, initial_vector, blend_weight

__all__ = [
    "Environment",
    "StageContext",
    "StageOutput",
    "FactorReport",
    "synthesize_environment",
    "normal_gravity",
    "dipole_field",
    "tidal_stage",
    "geomagnetic_stage",
    "thermal_stage",
    "kinetics_stage",
    "arrhenius_rate",
    "information_stage",
    "avalanche_stage",
    "channel_capacity",
    "chaos_stage",
    "epidemic_stage",
    "logistic_orbit",
    "lorenz_euler",
    "sir_run",
    "quantum_stage",
    "detection_probability",
    "fingerprint",
    "resample",
    "stage_output",
    "STAGES",
    "run_factor_pipeline",
    "initial_vector",
    "blend_weight",
]
