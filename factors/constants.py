"""
factors/constants.py - Stream Tags and Physical Constants

Stream tags keep each stage on its own PRNG stream, so changing one stage's
iteration count never shifts another stage's numbers.
Pure data, no behavior.
"""

# =============================================================================
# STREAM TAGS
# =============================================================================

TAG_ENV = 0xE2A11C0D
TAG_BLEND = 0xB1E2D0F5
TAG_TIDAL = 0x71DA1001
TAG_GEOMAGNETIC = 0x6E0A6002
TAG_THERMAL = 0x7E4A1003
TAG_KINETICS = 0xA44E4004
TAG_INFORMATION = 0x14F05005
TAG_CHAOS = 0xC4A05006
TAG_QUANTUM = 0x9A47A007
TAG_EPIDEMIC = 0xE91DE008
TAG_AVALANCHE = 0xA7A1A009

# Hash salts for the environment coordinates
SALT_LONGITUDE = 0x4C4F4E47
SALT_ALTITUDE = 0x414C5449
SALT_LUNAR = 0x4C554E41

# =============================================================================
# VECTOR SHAPES
# =============================================================================

VEC_LEN = 16
FP_LEN = 8
N_STAGES = 9

# Aggregate weighting: mean stage scalar vs blended-vector entropy
SCALAR_SHARE = 0.58
ENTROPY_SHARE = 0.42

# Blend weight: 0.12 + radiation * 0.3 + (r - 0.5) * 0.1
BLEND_BASE = 0.12
BLEND_RADIATION = 0.3
BLEND_JITTER = 0.1

# =============================================================================
# ENVIRONMENT RANGES
# =============================================================================

LAT_MIN, LAT_MAX = -60.0, 70.0
LON_MIN, LON_MAX = -180.0, 180.0
ALT_MAX_M = 3200.0
TZ_MIN, TZ_MAX = -11, 12

TROPICAL_YEAR_DAYS = 365.2422
SYNODIC_MONTH_DAYS = 29.530589
SEA_LEVEL_HPA = 1013.25
SCALE_HEIGHT_M = 8434.5

EARTH_RADIUS_KM = 6371.2
DIPOLE_EQUATOR_UT = 30.0
DIPOLE_MAX_UT = 65.0

# WGS-84 normal gravity and free-air gradient
GRAVITY_EQUATOR = 9.780327
GRAVITY_K1 = 0.0053024
GRAVITY_K2 = 0.0000058
FREE_AIR_GRADIENT = 3.086e-6

# =============================================================================
# STAGE CONSTANTS
# =============================================================================

# Tidal constituent periods (hours)
M2_PERIOD_H = 12.4206
S2_PERIOD_H = 12.0
K1_PERIOD_H = 23.9345
TIDE_SAMPLE_STEP_H = 1.5

SHELL_STEP_KM = 250.0
KP_MAX = 9.0

THERMAL_STEPS = 12
THERMAL_SIGMA = 0.08
KELVIN = 273.15

GAS_CONSTANT = 8.314462618
REACTION_TIME_S = 60.0

LOGISTIC_STEPS = 24
LORENZ_STEPS = 80
LORENZ_DT = 0.01
LORENZ_SIGMA = 10.0
LORENZ_RHO = 28.0
LORENZ_BETA = 8.0 / 3.0

QUANTUM_MIN_PATHS = 5
QUANTUM_MAX_PATHS = 12

SIR_STEPS = 24
