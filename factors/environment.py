"""
factors/environment.py - Pseudo-Environment Synthesis

Derives a synthetic physical state from (seed, time_seed, entropy, moment).
Coordinates are hashed into their ranges with a little PRNG jitter; cycles are
sinusoids of the calendar date; climate and field values follow textbook
latitude/altitude formulas. No external data is read.
"""

import math
from datetime import datetime

from bitmix import clamp01, clamp_int, mix32, round_half_up, stage_stream

from .constants import (
    ALT_MAX_M,
    DIPOLE_EQUATOR_UT,
    EARTH_RADIUS_KM,
    FREE_AIR_GRADIENT,
    GRAVITY_EQUATOR,
    GRAVITY_K1,
    GRAVITY_K2,
    LAT_MAX,
    LAT_MIN,
    LON_MAX,
    LON_MIN,
    SALT_ALTITUDE,
    SALT_LONGITUDE,
    SALT_LUNAR,
    SCALE_HEIGHT_M,
    SEA_LEVEL_HPA,
    SYNODIC_MONTH_DAYS,
    TAG_ENV,
    TROPICAL_YEAR_DAYS,
    TZ_MAX,
    TZ_MIN,
)
from .types import Environment


def _span(h: int, lo: float, hi: float) -> float:
    """Map a 32-bit hash onto [lo, hi] at millidegree resolution."""
    steps = int(round((hi - lo) * 1000)) + 1
    return lo + (h % steps) / 1000.0


def normal_gravity(latitude: float, altitude: float) -> float:
    """Normal gravity at latitude (deg) minus the free-air correction at altitude (m)."""
    phi = math.radians(latitude)
    g0 = GRAVITY_EQUATOR * (
        1 + GRAVITY_K1 * math.sin(phi) ** 2 - GRAVITY_K2 * math.sin(2 * phi) ** 2
    )
    return g0 - FREE_AIR_GRADIENT * altitude


def dipole_field(latitude: float, altitude: float) -> float:
    """Dipole field magnitude (uT): B0 * sqrt(1 + 3 sin^2 lat) * (R / (R + h))^3."""
    phi = math.radians(latitude)
    r = EARTH_RADIUS_KM / (EARTH_RADIUS_KM + altitude / 1000.0)
    return DIPOLE_EQUATOR_UT * math.sqrt(1 + 3 * math.sin(phi) ** 2) * r ** 3


def synthesize_environment(seed: int, time_seed: int, entropy: int, moment: datetime) -> Environment:
    """
    Build the synthetic Environment.

    Draw order on the environment stream is fixed: latitude, longitude,
    altitude, temperature, pressure, humidity, salinity, geomagnetic,
    radiation.
    """
    rng = stage_stream(seed, TAG_ENV)

    h_lat = mix32(seed, time_seed, entropy)
    h_lon = mix32(h_lat, SALT_LONGITUDE)
    h_alt = mix32(h_lon, SALT_ALTITUDE)
    h_moon = mix32(h_alt, SALT_LUNAR)

    latitude = min(LAT_MAX, max(LAT_MIN, _span(h_lat, LAT_MIN, LAT_MAX) + (rng() - 0.5) * 0.02))
    longitude = min(LON_MAX, max(LON_MIN, _span(h_lon, LON_MIN, LON_MAX) + (rng() - 0.5) * 0.02))
    altitude = min(ALT_MAX_M, (h_alt % (int(ALT_MAX_M) + 1)) * (0.6 + 0.4 * rng()))
    timezone = clamp_int(round_half_up(longitude / 15.0), TZ_MIN, TZ_MAX)

    day_of_year = moment.timetuple().tm_yday
    solar_cycle = 0.5 + 0.5 * math.sin(2 * math.pi * (day_of_year - 80) / TROPICAL_YEAR_DAYS)
    lunar_age = (moment.month - 1) * 30.436875 + moment.day + (h_moon & 0xFF) / 255 * SYNODIC_MONTH_DAYS
    lunar_phase = (lunar_age / SYNODIC_MONTH_DAYS) % 1.0
    # Spring tides at new and full moon
    tide = clamp01(0.5 + 0.3 * math.cos(4 * math.pi * lunar_phase) + 0.2 * (solar_cycle - 0.5))

    phi = math.radians(latitude)
    hemisphere = 1.0 if latitude >= 0 else -1.0
    temperature = (
        27.0
        - 0.4 * abs(latitude)
        - 6.5 * altitude / 1000.0
        + 14.0 * (solar_cycle - 0.5) * hemisphere
        + (rng() - 0.5) * 3.0
    )
    pressure = SEA_LEVEL_HPA * math.exp(-altitude / SCALE_HEIGHT_M) + (rng() - 0.5) * 6.0
    humidity = clamp01(0.78 - 0.0045 * abs(latitude) - altitude / 15000.0 + (rng() - 0.5) * 0.2)
    salinity = 34.7 + 1.8 * math.cos(2 * phi) + (rng() - 0.5) * 1.0
    geomagnetic = dipole_field(latitude, altitude) + (rng() - 0.5) * 2.0
    radiation = clamp01(
        0.06 + altitude / 8000.0 + abs(latitude) / 300.0 + solar_cycle * 0.12 + rng() * 0.18
    )

    return Environment(
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        timezone=timezone,
        solar_cycle=solar_cycle,
        lunar_phase=lunar_phase,
        tide=tide,
        temperature=temperature,
        pressure=pressure,
        humidity=humidity,
        salinity=salinity,
        geomagnetic=geomagnetic,
        radiation=radiation,
        gravity=normal_gravity(latitude, altitude),
    )
