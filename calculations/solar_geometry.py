"""
Solar geometry for HF propagation.

Solar zenith angle, daylight tests and the day/night fraction of a
great-circle path. All functions are pure; timestamps without a timezone
are treated as UTC.
"""

import math
from datetime import datetime

import numpy as np
import pytz

from .constants import SOLAR_DECLINATION_MAX, DAY_ZENITH_LIMIT, PATH_SAMPLES
from .grid_math import great_circle_points


def to_utc(timestamp: datetime) -> datetime:
    """Return the timestamp as an aware UTC datetime."""
    if timestamp.tzinfo is None:
        return pytz.utc.localize(timestamp)
    return timestamp.astimezone(pytz.utc)


def solar_declination(day_of_year: int) -> float:
    """Solar declination in degrees for a day of year (1-366)."""
    return SOLAR_DECLINATION_MAX * math.sin(2.0 * math.pi * (284 + day_of_year) / 365.0)


def _hour_angles(lons, timestamp: datetime):
    utc = to_utc(timestamp)
    hours = utc.hour + utc.minute / 60.0 + utc.second / 3600.0
    return np.radians((hours - 12.0) * 15.0 + np.asarray(lons, dtype=float))


def _zenith_angles(lats, lons, timestamp: datetime) -> np.ndarray:
    utc = to_utc(timestamp)
    declination = math.radians(solar_declination(utc.timetuple().tm_yday))
    lat_rad = np.radians(np.asarray(lats, dtype=float))
    hour_angle = _hour_angles(lons, utc)

    cos_zenith = (np.sin(lat_rad) * math.sin(declination) +
                  np.cos(lat_rad) * math.cos(declination) * np.cos(hour_angle))
    return np.degrees(np.arccos(np.clip(cos_zenith, -1.0, 1.0)))


def solar_zenith_angle(lat: float, lon: float, timestamp: datetime) -> float:
    """
    Calculate the solar zenith angle at a location and time.

    Simplified model ignoring atmospheric refraction and the equation of time.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees (east positive)
        timestamp: Observation time

    Returns:
        Zenith angle in degrees (0 = overhead, 90 = horizon)
    """
    return float(_zenith_angles([lat], [lon], timestamp)[0])


def is_daylight(lat: float, lon: float, timestamp: datetime) -> bool:
    """A point is in daylight when the sun is above the horizon."""
    return solar_zenith_angle(lat, lon, timestamp) < DAY_ZENITH_LIMIT


def day_night_fraction(lat1: float, lon1: float, lat2: float, lon2: float,
                       timestamp: datetime, samples: int = PATH_SAMPLES) -> float:
    """
    Fraction of the great-circle path between two points that is in daylight.

    Returns:
        Value in [0, 1]
    """
    lats, lons = great_circle_points(lat1, lon1, lat2, lon2, samples)
    zeniths = _zenith_angles(lats, lons, timestamp)
    return float(np.count_nonzero(zeniths < DAY_ZENITH_LIMIT)) / len(zeniths)


def season_for_date(timestamp: datetime) -> str:
    """Meteorological season name for a date."""
    month = timestamp.month
    if 3 <= month <= 5:
        return 'Spring'
    elif 6 <= month <= 8:
        return 'Summer'
    elif 9 <= month <= 11:
        return 'Fall'
    return 'Winter'
