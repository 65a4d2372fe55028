"""
Maidenhead grid locator math.

Handles locator validation, conversion to and from latitude/longitude,
and great-circle distance between grid squares.
"""

import math
from typing import Tuple
import logging

import numpy as np

from exceptions import InvalidLocator
from .constants import EARTH_RADIUS_KM

logger = logging.getLogger(__name__)


def validate_grid(grid: str) -> str:
    """
    Validate a Maidenhead grid locator and return its normalized form.

    Field letters are upper case (A-R), square characters digits and the
    optional subsquare letters lower case (a-x).

    Raises:
        InvalidLocator: If the locator is not a valid 4 or 6 character grid.
    """
    if not isinstance(grid, str):
        raise InvalidLocator(grid, "locator must be a string")

    grid = grid.strip()
    if len(grid) not in (4, 6):
        raise InvalidLocator(grid, "locator must be 4 or 6 characters")

    field = grid[:2].upper()
    square = grid[2:4]
    subsquare = grid[4:6].lower()

    if not all('A' <= c <= 'R' for c in field):
        raise InvalidLocator(grid, "field letters must be A-R")
    if not all('0' <= c <= '9' for c in square):
        raise InvalidLocator(grid, "square characters must be digits")
    if not all('a' <= c <= 'x' for c in subsquare):
        raise InvalidLocator(grid, "subsquare letters must be a-x")

    return field + square + subsquare


def is_valid_grid(grid: str) -> bool:
    """Check whether a grid locator is valid."""
    try:
        validate_grid(grid)
        return True
    except InvalidLocator:
        return False


def grid_to_latlon(grid_square: str) -> Tuple[float, float]:
    """
    Convert Maidenhead grid square to the latitude and longitude of its center.

    Args:
        grid_square (str): The Maidenhead grid square (e.g., 'JO59' or 'FN31pr')

    Returns:
        tuple: (latitude, longitude) in degrees
    """
    grid = validate_grid(grid_square)

    # Field: 20 degrees longitude x 10 degrees latitude
    lon = (ord(grid[0]) - ord('A')) * 20.0 - 180.0
    lat = (ord(grid[1]) - ord('A')) * 10.0 - 90.0

    # Square: 2 degrees longitude x 1 degree latitude
    lon += int(grid[2]) * 2.0
    lat += int(grid[3]) * 1.0

    if len(grid) == 6:
        # Subsquare: 5' longitude x 2.5' latitude
        lon += (ord(grid[4]) - ord('a')) * (2.0 / 24.0)
        lat += (ord(grid[5]) - ord('a')) * (1.0 / 24.0)
        lon += 1.0 / 24.0
        lat += 1.0 / 48.0
    else:
        lon += 1.0
        lat += 0.5

    return lat, lon


def latlon_to_grid(lat: float, lon: float, precision: int = 6) -> str:
    """
    Convert latitude and longitude to a Maidenhead grid locator.

    Args:
        lat: Latitude in degrees (-90 to 90)
        lon: Longitude in degrees (-180 to 180)
        precision: Locator length, 4 or 6

    Returns:
        The grid locator containing the point
    """
    if precision not in (4, 6):
        raise ValueError("precision must be 4 or 6")

    # Shift into the positive range and keep the poles/antimeridian inside the grid
    adj_lon = min(max(lon + 180.0, 0.0), 360.0 - 1e-9)
    adj_lat = min(max(lat + 90.0, 0.0), 180.0 - 1e-9)

    grid = chr(ord('A') + int(adj_lon // 20)) + chr(ord('A') + int(adj_lat // 10))
    grid += str(int((adj_lon % 20) // 2)) + str(int(adj_lat % 10))

    if precision == 6:
        grid += chr(ord('a') + int((adj_lon % 2) * 12))
        grid += chr(ord('a') + int((adj_lat % 1) * 24))

    return grid


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great circle distance between two points in kilometers."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))

    return EARTH_RADIUS_KM * c


def calculate_distance(grid1: str, grid2: str) -> float:
    """
    Calculate the great circle distance between two grid squares in kilometers.

    Args:
        grid1 (str): First Maidenhead grid square
        grid2 (str): Second Maidenhead grid square

    Returns:
        float: Distance in kilometers
    """
    lat1, lon1 = grid_to_latlon(grid1)
    lat2, lon2 = grid_to_latlon(grid2)
    return haversine_distance(lat1, lon1, lat2, lon2)


def great_circle_points(lat1: float, lon1: float, lat2: float, lon2: float,
                        count: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sample evenly spaced points along the great circle between two locations.

    Returns:
        (latitudes, longitudes) arrays in degrees, endpoints included
    """
    if count < 2:
        mid_lat = (lat1 + lat2) / 2.0
        mid_lon = (lon1 + lon2) / 2.0
        return np.array([mid_lat]), np.array([mid_lon])

    phi1, lam1, phi2, lam2 = np.radians([lat1, lon1, lat2, lon2])
    p1 = np.array([np.cos(phi1) * np.cos(lam1), np.cos(phi1) * np.sin(lam1), np.sin(phi1)])
    p2 = np.array([np.cos(phi2) * np.cos(lam2), np.cos(phi2) * np.sin(lam2), np.sin(phi2)])

    omega = np.arccos(np.clip(np.dot(p1, p2), -1.0, 1.0))
    fractions = np.linspace(0.0, 1.0, count)

    if np.sin(omega) < 1e-9:
        # Coincident or antipodal: no unique great circle, fall back to linear interpolation
        logger.debug(f"No unique great circle between ({lat1}, {lon1}) and ({lat2}, {lon2})")
        lats = lat1 + fractions * (lat2 - lat1)
        lons = lon1 + fractions * (lon2 - lon1)
        return lats, lons

    a = np.sin((1.0 - fractions) * omega) / np.sin(omega)
    b = np.sin(fractions * omega) / np.sin(omega)
    points = np.outer(a, p1) + np.outer(b, p2)

    lats = np.degrees(np.arctan2(points[:, 2], np.hypot(points[:, 0], points[:, 1])))
    lons = np.degrees(np.arctan2(points[:, 1], points[:, 0]))
    return lats, lons
