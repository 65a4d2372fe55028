"""
Signal model for HF propagation.

Combines grid distance, solar geometry, the band model and the current
propagation state into a 0-1 signal strength between two grid squares.
"""

import random
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Optional
import logging

from .constants import (
    SKIP_ZONE_STRENGTH, OUT_OF_RANGE_STRENGTH, JITTER_MIN, JITTER_MAX,
    SAME_BAND_THRESHOLD, ADJACENT_BAND_THRESHOLD,
)
from .band_model import BandModel
from .grid_math import grid_to_latlon, haversine_distance
from .solar_geometry import day_night_fraction
from .state import PropagationState

logger = logging.getLogger(__name__)


@dataclass
class PathReport:
    """Propagation summary for a single path."""
    grid1: str
    grid2: str
    distance_km: float
    band: int
    frequency_mhz: float
    day_fraction: float
    muf: float
    luf: float
    usable: bool
    strength: float

    def to_dict(self) -> Dict:
        data = asdict(self)
        for key in ('distance_km', 'day_fraction', 'muf', 'luf', 'strength'):
            data[key] = round(data[key], 3)
        return data


class SignalModel:
    """Calculator for signal strength and communicability between stations."""

    def __init__(self, band_model: Optional[BandModel] = None, random_source=None):
        self.band_model = band_model or BandModel()
        # Anything with a uniform(a, b) method; tests pass a fixed source
        self.random_source = random_source or random.Random()

    def _path_geometry(self, grid1: str, grid2: str, now: datetime):
        lat1, lon1 = grid_to_latlon(grid1)
        lat2, lon2 = grid_to_latlon(grid2)
        distance = haversine_distance(lat1, lon1, lat2, lon2)
        day_fraction = day_night_fraction(lat1, lon1, lat2, lon2, now)
        return distance, day_fraction

    def base_strength(self, distance_km: float, band: int, state: PropagationState) -> float:
        """Strength from distance alone: skip zone, out of range, or linear falloff."""
        definition = self.band_model.get_band_definition(band)

        if distance_km < definition.min_distance_km:
            return SKIP_ZONE_STRENGTH
        if distance_km > definition.max_distance_km:
            return OUT_OF_RANGE_STRENGTH

        reliability = state.reliability_for(band, definition.base_reliability)
        span = definition.max_distance_km - definition.min_distance_km
        distance_factor = 1.0 - (distance_km - definition.min_distance_km) / span if span > 0 else 1.0
        return reliability * distance_factor

    def day_night_factor(self, band: int, day_fraction: float) -> float:
        """Day/night multiplier; mid bands are neutral."""
        if self.band_model.band_group(band) == 'mid':
            return 1.0
        definition = self.band_model.get_band_definition(band)
        return day_fraction * definition.day_factor + (1.0 - day_fraction) * definition.night_factor

    def jitter(self) -> float:
        return self.random_source.uniform(JITTER_MIN, JITTER_MAX)

    def _strength(self, distance: float, day_fraction: float, band: int, state: PropagationState) -> float:
        strength = self.base_strength(distance, band, state)
        strength *= self.day_night_factor(band, day_fraction)
        strength *= self.jitter()
        return max(0.0, min(1.0, strength))

    def calculate_signal_strength(self, grid1: str, grid2: str, state: PropagationState,
                                  now: datetime, band: Optional[int] = None) -> float:
        """
        Calculate the signal strength between two grid locators.

        Args:
            grid1: First Maidenhead grid locator
            grid2: Second Maidenhead grid locator
            state: Current propagation state
            now: Time of the calculation
            band: Band to evaluate; defaults to the recommended band for the distance

        Returns:
            Signal strength between 0.0 and 1.0
        """
        distance, day_fraction = self._path_geometry(grid1, grid2, now)
        if band is None:
            band = self.band_model.recommend_band(distance, state.band_reliability)
        return self._strength(distance, day_fraction, band, state)

    def analyze_path(self, grid1: str, grid2: str, state: PropagationState,
                     now: datetime) -> PathReport:
        """Full propagation summary for a path, including MUF and LUF."""
        distance, day_fraction = self._path_geometry(grid1, grid2, now)
        band = self.band_model.recommend_band(distance, state.band_reliability)
        muf = self.band_model.calculate_muf(distance, day_fraction, state.season, state.solar_flux_index)
        luf = self.band_model.calculate_luf(distance, day_fraction, state.k_index)
        logger.debug(f"{grid1}-{grid2}: {distance:.0f} km, {band}m, MUF {muf:.1f}, LUF {luf:.1f}, "
                     f"day fraction {day_fraction:.2f}")

        return PathReport(
            grid1=grid1,
            grid2=grid2,
            distance_km=distance,
            band=band,
            frequency_mhz=self.band_model.band_to_frequency(band),
            day_fraction=day_fraction,
            muf=muf,
            luf=luf,
            usable=self.band_model.is_band_usable(band, muf, luf),
            strength=self._strength(distance, day_fraction, band, state),
        )

    def bands_allow_contact(self, band1: int, band2: int, strength: float) -> bool:
        """Same band needs 0.5 strength, adjacent bands need 0.7."""
        if band1 == band2:
            return strength >= SAME_BAND_THRESHOLD
        if self.band_model.are_adjacent_bands(band1, band2):
            return strength >= ADJACENT_BAND_THRESHOLD
        return False
