"""
Band model for HF propagation.

Holds the static band definition table and handles band lookups,
band recommendations and MUF/LUF estimates.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from .constants import (
    BAND_TABLE, LOW_BANDS, MID_BANDS, FREQUENCY_BAND_LIMITS,
    MUF_DISTANCE_TABLE, LUF_DISTANCE_TABLE, SEASON_MUF_FACTORS,
    MULTI_HOP_DISTANCE_KM, MULTI_HOP_LOSS_PER_1000KM, MULTI_HOP_MIN_FACTOR,
)
from .state import normalize_season

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BandDefinition:
    """Propagation characteristics of one amateur band."""
    band: int
    center_frequency_mhz: float
    min_distance_km: float
    max_distance_km: float
    base_reliability: float
    day_factor: float
    night_factor: float

    def contains(self, distance_km: float) -> bool:
        return self.min_distance_km <= distance_km <= self.max_distance_km

    def to_dict(self) -> Dict:
        return {
            'band': self.band,
            'name': f'{self.band}m',
            'frequency': self.center_frequency_mhz,
            'min_distance_km': self.min_distance_km,
            'max_distance_km': self.max_distance_km,
            'reliability': self.base_reliability,
            'day_factor': self.day_factor,
            'night_factor': self.night_factor,
        }


BAND_DEFINITIONS = tuple(BandDefinition(*row) for row in BAND_TABLE)


def _base_for_distance(table, distance_km: float) -> float:
    for limit, base in table:
        if distance_km < limit:
            return base
    return table[-1][1]


class BandModel:
    """Band definition table with lookups and MUF/LUF formulas."""

    def __init__(self, definitions=BAND_DEFINITIONS):
        self.definitions = tuple(definitions)
        self._by_band = {d.band: d for d in self.definitions}
        self.band_order = [d.band for d in self.definitions]

    def get_band_definition(self, band: int) -> Optional[BandDefinition]:
        return self._by_band.get(band)

    def band_to_frequency(self, band: int) -> float:
        """Center frequency in MHz, or 0.0 for an unknown band."""
        definition = self._by_band.get(band)
        return definition.center_frequency_mhz if definition else 0.0

    def frequency_to_band(self, frequency_mhz: float) -> int:
        """Closest amateur band for a frequency, or 0 if outside HF/6m."""
        for limit, band in FREQUENCY_BAND_LIMITS:
            if frequency_mhz < limit:
                return band
        return 0

    def band_group(self, band: int) -> str:
        """Low bands favour night, high bands favour day, mid bands are neutral."""
        if band in LOW_BANDS:
            return 'low'
        if band in MID_BANDS:
            return 'mid'
        return 'high'

    def band_index(self, band: int) -> int:
        return self.band_order.index(band)

    def are_adjacent_bands(self, band1: int, band2: int) -> bool:
        if band1 not in self._by_band or band2 not in self._by_band:
            return False
        return abs(self.band_index(band1) - self.band_index(band2)) == 1

    def effective_reliability(self, band: int, overrides: Optional[Dict[int, float]] = None) -> float:
        definition = self._by_band[band]
        if overrides and band in overrides:
            return overrides[band]
        return definition.base_reliability

    def recommend_band(self, distance_km: float, reliability: Optional[Dict[int, float]] = None) -> int:
        """
        Recommend the band whose distance range best contains a path length.

        The best band is the one where the distance sits closest to the middle
        of its range; ties go to the more reliable band. When no band covers
        the distance, the band with the nearest range edge wins.
        """
        candidates = [d for d in self.definitions if d.contains(distance_km)]

        if candidates:
            def score(definition):
                span = definition.max_distance_km - definition.min_distance_km
                position = (distance_km - definition.min_distance_km) / span if span > 0 else 0.5
                return (round(abs(position - 0.5), 9),
                        -self.effective_reliability(definition.band, reliability))
            return min(candidates, key=score).band

        def edge_distance(definition):
            if distance_km < definition.min_distance_km:
                gap = definition.min_distance_km - distance_km
            else:
                gap = distance_km - definition.max_distance_km
            return (gap, -self.effective_reliability(definition.band, reliability))

        band = min(self.definitions, key=edge_distance).band
        logger.debug(f"No band covers {distance_km:.0f} km, using nearest range {band}m")
        return band

    def calculate_muf(self, distance_km: float, day_fraction: float, season, sfi: float) -> float:
        """
        Maximum Usable Frequency (MHz) for a path.

        Grows with daylight and solar flux, shrinks for multi-hop paths
        beyond 4000 km.
        """
        base_muf = _base_for_distance(MUF_DISTANCE_TABLE, distance_km)
        day_night_factor = 0.7 + 0.6 * day_fraction
        season_factor = SEASON_MUF_FACTORS[normalize_season(season)]
        sfi_factor = 0.5 + sfi / 200.0

        hop_factor = 1.0
        if distance_km > MULTI_HOP_DISTANCE_KM:
            extra_thousands = (distance_km - MULTI_HOP_DISTANCE_KM) / 1000.0
            hop_factor = max(MULTI_HOP_MIN_FACTOR, 1.0 - MULTI_HOP_LOSS_PER_1000KM * extra_thousands)

        return base_muf * day_night_factor * season_factor * sfi_factor * hop_factor

    def calculate_luf(self, distance_km: float, day_fraction: float, k_index: float) -> float:
        """
        Lowest Usable Frequency (MHz) for a path.

        Rises with geomagnetic activity and falls as more of the path is in daylight.
        """
        base_luf = _base_for_distance(LUF_DISTANCE_TABLE, distance_km)
        day_night_factor = 1.0 - 0.5 * day_fraction
        k_factor = 1.0 + k_index / 10.0
        return base_luf * day_night_factor * k_factor

    def is_band_usable(self, band: int, muf: float, luf: float) -> bool:
        frequency = self.band_to_frequency(band)
        return luf <= frequency <= muf

    def usable_bands(self, muf: float, luf: float) -> List[int]:
        return [d.band for d in self.definitions if luf <= d.center_frequency_mhz <= muf]
