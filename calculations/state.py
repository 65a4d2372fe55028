"""
Propagation state shared by the signal and band models.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional

from .constants import SFI_MIN, SFI_MAX, K_INDEX_MIN, K_INDEX_MAX

SEASONS = ('Winter', 'Spring', 'Summer', 'Fall')


def clamp(value, low, high):
    return max(low, min(high, value))


def normalize_season(season) -> str:
    """Accept a season name (any case) or index 0-3 and return the canonical name."""
    if isinstance(season, int) and not isinstance(season, bool):
        return SEASONS[clamp(season, 0, len(SEASONS) - 1)]
    name = str(season).strip().capitalize()
    if name == 'Autumn':
        name = 'Fall'
    if name not in SEASONS:
        raise ValueError(f"Unknown season: {season!r}")
    return name


@dataclass
class PropagationState:
    """Solar, geomagnetic and configuration inputs to a propagation computation."""

    solar_flux_index: int = 120
    k_index: int = 3
    season: str = 'Winter'
    auto_time_enabled: bool = True
    use_external_data: bool = False
    use_dxview_data: bool = False
    use_swpc_data: bool = False
    last_external_update: Optional[datetime] = None
    band_reliability: Dict[int, float] = field(default_factory=dict)

    def __post_init__(self):
        self.solar_flux_index = int(clamp(round(self.solar_flux_index), SFI_MIN, SFI_MAX))
        self.k_index = int(clamp(round(self.k_index), K_INDEX_MIN, K_INDEX_MAX))
        self.season = normalize_season(self.season)

    @classmethod
    def from_config(cls, config) -> 'PropagationState':
        """Build the initial state from a Config class."""
        return cls(
            solar_flux_index=config.SOLAR_FLUX_INDEX,
            k_index=config.K_INDEX,
            season=config.SEASON,
            auto_time_enabled=config.AUTO_TIME_ENABLED,
            use_external_data=config.USE_EXTERNAL_DATA,
            use_dxview_data=config.USE_DXVIEW_DATA,
            use_swpc_data=config.USE_SWPC_DATA,
        )

    def copy(self) -> 'PropagationState':
        """Snapshot that can be read without holding the engine lock."""
        return replace(self, band_reliability=dict(self.band_reliability))

    def reliability_for(self, band: int, default: float) -> float:
        return self.band_reliability.get(band, default)

    def to_dict(self) -> Dict:
        return {
            'solar_flux_index': self.solar_flux_index,
            'k_index': self.k_index,
            'season': self.season,
            'auto_time_enabled': self.auto_time_enabled,
            'use_external_data': self.use_external_data,
            'use_dxview_data': self.use_dxview_data,
            'use_swpc_data': self.use_swpc_data,
            'last_external_update': (self.last_external_update.isoformat()
                                     if self.last_external_update else None),
            'band_reliability': {str(band): value for band, value in self.band_reliability.items()},
        }
