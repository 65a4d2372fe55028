"""
DXView band propagation provider for HF band simulation.

Fetches per-band propagation quality and converts it into band
reliability values for the signal model.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

import requests

from calculations.constants import API_TIMEOUT_DEFAULT, BAND_ORDER, QUALITY_LABELS
from exceptions import FeedUnavailable, ParseError
from .helpers import band_from_key, extract_number, to_float

logger = logging.getLogger(__name__)


@dataclass
class BandConditions:
    """Band propagation levels reported by a feed."""
    band_reliability: Dict[int, float] = field(default_factory=dict)
    solar_flux_index: Optional[float] = None
    k_index: Optional[float] = None


class DXViewDataProvider:
    """Provider for band propagation data from DXView."""

    source = 'DXView'

    def __init__(self, url: str = "https://hf.dxview.org/api/propagation",
                 timeout: float = API_TIMEOUT_DEFAULT):
        self.url = url
        self.timeout = timeout

    def fetch(self) -> bytes:
        """Fetch the raw payload."""
        try:
            response = requests.get(self.url, timeout=self.timeout,
                                    headers={'Accept': 'application/json'})
        except requests.RequestException as e:
            raise FeedUnavailable(self.source, str(e)) from e

        if response.status_code != 200:
            raise FeedUnavailable(self.source, f"HTTP {response.status_code}")
        return response.content

    def _quality_to_reliability(self, value) -> Optional[float]:
        """Scale a 0-10 quality (or a quality label) to a 0-1 reliability."""
        if isinstance(value, dict):
            value = value.get('quality', value.get('level'))

        quality = None
        if isinstance(value, str) and value.strip().lower() in QUALITY_LABELS:
            quality = QUALITY_LABELS[value.strip().lower()]
        else:
            quality = to_float(value)

        if quality is None:
            return None
        return max(0.0, min(1.0, quality / 10.0))

    def parse(self, raw: bytes) -> BandConditions:
        """Parse a payload into band conditions."""
        try:
            payload = json.loads(raw)
        except (ValueError, TypeError) as e:
            raise ParseError(f"Invalid JSON from {self.source}: {e}") from e

        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected {self.source} payload structure")

        conditions = BandConditions(
            solar_flux_index=extract_number(payload, ('sfi', 'solarflux', 'solar_flux')),
            k_index=extract_number(payload, ('kindex', 'k_index', 'kp')),
        )

        bands = payload.get('bands')
        if isinstance(bands, dict):
            for key, band_data in bands.items():
                band = band_from_key(key)
                if band not in BAND_ORDER:
                    continue
                reliability = self._quality_to_reliability(band_data)
                if reliability is not None:
                    conditions.band_reliability[band] = reliability
        elif bands is not None:
            logger.debug(f"Ignoring {self.source} bands field of type {type(bands).__name__}")

        if (not conditions.band_reliability and conditions.solar_flux_index is None
                and conditions.k_index is None):
            raise ParseError(f"No propagation data in {self.source} payload")
        return conditions

    def get_band_conditions(self) -> BandConditions:
        """Fetch and parse; every failure surfaces as FeedUnavailable."""
        raw = self.fetch()
        try:
            conditions = self.parse(raw)
        except ParseError as e:
            raise FeedUnavailable(self.source, str(e)) from e

        logger.debug(f"DXView conditions for {len(conditions.band_reliability)} bands")
        return conditions
