"""
SWPC solar weather provider for HF band simulation.

Fetches the current solar flux index and K-index from the NOAA Space
Weather Prediction Center.
"""

import json
from dataclasses import dataclass
from typing import Optional
import logging

import requests

from calculations.constants import API_TIMEOUT_DEFAULT
from exceptions import FeedUnavailable, ParseError
from .helpers import extract_number, latest_record

logger = logging.getLogger(__name__)

SFI_KEYS = ('sfi', 'flux', 'Flux', 'solar_flux', 'f10.7', 'f107')
K_INDEX_KEYS = ('k_index', 'kindex', 'kp', 'Kp', 'kp_index', 'estimated_kp')


@dataclass
class SolarIndices:
    """Solar and geomagnetic indices reported by a feed."""
    solar_flux_index: Optional[float] = None
    k_index: Optional[float] = None


class SWPCDataProvider:
    """Provider for solar weather data from NOAA SWPC."""

    source = 'SWPC'

    def __init__(self, url: str = "https://services.swpc.noaa.gov/products/summary/solar-indices.json",
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

    def parse(self, raw: bytes) -> SolarIndices:
        """Parse a payload into solar indices."""
        try:
            payload = json.loads(raw)
        except (ValueError, TypeError) as e:
            raise ParseError(f"Invalid JSON from {self.source}: {e}") from e

        record = latest_record(payload)
        if record is None:
            raise ParseError(f"Unexpected {self.source} payload structure")

        indices = SolarIndices(
            solar_flux_index=extract_number(record, SFI_KEYS),
            k_index=extract_number(record, K_INDEX_KEYS),
        )
        if indices.solar_flux_index is None and indices.k_index is None:
            raise ParseError(f"No solar indices in {self.source} payload")
        return indices

    def get_solar_indices(self) -> SolarIndices:
        """Fetch and parse; every failure surfaces as FeedUnavailable."""
        raw = self.fetch()
        try:
            indices = self.parse(raw)
        except ParseError as e:
            raise FeedUnavailable(self.source, str(e)) from e

        logger.debug(f"SWPC indices: SFI={indices.solar_flux_index}, K={indices.k_index}")
        return indices
