"""
Band <-> host channel routing tables.
"""

from typing import Dict, Optional

from calculations.constants import DEFAULT_BAND_CHANNELS


class ChannelRouter:
    """Bidirectional mapping between bands and host channel ids."""

    def __init__(self, band_channels: Optional[Dict[int, int]] = None):
        mapping = dict(band_channels if band_channels is not None else DEFAULT_BAND_CHANNELS)
        if len(set(mapping.values())) != len(mapping):
            raise ValueError("Band to channel mapping must be one-to-one")
        self._band_channels = mapping
        self._channel_bands = {channel: band for band, channel in mapping.items()}

    def get_band_channel(self, band: int) -> Optional[int]:
        """Channel id for a band, or None if the band has no channel."""
        return self._band_channels.get(band)

    def get_channel_band(self, channel_id) -> Optional[int]:
        """Band for a channel id, or None if it is not a band channel."""
        return self._channel_bands.get(channel_id)

    def is_band_channel(self, channel_id) -> bool:
        return channel_id in self._channel_bands

    def as_dict(self) -> Dict[int, int]:
        return dict(self._band_channels)
