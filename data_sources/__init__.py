"""
Data sources module for HF band simulation.

This module contains classes for fetching data from external sources:
- Band propagation levels (DXView)
- Solar weather indices (NOAA SWPC)
"""

from .dxview_data import DXViewDataProvider, BandConditions
from .swpc_data import SWPCDataProvider, SolarIndices
from .feed_manager import ExternalFeedManager, DXVIEW, SWPC

__all__ = [
    'DXViewDataProvider',
    'BandConditions',
    'SWPCDataProvider',
    'SolarIndices',
    'ExternalFeedManager',
    'DXVIEW',
    'SWPC'
]
