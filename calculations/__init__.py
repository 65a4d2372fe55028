"""
Calculation utilities for HF band simulation.

This module contains calculation utilities for:
- Maidenhead grid math
- Solar geometry
- Band definitions and MUF/LUF estimates
- Signal strength between stations
"""

from .band_model import BandModel, BandDefinition, BAND_DEFINITIONS
from .signal_model import SignalModel, PathReport
from .state import PropagationState, SEASONS

__all__ = [
    'BandModel',
    'BandDefinition',
    'BAND_DEFINITIONS',
    'SignalModel',
    'PathReport',
    'PropagationState',
    'SEASONS'
]
