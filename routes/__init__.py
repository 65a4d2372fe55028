"""
Route modules for HF Band Simulation.
"""

from .api import api_bp

__all__ = [
    'api_bp'
]
