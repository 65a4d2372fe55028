"""
Utility modules for HF Band Simulation.
"""

from .logging_config import setup_logging
from .background_tasks import TaskManager
from .signal_cache import SignalCache, pair_key
from .events import EventEmitter

__all__ = [
    'setup_logging',
    'TaskManager',
    'SignalCache',
    'pair_key',
    'EventEmitter'
]
