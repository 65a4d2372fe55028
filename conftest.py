"""
Pytest configuration and fixtures for HF band simulation tests.
"""

from concurrent.futures import Future
from datetime import datetime
from unittest.mock import Mock

import pytest
import pytz

from calculations.state import PropagationState
from config import TestingConfig
from hf_band_simulation import HFBandSimulation

# Early morning in Oslo, late evening in Connecticut
WINTER_NIGHT = datetime(2024, 1, 15, 4, 0, tzinfo=pytz.utc)


class ImmediateExecutor:
    """Runs submitted work on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def winter_night():
    return WINTER_NIGHT


@pytest.fixture
def fixed_jitter():
    """Random source whose jitter is always 1.0."""
    return Mock(uniform=Mock(return_value=1.0))


@pytest.fixture
def winter_state():
    return PropagationState(solar_flux_index=120, k_index=2, season='Winter',
                            auto_time_enabled=False)


@pytest.fixture
def make_engine(fixed_jitter, winter_state):
    """Factory for engines with a fixed clock and synchronous feeds."""
    engines = []

    def factory(**kwargs):
        kwargs.setdefault('config', TestingConfig)
        kwargs.setdefault('state', winter_state)
        kwargs.setdefault('random_source', fixed_jitter)
        kwargs.setdefault('clock', lambda: WINTER_NIGHT)
        kwargs.setdefault('feed_executor', ImmediateExecutor())
        engine = HFBandSimulation(**kwargs)
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        engine.stop()


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()
