"""
External feed manager for HF band simulation.

Gates the optional DXView and SWPC feeds behind their toggles, throttles
refreshes to a minimum interval, and runs fetches on a worker pool so no
propagation query ever waits on the network.
"""

import time
import threading
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures
from typing import Callable, Dict, List, Optional
import logging

from calculations.constants import EXTERNAL_REFRESH_DEFAULT
from calculations.state import PropagationState
from exceptions import FeedUnavailable
from utils.events import EventEmitter, EXTERNAL_DATA_UPDATED
from .dxview_data import DXViewDataProvider, BandConditions
from .swpc_data import SWPCDataProvider, SolarIndices

logger = logging.getLogger(__name__)

DXVIEW = DXViewDataProvider.source
SWPC = SWPCDataProvider.source


class ExternalFeedManager:
    """Schedules external data fetches and hands results to apply callbacks."""

    def __init__(self,
                 apply_band_conditions: Callable[[BandConditions], None],
                 apply_solar_indices: Callable[[SolarIndices], None],
                 events: EventEmitter,
                 dxview_provider: Optional[DXViewDataProvider] = None,
                 swpc_provider: Optional[SWPCDataProvider] = None,
                 min_interval: float = EXTERNAL_REFRESH_DEFAULT,
                 executor=None,
                 clock=time.time):
        self.dxview_provider = dxview_provider or DXViewDataProvider()
        self.swpc_provider = swpc_provider or SWPCDataProvider()
        self.apply_band_conditions = apply_band_conditions
        self.apply_solar_indices = apply_solar_indices
        self.events = events
        self.min_interval = min_interval
        self._owns_executor = executor is None
        self.executor = executor or self._new_executor()
        self._clock = clock
        self._lock = threading.Lock()
        self._last_attempt: Dict[str, float] = {}
        self._pending = set()
        self.stats = {
            DXVIEW: {'attempts': 0, 'successes': 0, 'failures': 0, 'last_error': None},
            SWPC: {'attempts': 0, 'successes': 0, 'failures': 0, 'last_error': None},
        }

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=2, thread_name_prefix='feed')

    def start(self):
        """Replace an owned worker pool that was shut down by shutdown()."""
        if self._owns_executor and self.executor is None:
            self.executor = self._new_executor()
            logger.debug("Feed worker pool restarted")

    def is_enabled(self, source: str, state: PropagationState) -> bool:
        """A feed runs only when the master switch and its own toggle are on."""
        if not state.use_external_data:
            return False
        if source == DXVIEW:
            return state.use_dxview_data
        if source == SWPC:
            return state.use_swpc_data
        return False

    def _due(self, source: str, now: float) -> bool:
        # Caller holds self._lock
        last = self._last_attempt.get(source)
        return last is None or now - last >= self.min_interval

    def is_due(self, source: str) -> bool:
        with self._lock:
            return self._due(source, self._clock())

    def request_refresh(self, state: PropagationState, sources=None, force: bool = False) -> List[str]:
        """
        Schedule fetches for enabled feeds that are due.

        A feed that cannot be handed to the worker pool is reported as a
        failed attempt instead of raising.

        Returns:
            The sources that were scheduled
        """
        sources = sources or (DXVIEW, SWPC)
        scheduled = []

        for source in sources:
            if not self.is_enabled(source, state):
                continue

            with self._lock:
                now = self._clock()
                if not force and not self._due(source, now):
                    logger.debug(f"Skipping {source} refresh, last attempt "
                                 f"{now - self._last_attempt[source]:.0f}s ago")
                    continue
                previous = self._last_attempt.get(source)
                self._last_attempt[source] = now
                executor = self.executor

            try:
                if executor is None:
                    raise RuntimeError("feed worker pool is shut down")
                future = executor.submit(self._refresh, source)
            except RuntimeError as e:
                logger.warning(f"Could not schedule {source} refresh: {e}")
                with self._lock:
                    # Nothing was fetched, so the throttle slot is given back
                    if self._last_attempt.get(source) == now:
                        if previous is None:
                            del self._last_attempt[source]
                        else:
                            self._last_attempt[source] = previous
                self._record_attempt(source, str(e))
                self.events.emit(EXTERNAL_DATA_UPDATED, source, False)
                continue

            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._discard_future)
            scheduled.append(source)
            logger.info(f"Scheduled {source} refresh")

        return scheduled

    def _discard_future(self, future):
        with self._lock:
            self._pending.discard(future)

    def _record_attempt(self, source: str, error: Optional[str] = None):
        with self._lock:
            stats = self.stats[source]
            stats['attempts'] += 1
            if error is None:
                stats['successes'] += 1
            else:
                stats['failures'] += 1
            stats['last_error'] = error

    def _refresh(self, source: str) -> bool:
        """Fetch, parse and apply one feed. Runs on a worker thread."""
        try:
            if source == DXVIEW:
                self.apply_band_conditions(self.dxview_provider.get_band_conditions())
            else:
                self.apply_solar_indices(self.swpc_provider.get_solar_indices())
        except FeedUnavailable as e:
            logger.warning(str(e))
            self._record_attempt(source, str(e))
            self.events.emit(EXTERNAL_DATA_UPDATED, source, False)
            return False
        except Exception as e:
            logger.error(f"Error applying {source} data: {e}")
            self._record_attempt(source, str(e))
            self.events.emit(EXTERNAL_DATA_UPDATED, source, False)
            return False

        self._record_attempt(source)
        logger.info(f"Updated propagation data from {source}")
        self.events.emit(EXTERNAL_DATA_UPDATED, source, True)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight fetches; returns True when none remain."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self):
        if not self._owns_executor:
            return
        with self._lock:
            executor, self.executor = self.executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    def get_status(self) -> Dict:
        with self._lock:
            last_attempt = dict(self._last_attempt)
            pending = len(self._pending)
            feeds = {source: dict(values) for source, values in self.stats.items()}
        return {
            'min_interval': self.min_interval,
            'pending': pending,
            'last_attempt': last_attempt,
            'feeds': feeds,
        }
