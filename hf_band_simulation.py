"""
HF band propagation simulation engine.

Tracks the grid locator and channel of every connected session, caches
per-pair signal strengths, applies configuration and external feed data
to the propagation state, and recomputes conditions on a schedule.
"""

import random
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Hashable, List, Optional
import logging

import pytz

from calculations.band_model import BandModel
from calculations.grid_math import validate_grid
from calculations.signal_model import SignalModel, PathReport
from calculations.solar_geometry import season_for_date
from calculations.state import PropagationState, clamp, normalize_season
from calculations.constants import SFI_MIN, SFI_MAX, K_INDEX_MIN, K_INDEX_MAX
from channel_router import ChannelRouter
from config import get_config
from data_sources.dxview_data import DXViewDataProvider, BandConditions
from data_sources.feed_manager import ExternalFeedManager, DXVIEW, SWPC
from data_sources.swpc_data import SWPCDataProvider, SolarIndices
from exceptions import StaleCache
from utils.background_tasks import TaskManager
from utils.events import (
    EventEmitter, PROPAGATION_UPDATED, SIGNAL_STRENGTH_CHANGED, MUF_CHANGED,
)
from utils.signal_cache import SignalCache, pair_key

logger = logging.getLogger(__name__)

UPDATE_TASK = 'propagation_update'


@dataclass
class UserLocation:
    """Location metadata for one connected session."""
    session: Hashable
    grid: Optional[str] = None
    channel_id: Optional[Hashable] = None


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def require_bool(name: str, value):
    # bool('false') is True, so strings are refused
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be true or false, got {value!r}")


class HFBandSimulation:
    """Propagation engine deciding which stations can hear each other."""

    def __init__(self, config=None, state: Optional[PropagationState] = None,
                 band_model: Optional[BandModel] = None, random_source=None,
                 router: Optional[ChannelRouter] = None,
                 dxview_provider: Optional[DXViewDataProvider] = None,
                 swpc_provider: Optional[SWPCDataProvider] = None,
                 feed_executor=None, clock: Callable[[], datetime] = utc_now):
        self.config = config or get_config()
        self.band_model = band_model or BandModel()
        self.signal_model = SignalModel(self.band_model, random_source)
        self.router = router or ChannelRouter()
        self.state = state.copy() if state else PropagationState.from_config(self.config)
        self.update_interval = self.config.UPDATE_INTERVAL
        self.simulate_solar_drift = self.config.SIMULATE_SOLAR_DRIFT
        self._clock = clock
        self._drift_random = random.Random()

        # Guards the user registry, the state and the change trackers
        self._lock = threading.RLock()
        self._users: Dict[Hashable, UserLocation] = {}
        self._last_strengths: Dict[frozenset, float] = {}
        self._last_muf: Optional[float] = None

        self.cache = SignalCache(max_age=self.update_interval)
        self.events = EventEmitter()
        self.feeds = ExternalFeedManager(
            self._apply_band_conditions,
            self._apply_solar_indices,
            self.events,
            dxview_provider=dxview_provider or DXViewDataProvider(self.config.DXVIEW_URL, self.config.FEED_TIMEOUT),
            swpc_provider=swpc_provider or SWPCDataProvider(self.config.SWPC_URL, self.config.FEED_TIMEOUT),
            min_interval=self.config.EXTERNAL_REFRESH_INTERVAL,
            executor=feed_executor,
        )
        self.task_manager = TaskManager()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Run an initial update and start the periodic update task."""
        self.feeds.start()
        self.task_manager.add_task(UPDATE_TASK, self.update_propagation, self.update_interval)
        self.update_propagation()
        self.task_manager.start_all()
        logger.info(f"HF band simulation started (update interval: {self.update_interval}s)")

    def stop(self):
        self.task_manager.stop_all()
        self.feeds.shutdown()
        logger.info("HF band simulation stopped")

    def subscribe(self, event: str, callback: Callable) -> Callable[[], None]:
        """Subscribe to propagationUpdated, signalStrengthChanged, mufChanged or externalDataUpdated."""
        return self.events.subscribe(event, callback)

    # ------------------------------------------------------------------
    # User registry
    # ------------------------------------------------------------------

    def register_user_grid(self, session: Hashable, grid: str) -> str:
        """
        Record a session's Maidenhead locator.

        Raises:
            InvalidLocator: If the locator is malformed
        """
        normalized = validate_grid(grid)

        with self._lock:
            user = self._users.get(session)
            if user is None:
                self._users[session] = UserLocation(session, normalized)
            elif user.grid == normalized:
                return normalized
            else:
                user.grid = normalized
            self._forget_session(session)

        logger.info(f"Registered grid {normalized} for session {session}")
        return normalized

    def remove_user(self, session: Hashable) -> bool:
        """Forget a disconnected session and its cached pairs."""
        with self._lock:
            removed = self._users.pop(session, None) is not None
            self._forget_session(session)

        if removed:
            logger.info(f"Removed session {session}")
        return removed

    def join_channel(self, session: Hashable, channel_id: Hashable):
        with self._lock:
            user = self._users.get(session)
            if user is None:
                self._users[session] = UserLocation(session, channel_id=channel_id)
            else:
                user.channel_id = channel_id

    def leave_channel(self, session: Hashable):
        with self._lock:
            user = self._users.get(session)
            if user is not None:
                user.channel_id = None

    def get_user_grid(self, session: Hashable) -> Optional[str]:
        with self._lock:
            user = self._users.get(session)
            return user.grid if user else None

    def get_users(self) -> List[UserLocation]:
        with self._lock:
            return [UserLocation(u.session, u.grid, u.channel_id) for u in self._users.values()]

    def _forget_session(self, session: Hashable):
        # Caller holds self._lock
        self.cache.purge_session(session)
        for key in [key for key in self._last_strengths if session in key]:
            del self._last_strengths[key]

    # ------------------------------------------------------------------
    # Propagation state
    # ------------------------------------------------------------------

    def get_state(self) -> PropagationState:
        """Snapshot of the current propagation state."""
        with self._lock:
            return self.state.copy()

    def set_solar_flux_index(self, sfi: int) -> int:
        with self._lock:
            self.state.solar_flux_index = int(clamp(round(sfi), SFI_MIN, SFI_MAX))
            value = self.state.solar_flux_index
        logger.info(f"Solar flux index set to {value}")
        self._invalidate()
        return value

    def set_k_index(self, k_index: int) -> int:
        with self._lock:
            self.state.k_index = int(clamp(round(k_index), K_INDEX_MIN, K_INDEX_MAX))
            value = self.state.k_index
        logger.info(f"K-index set to {value}")
        self._invalidate()
        return value

    def set_season(self, season) -> str:
        with self._lock:
            self.state.season = normalize_season(season)
            value = self.state.season
            if self.state.auto_time_enabled:
                logger.warning("Season set while automatic time is enabled; the next update will override it")
        self._invalidate()
        return value

    def set_auto_time(self, enabled: bool):
        require_bool('auto_time_enabled', enabled)
        with self._lock:
            self.state.auto_time_enabled = enabled
            if enabled:
                self.state.season = season_for_date(self._clock())
        self._invalidate()

    def set_band_reliability(self, band: int, reliability: Optional[float]):
        """Override a band's reliability; None restores the table value."""
        if self.band_model.get_band_definition(band) is None:
            raise ValueError(f"Unknown band: {band}")

        with self._lock:
            if reliability is None:
                self.state.band_reliability.pop(band, None)
            else:
                self.state.band_reliability[band] = clamp(float(reliability), 0.0, 1.0)
        self._invalidate()

    def set_use_external_data(self, use: bool):
        require_bool('use_external_data', use)
        with self._lock:
            self.state.use_external_data = use
            snapshot = self.state.copy()
        if use:
            self.feeds.request_refresh(snapshot)

    def set_use_dxview_data(self, use: bool):
        require_bool('use_dxview_data', use)
        with self._lock:
            self.state.use_dxview_data = use
            snapshot = self.state.copy()
        if use:
            self.feeds.request_refresh(snapshot, sources=(DXVIEW,))

    def set_use_swpc_data(self, use: bool):
        require_bool('use_swpc_data', use)
        with self._lock:
            self.state.use_swpc_data = use
            snapshot = self.state.copy()
        if use:
            self.feeds.request_refresh(snapshot, sources=(SWPC,))

    def set_update_interval(self, seconds: float):
        if seconds <= 0:
            raise ValueError("Update interval must be positive")
        self.update_interval = seconds
        self.cache.max_age = seconds
        if UPDATE_TASK in self.task_manager.tasks:
            self.task_manager.set_interval(UPDATE_TASK, seconds)

    def _apply_band_conditions(self, conditions: BandConditions):
        with self._lock:
            if conditions.band_reliability:
                self.state.band_reliability = dict(conditions.band_reliability)
            self._apply_indices(conditions.solar_flux_index, conditions.k_index)
            self.state.last_external_update = self._clock()
        self._invalidate()

    def _apply_solar_indices(self, indices: SolarIndices):
        with self._lock:
            self._apply_indices(indices.solar_flux_index, indices.k_index)
            self.state.last_external_update = self._clock()
        self._invalidate()

    def _apply_indices(self, sfi: Optional[float], k_index: Optional[float]):
        # Caller holds self._lock
        if sfi is not None:
            self.state.solar_flux_index = int(clamp(round(sfi), SFI_MIN, SFI_MAX))
        if k_index is not None:
            self.state.k_index = int(clamp(round(k_index), K_INDEX_MIN, K_INDEX_MAX))

    def _drift_solar_conditions(self):
        # Caller holds self._lock; 10% chance of a significant change
        if self._drift_random.random() < 0.1:
            self.state.solar_flux_index = int(clamp(
                self.state.solar_flux_index + self._drift_random.randint(-20, 20), SFI_MIN, SFI_MAX))
            self.state.k_index = int(clamp(
                self.state.k_index + self._drift_random.randint(-2, 2), K_INDEX_MIN, K_INDEX_MAX))
            logger.debug(f"Solar conditions drifted: SFI = {self.state.solar_flux_index}, "
                         f"K-index = {self.state.k_index}")

    def _invalidate(self):
        self.cache.clear()
        self.events.emit(PROPAGATION_UPDATED)

    def update_propagation(self):
        """
        Periodic update: refresh the season, trigger due external feeds,
        clear the signal cache and notify subscribers.
        """
        now = self._clock()

        with self._lock:
            if self.state.auto_time_enabled:
                self.state.season = season_for_date(now)
            if not self.state.use_external_data and self.simulate_solar_drift:
                self._drift_solar_conditions()
            snapshot = self.state.copy()

        try:
            if snapshot.use_external_data:
                self.feeds.request_refresh(snapshot)
        finally:
            self._invalidate()

        logger.debug(f"Propagation updated: SFI={snapshot.solar_flux_index}, "
                     f"K={snapshot.k_index}, season={snapshot.season}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def calculate_propagation(self, session1: Hashable, session2: Hashable) -> float:
        """Signal strength between two sessions, 0.0 when either lacks a grid."""
        key = pair_key(session1, session2)

        with self._lock:
            user1 = self._users.get(session1)
            user2 = self._users.get(session2)
            if not user1 or not user2 or not user1.grid or not user2.grid:
                return 0.0

            cached = self.cache.get(key)
            if cached is not None:
                return cached

            generation = self.cache.generation
            grid1, grid2 = user1.grid, user2.grid
            state = self.state.copy()

        report = self.signal_model.analyze_path(grid1, grid2, state, self._clock())

        try:
            strength = self.cache.set_if_absent(key, report.strength, generation)
        except StaleCache as e:
            logger.debug(f"{e}; returning uncached value")
            return report.strength

        self._notify_changes(key, report, strength)
        return strength

    def _notify_changes(self, key: frozenset, report: PathReport, strength: float):
        with self._lock:
            previous = self._last_strengths.get(key)
            self._last_strengths[key] = strength
            muf_changed = self._last_muf is None or abs(self._last_muf - report.muf) > 1e-6
            if muf_changed:
                self._last_muf = report.muf

        if previous is None or abs(previous - strength) > 1e-9:
            self.events.emit(SIGNAL_STRENGTH_CHANGED, report.grid1, report.grid2, strength)
        if muf_changed:
            self.events.emit(MUF_CHANGED, report.muf)

    def calculate_signal_strength(self, grid1: str, grid2: str, band: Optional[int] = None) -> float:
        """Uncached signal strength between two locators."""
        grid1, grid2 = validate_grid(grid1), validate_grid(grid2)
        state = self.get_state()
        return self.signal_model.calculate_signal_strength(grid1, grid2, state, self._clock(), band)

    def analyze_path(self, grid1: str, grid2: str) -> PathReport:
        grid1, grid2 = validate_grid(grid1), validate_grid(grid2)
        state = self.get_state()
        return self.signal_model.analyze_path(grid1, grid2, state, self._clock())

    def can_communicate(self, session1: Hashable, session2: Hashable) -> bool:
        """
        Decide whether two sessions can hear each other.

        Users sharing a non-band channel always can. On band channels the
        same band needs 0.5 signal strength and an adjacent band 0.7.
        """
        with self._lock:
            user1 = self._users.get(session1)
            user2 = self._users.get(session2)
            if not user1 or not user2 or not user1.grid or not user2.grid:
                return False
            channel1, channel2 = user1.channel_id, user2.channel_id

        band1 = self.router.get_channel_band(channel1) if channel1 is not None else None
        band2 = self.router.get_channel_band(channel2) if channel2 is not None else None

        if channel1 is not None and channel1 == channel2 and band1 is None:
            return True
        if band1 is None or band2 is None:
            return False

        strength = self.calculate_propagation(session1, session2)
        return self.signal_model.bands_allow_contact(band1, band2, strength)

    def recommend_band(self, distance_km: float) -> int:
        with self._lock:
            reliability = dict(self.state.band_reliability)
        return self.band_model.recommend_band(distance_km, reliability)

    def get_band_channel(self, band: int) -> Optional[int]:
        return self.router.get_band_channel(band)

    def get_channel_band(self, channel_id) -> Optional[int]:
        return self.router.get_channel_band(channel_id)

    def get_status(self) -> Dict:
        """Current state, registry size, cache and scheduler status."""
        with self._lock:
            state = self.state.to_dict()
            users = len(self._users)
            located = sum(1 for u in self._users.values() if u.grid)
            last_muf = self._last_muf

        return {
            'state': state,
            'users': users,
            'located_users': located,
            'last_muf': round(last_muf, 2) if last_muf is not None else None,
            'update_interval': self.update_interval,
            'cache': self.cache.get_stats(),
            'scheduler': self.task_manager.get_status(),
            'external_data': self.feeds.get_status(),
            'timestamp': self._clock().isoformat(),
        }
