"""
Tests for the HF band simulation engine.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest

from calculations.state import PropagationState
from data_sources.dxview_data import DXViewDataProvider, BandConditions
from data_sources.swpc_data import SWPCDataProvider, SolarIndices
from exceptions import FeedUnavailable, InvalidLocator
from hf_band_simulation import HFBandSimulation, UPDATE_TASK
from utils.events import (
    PROPAGATION_UPDATED, SIGNAL_STRENGTH_CHANGED, MUF_CHANGED, EXTERNAL_DATA_UPDATED,
)
from utils.signal_cache import pair_key


def place(engine, **sessions):
    for session, grid in sessions.items():
        engine.register_user_grid(session, grid)


def failing_providers():
    dxview = Mock(spec=DXViewDataProvider)
    dxview.get_band_conditions.side_effect = FeedUnavailable('DXView', "HTTP 502")
    swpc = Mock(spec=SWPCDataProvider)
    swpc.get_solar_indices.side_effect = FeedUnavailable('SWPC', "connection refused")
    return dxview, swpc


def working_providers():
    dxview = Mock(spec=DXViewDataProvider)
    dxview.get_band_conditions.return_value = BandConditions({20: 0.6, 15: 0.4}, k_index=4)
    swpc = Mock(spec=SWPCDataProvider)
    swpc.get_solar_indices.return_value = SolarIndices(solar_flux_index=185.0, k_index=1.0)
    return dxview, swpc


# Registry

def test_register_user_grid_normalizes(engine):
    assert engine.register_user_grid('alice', 'jo59JW') == 'JO59jw'
    assert engine.get_user_grid('alice') == 'JO59jw'


def test_register_user_grid_rejects_malformed(engine):
    with pytest.raises(InvalidLocator):
        engine.register_user_grid('alice', 'XX99')
    assert engine.get_user_grid('alice') is None


def test_channels_without_grid(engine):
    engine.join_channel('bob', 6)
    users = engine.get_users()
    assert len(users) == 1
    assert users[0].channel_id == 6
    assert users[0].grid is None

    engine.leave_channel('bob')
    assert engine.get_users()[0].channel_id is None


def test_remove_user(engine):
    place(engine, alice='JO59')
    assert engine.remove_user('alice')
    assert not engine.remove_user('alice')
    assert engine.get_users() == []


# Propagation queries

def test_missing_grid_means_no_contact(engine):
    place(engine, alice='JO59')
    engine.join_channel('alice', 'lobby')
    engine.join_channel('bob', 'lobby')

    assert engine.calculate_propagation('alice', 'bob') == 0.0
    assert engine.calculate_propagation('alice', 'nobody') == 0.0
    assert engine.can_communicate('alice', 'bob') is False


def test_calculate_propagation_is_cached(make_engine):
    jitter = Mock(uniform=Mock(side_effect=[1.0, 1.1, 0.9]))
    engine = make_engine(random_source=jitter)
    place(engine, alice='JO59', bob='FN31')

    first = engine.calculate_propagation('alice', 'bob')
    assert engine.calculate_propagation('alice', 'bob') == first
    assert engine.calculate_propagation('bob', 'alice') == first
    assert jitter.uniform.call_count == 1
    assert pair_key('alice', 'bob') in engine.cache


def test_update_propagation_recomputes(make_engine):
    jitter = Mock(uniform=Mock(side_effect=[1.0, 1.1]))
    engine = make_engine(random_source=jitter)
    place(engine, alice='JO59', bob='FN31')

    first = engine.calculate_propagation('alice', 'bob')
    engine.update_propagation()
    second = engine.calculate_propagation('alice', 'bob')

    assert second == pytest.approx(first * 1.1)


def test_remove_user_purges_cached_pairs(engine):
    place(engine, alice='JO59', bob='FN31', carol='IO91')
    engine.calculate_propagation('alice', 'bob')
    engine.calculate_propagation('bob', 'carol')

    engine.remove_user('alice')

    assert pair_key('alice', 'bob') not in engine.cache
    assert pair_key('bob', 'carol') in engine.cache


def test_changing_grid_purges_cached_pairs(engine):
    place(engine, alice='JO59', bob='FN31')
    engine.calculate_propagation('alice', 'bob')

    engine.register_user_grid('alice', 'JO59')
    assert pair_key('alice', 'bob') in engine.cache

    engine.register_user_grid('alice', 'FN32')
    assert pair_key('alice', 'bob') not in engine.cache
    # Now about 110 km apart on 160m at night
    assert engine.calculate_propagation('alice', 'bob') == 1.0


def test_same_non_band_channel_always_communicates(engine):
    # Opposite sides of the world, but sharing an ordinary channel
    place(engine, alice='JO59', bob='RF80')
    engine.join_channel('alice', 'lobby')
    engine.join_channel('bob', 'lobby')
    assert engine.can_communicate('alice', 'bob') is True


def test_different_non_band_channels(engine):
    place(engine, alice='JO59', bob='FN31')
    engine.join_channel('alice', 'lobby')
    engine.join_channel('bob', 'ragchew')
    assert engine.can_communicate('alice', 'bob') is False


def test_transatlantic_contact_on_20m(engine):
    place(engine, alice='JO59', bob='FN31')
    channel = engine.get_band_channel(20)
    assert channel == 6
    engine.join_channel('alice', channel)
    engine.join_channel('bob', channel)

    assert engine.can_communicate('alice', 'bob') is True

    engine.set_band_reliability(20, 0.3)
    assert engine.can_communicate('alice', 'bob') is False

    engine.set_band_reliability(20, None)
    assert engine.can_communicate('alice', 'bob') is True


def test_adjacent_band_needs_stronger_signal(engine):
    place(engine, alice='JO59', bob='FN31')
    engine.join_channel('alice', engine.get_band_channel(20))
    engine.join_channel('bob', engine.get_band_channel(17))

    # About 0.53 is enough on the same band but not across adjacent bands
    assert engine.calculate_propagation('alice', 'bob') < 0.7
    assert engine.can_communicate('alice', 'bob') is False


def test_band_and_non_band_channel(engine):
    place(engine, alice='JO59', bob='FN31')
    engine.join_channel('alice', engine.get_band_channel(20))
    engine.join_channel('bob', 'lobby')
    assert engine.can_communicate('alice', 'bob') is False


def test_local_contact_on_80m(engine):
    place(engine, alice='FN31pr', bob='FN31pq')
    engine.join_channel('alice', engine.get_band_channel(80))
    engine.join_channel('bob', engine.get_band_channel(80))
    assert engine.can_communicate('alice', 'bob') is True


def test_channel_lookups(engine):
    assert engine.get_channel_band(6) == 20
    assert engine.get_channel_band('lobby') is None
    assert engine.get_band_channel(11) is None


def test_recommend_band_uses_reliability_overrides(engine):
    assert engine.recommend_band(0) == 80
    engine.set_band_reliability(160, 0.95)
    assert engine.recommend_band(0) == 160


def test_analyze_path(engine):
    report = engine.analyze_path('jo59', 'fn31')
    assert report.grid1 == 'JO59'
    assert report.band == 20
    assert report.usable is True


# State

def test_setters_clamp_values(engine):
    assert engine.set_solar_flux_index(500) == 300
    assert engine.set_solar_flux_index(10) == 60
    assert engine.set_k_index(-3) == 0
    assert engine.set_k_index(12) == 9
    assert engine.get_state().k_index == 9


def test_set_season(engine):
    assert engine.set_season('summer') == 'Summer'
    assert engine.set_season(3) == 'Fall'
    with pytest.raises(ValueError):
        engine.set_season('Monsoon')


def test_set_band_reliability_rejects_unknown_band(engine):
    with pytest.raises(ValueError):
        engine.set_band_reliability(11, 0.5)


def test_auto_time_sets_season_from_clock(engine):
    engine.set_season('Summer')
    engine.set_auto_time(True)
    assert engine.get_state().season == 'Winter'

    engine.set_season('Summer')
    engine.update_propagation()
    assert engine.get_state().season == 'Winter'


def test_state_snapshot_is_a_copy(engine):
    snapshot = engine.get_state()
    snapshot.band_reliability[20] = 0.1
    assert 20 not in engine.get_state().band_reliability


def test_set_update_interval(engine):
    engine.set_update_interval(60)
    assert engine.update_interval == 60
    assert engine.cache.max_age == 60
    with pytest.raises(ValueError):
        engine.set_update_interval(0)


# Events

def test_setters_emit_propagation_updated(engine):
    callback = Mock()
    engine.subscribe(PROPAGATION_UPDATED, callback)

    engine.set_solar_flux_index(150)
    engine.set_k_index(4)
    engine.update_propagation()

    assert callback.call_count == 3


def test_signal_and_muf_events(engine):
    strength_changed = Mock()
    muf_changed = Mock()
    engine.subscribe(SIGNAL_STRENGTH_CHANGED, strength_changed)
    engine.subscribe(MUF_CHANGED, muf_changed)
    place(engine, alice='JO59', bob='FN31')

    strength = engine.calculate_propagation('alice', 'bob')
    strength_changed.assert_called_once_with('JO59', 'FN31', strength)
    muf_changed.assert_called_once()
    assert muf_changed.call_args[0][0] == pytest.approx(15.68, abs=0.05)

    # Recomputed with the same inputs: no change to report
    engine.update_propagation()
    engine.calculate_propagation('alice', 'bob')
    assert strength_changed.call_count == 1
    assert muf_changed.call_count == 1


def test_unsubscribe(engine):
    callback = Mock()
    unsubscribe = engine.subscribe(PROPAGATION_UPDATED, callback)
    unsubscribe()
    engine.update_propagation()
    callback.assert_not_called()


def test_failing_subscriber_does_not_break_updates(engine):
    engine.subscribe(PROPAGATION_UPDATED, Mock(side_effect=RuntimeError("subscriber bug")))
    after = Mock()
    engine.subscribe(PROPAGATION_UPDATED, after)

    engine.update_propagation()
    after.assert_called_once_with()


# External data

def test_external_data_off_ignores_feeds(make_engine):
    dxview, swpc = working_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc)

    engine.update_propagation()
    engine.set_use_dxview_data(True)
    engine.set_use_swpc_data(True)

    dxview.get_band_conditions.assert_not_called()
    swpc.get_solar_indices.assert_not_called()
    assert engine.get_state().solar_flux_index == 120


def test_failing_feed_leaves_state_unchanged(make_engine):
    dxview, swpc = failing_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc)
    received = []
    engine.subscribe(EXTERNAL_DATA_UPDATED, lambda source, ok: received.append((source, ok)))
    before = engine.get_state()

    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)

    assert received == [('SWPC', False)]
    after = engine.get_state()
    assert after.solar_flux_index == before.solar_flux_index
    assert after.k_index == before.k_index
    assert after.band_reliability == {}
    assert after.last_external_update is None


def test_successful_feeds_update_state(make_engine, winter_night):
    dxview, swpc = working_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc)
    received = []
    engine.subscribe(EXTERNAL_DATA_UPDATED, lambda source, ok: received.append((source, ok)))

    engine.set_use_dxview_data(True)
    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)

    state = engine.get_state()
    assert received == [('DXView', True), ('SWPC', True)]
    assert state.band_reliability == {20: 0.6, 15: 0.4}
    assert state.solar_flux_index == 185
    assert state.k_index == 1
    assert state.last_external_update == winter_night


def test_feed_update_invalidates_cache(make_engine):
    dxview, swpc = working_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc)
    place(engine, alice='JO59', bob='FN31')
    engine.calculate_propagation('alice', 'bob')

    engine.set_use_dxview_data(True)
    engine.set_use_external_data(True)

    assert len(engine.cache) == 0
    assert engine.calculate_propagation('alice', 'bob') < 0.5


def test_feed_refresh_is_throttled(make_engine):
    dxview, swpc = working_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc)

    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)
    engine.update_propagation()
    engine.update_propagation()

    swpc.get_solar_indices.assert_called_once()


def test_initial_state_from_config(make_engine):
    engine = make_engine(state=None)
    state = engine.get_state()
    assert state == PropagationState(solar_flux_index=120, k_index=3, season='Winter',
                                     auto_time_enabled=False)


# Lifecycle

def test_start_registers_update_task(make_engine):
    engine = make_engine()
    callback = Mock()
    engine.subscribe(PROPAGATION_UPDATED, callback)

    engine.start()

    status = engine.get_status()
    assert status['scheduler']['running'] is True
    assert UPDATE_TASK in status['scheduler']['tasks']
    callback.assert_called_once_with()

    engine.task_manager.run_now(UPDATE_TASK)
    assert callback.call_count == 2

    engine.stop()
    assert engine.get_status()['scheduler']['running'] is False


def test_status(engine):
    place(engine, alice='JO59')
    engine.join_channel('bob', 'lobby')
    status = engine.get_status()

    assert status['users'] == 2
    assert status['located_users'] == 1
    assert status['state']['season'] == 'Winter'
    assert status['timestamp'].startswith('2024-01-15T04:00:00')
    assert status['cache']['entries'] == 0


def test_engine_defaults_to_environment_config():
    engine = HFBandSimulation()
    try:
        assert engine.update_interval > 0
        assert engine.get_state().solar_flux_index >= 60
    finally:
        engine.stop()


def test_toggle_setters_require_booleans(engine):
    for setter in (engine.set_auto_time, engine.set_use_external_data,
                   engine.set_use_dxview_data, engine.set_use_swpc_data):
        with pytest.raises(TypeError):
            setter('false')

    state = engine.get_state()
    assert state.auto_time_enabled is False
    assert state.use_external_data is False


# Feed scheduling failures

def test_toggles_survive_unschedulable_feeds(make_engine):
    dxview, swpc = working_providers()
    closed = Mock(submit=Mock(side_effect=RuntimeError("cannot schedule new futures after shutdown")))
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc, feed_executor=closed)
    received = []
    engine.subscribe(EXTERNAL_DATA_UPDATED, lambda source, ok: received.append((source, ok)))

    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)

    assert received == [('SWPC', False)]
    assert engine.get_state().use_external_data is True
    swpc.get_solar_indices.assert_not_called()


def test_update_invalidates_even_when_feeds_fail_to_schedule(make_engine):
    dxview, swpc = working_providers()
    closed = Mock(submit=Mock(side_effect=RuntimeError("cannot schedule new futures after shutdown")))
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc, feed_executor=closed)
    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)
    place(engine, alice='JO59', bob='FN31')
    engine.calculate_propagation('alice', 'bob')
    updated = Mock()
    engine.subscribe(PROPAGATION_UPDATED, updated)

    engine.update_propagation()

    assert len(engine.cache) == 0
    updated.assert_called_once_with()


def test_update_invalidates_when_feed_dispatch_raises(engine):
    place(engine, alice='JO59', bob='FN31')
    engine.calculate_propagation('alice', 'bob')
    engine.state.use_external_data = True
    updated = Mock()
    engine.subscribe(PROPAGATION_UPDATED, updated)

    with patch.object(engine.feeds, 'request_refresh', side_effect=RuntimeError("pool broken")):
        with pytest.raises(RuntimeError):
            engine.update_propagation()

    assert len(engine.cache) == 0
    updated.assert_called_once_with()


def test_restart_after_stop_refreshes_feeds(make_engine):
    dxview, swpc = working_providers()
    engine = make_engine(dxview_provider=dxview, swpc_provider=swpc, feed_executor=None)
    received = []
    engine.subscribe(EXTERNAL_DATA_UPDATED, lambda source, ok: received.append((source, ok)))

    engine.start()
    engine.stop()
    engine.set_use_swpc_data(True)
    engine.set_use_external_data(True)
    assert received == [('SWPC', False)]

    engine.start()
    assert engine.feeds.wait(timeout=5)
    engine.stop()

    assert received == [('SWPC', False), ('SWPC', True)]
    assert engine.get_state().solar_flux_index == 185


# Concurrency

def test_strength_computed_across_an_update_is_not_cached(make_engine):
    engines = []

    def jitter(low, high):
        # Runs while the pair is being computed outside the engine lock
        if engines:
            engines.pop().update_propagation()
        return 1.0

    engine = make_engine(random_source=Mock(uniform=Mock(side_effect=jitter)))
    place(engine, alice='JO59', bob='FN31')
    key = pair_key('alice', 'bob')
    engines.append(engine)

    strength = engine.calculate_propagation('alice', 'bob')

    assert strength >= 0.5
    assert key not in engine.cache
    assert engine.calculate_propagation('alice', 'bob') == pytest.approx(strength)
    assert key in engine.cache


def test_queries_do_not_wait_for_feeds(make_engine):
    fetch_started = threading.Event()
    release = threading.Event()

    def slow_fetch():
        fetch_started.set()
        release.wait(5)
        return SolarIndices(solar_flux_index=185.0, k_index=1.0)

    swpc = Mock(spec=SWPCDataProvider)
    swpc.get_solar_indices.side_effect = slow_fetch
    executor = ThreadPoolExecutor(max_workers=1)
    engine = make_engine(swpc_provider=swpc, feed_executor=executor)
    place(engine, alice='JO59', bob='FN31')
    engine.join_channel('alice', 6)
    engine.join_channel('bob', 6)

    acquired = []

    def take_lock():
        if engine._lock.acquire(timeout=1):
            acquired.append(True)
            engine._lock.release()

    try:
        engine.set_use_swpc_data(True)
        engine.set_use_external_data(True)
        assert fetch_started.wait(5)

        worker = threading.Thread(target=take_lock)
        worker.start()
        worker.join(5)
        assert acquired == [True]

        assert engine.can_communicate('alice', 'bob')
        engine.update_propagation()
        assert engine.get_state().solar_flux_index == 120
    finally:
        release.set()
        engine.feeds.wait(5)
        executor.shutdown(wait=True)

    assert engine.get_state().solar_flux_index == 185
