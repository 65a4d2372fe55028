"""
API Routes
Provides RESTful endpoints for propagation status, band recommendations
and host session updates.
"""

import math
import logging
from flask import Blueprint, jsonify, current_app, request

from calculations.grid_math import calculate_distance
from calculations.state import normalize_season
from exceptions import InvalidLocator
from hf_band_simulation import require_bool

api_bp = Blueprint('api', __name__)
logger = logging.getLogger(__name__)


def _number(name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number")
    return value


def _positive_number(name, value):
    if _number(name, value) <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def _toggle(name, value):
    require_bool(name, value)
    return value


def _season(name, value):
    return normalize_season(value)


# Setting name -> (engine setter, validator)
SETTINGS = {
    'solar_flux_index': ('set_solar_flux_index', _number),
    'k_index': ('set_k_index', _number),
    'season': ('set_season', _season),
    'auto_time_enabled': ('set_auto_time', _toggle),
    'use_external_data': ('set_use_external_data', _toggle),
    'use_dxview_data': ('set_use_dxview_data', _toggle),
    'use_swpc_data': ('set_use_swpc_data', _toggle),
    'update_interval': ('set_update_interval', _positive_number),
}


def _get_simulation():
    return current_app.config.get('HF_SIMULATION')


@api_bp.route('/status', methods=['GET'])
def get_status():
    """Get current propagation state and engine status."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        return jsonify(simulation.get_status())

    except Exception as e:
        logger.error(f"Error getting status: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/bands', methods=['GET'])
def get_bands():
    """Get the band table with channel assignments."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        bands = []
        for definition in simulation.band_model.definitions:
            band_info = definition.to_dict()
            band_info['channel'] = simulation.get_band_channel(definition.band)
            bands.append(band_info)
        return jsonify({'bands': bands})

    except Exception as e:
        logger.error(f"Error getting bands: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/recommend', methods=['GET'])
def recommend_band():
    """Recommend a band for a distance or for a pair of grid squares."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        try:
            if 'distance' in request.args:
                distance = float(request.args['distance'])
                if not math.isfinite(distance) or distance < 0:
                    raise ValueError(distance)
            elif 'grid1' in request.args and 'grid2' in request.args:
                distance = calculate_distance(request.args['grid1'], request.args['grid2'])
            else:
                return jsonify({'error': 'Provide distance or grid1 and grid2'}), 400
        except InvalidLocator as e:
            return jsonify({'error': str(e)}), 400
        except ValueError:
            return jsonify({'error': 'distance must be a non-negative number'}), 400

        band = simulation.recommend_band(distance)
        return jsonify({
            'distance_km': round(distance, 1),
            'band': band,
            'frequency': simulation.band_model.band_to_frequency(band),
            'channel': simulation.get_band_channel(band)
        })

    except Exception as e:
        logger.error(f"Error recommending band: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/path', methods=['GET'])
def get_path():
    """Get a propagation report between two grid squares."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        grid1 = request.args.get('grid1')
        grid2 = request.args.get('grid2')
        if not grid1 or not grid2:
            return jsonify({'error': 'grid1 and grid2 are required'}), 400

        try:
            report = simulation.analyze_path(grid1, grid2)
        except InvalidLocator as e:
            return jsonify({'error': str(e)}), 400

        return jsonify(report.to_dict())

    except Exception as e:
        logger.error(f"Error getting path report: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/settings', methods=['POST'])
def update_settings():
    """
    Update runtime propagation settings.

    Every value is validated before any is applied, so a rejected request
    leaves the engine untouched.
    """
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON object body required'}), 400

        unknown = sorted(set(data) - set(SETTINGS))
        if unknown:
            return jsonify({'error': f"Unknown settings: {', '.join(unknown)}"}), 400

        try:
            values = {name: SETTINGS[name][1](name, value) for name, value in data.items()}
        except (TypeError, ValueError) as e:
            return jsonify({'error': str(e)}), 400

        for name, value in values.items():
            getattr(simulation, SETTINGS[name][0])(value)

        logger.info(f"Settings updated: {sorted(values)}")
        return jsonify(simulation.get_state().to_dict())

    except Exception as e:
        logger.error(f"Error updating settings: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/users/<session>', methods=['POST'])
def update_user(session):
    """Register a session's grid square and/or channel."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON object body required'}), 400
        grid = data.get('grid')

        try:
            if grid:
                grid = simulation.register_user_grid(session, grid)
        except InvalidLocator as e:
            return jsonify({'error': str(e)}), 400

        if 'channel' in data:
            if data['channel'] is None:
                simulation.leave_channel(session)
            else:
                simulation.join_channel(session, data['channel'])

        return jsonify({'session': session, 'grid': simulation.get_user_grid(session)})

    except Exception as e:
        logger.error(f"Error updating session {session}: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/users/<session>', methods=['DELETE'])
def delete_user(session):
    """Forget a disconnected session."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        if not simulation.remove_user(session):
            return jsonify({'error': 'Unknown session'}), 404
        return jsonify({'removed': session})

    except Exception as e:
        logger.error(f"Error removing session {session}: {e}")
        return jsonify({'error': 'Internal server error'}), 500


@api_bp.route('/communicate', methods=['GET'])
def can_communicate():
    """Check whether two sessions can hear each other."""
    try:
        simulation = _get_simulation()
        if not simulation:
            return jsonify({'error': 'Propagation service not available'}), 503

        session1 = request.args.get('session1')
        session2 = request.args.get('session2')
        if not session1 or not session2:
            return jsonify({'error': 'session1 and session2 are required'}), 400

        return jsonify({
            'session1': session1,
            'session2': session2,
            'can_communicate': simulation.can_communicate(session1, session2),
            'strength': round(simulation.calculate_propagation(session1, session2), 3)
        })

    except Exception as e:
        logger.error(f"Error checking communication: {e}")
        return jsonify({'error': 'Internal server error'}), 500
