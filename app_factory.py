"""
Flask Application Factory
Creates and configures the Flask application around the propagation engine.
"""

import logging
from flask import Flask
from flask_cors import CORS

from config import Config, get_config
from hf_band_simulation import HFBandSimulation
from routes.api import api_bp
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_class=None, simulation=None, start_simulation=True):
    """Create and configure the Flask application."""
    if config_class is None:
        config_class = get_config()
    elif isinstance(config_class, str):
        config_class = get_config(config_class)

    setup_logging(config_class)

    app = Flask(__name__)
    app.config.from_object(config_class)

    CORS(app)

    errors = config_class.validate()
    for error in errors:
        logger.warning(f"Configuration problem: {error}")

    services = initialize_services(config_class, simulation)
    app.config['HF_SIMULATION'] = services['simulation']

    register_blueprints(app)

    if start_simulation:
        services['simulation'].start()

    logger.info("Application created successfully")
    return app


def initialize_services(config_class=Config, simulation=None):
    """Initialize all application services."""
    services = {}

    try:
        services['simulation'] = simulation or HFBandSimulation(config_class)
        logger.info("HFBandSimulation initialized")
    except Exception as e:
        logger.error(f"Failed to initialize HFBandSimulation: {e}")
        raise

    return services


def register_blueprints(app):
    """Register Flask blueprints."""
    app.register_blueprint(api_bp, url_prefix='/api')
    logger.info("Blueprints registered")
