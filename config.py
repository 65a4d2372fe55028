"""
Configuration module for HF Band Simulation.
Centralizes all configuration settings and environment variables.
"""

import os
from dotenv import load_dotenv
from typing import Optional

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration class."""

    # Flask Configuration
    DEBUG = os.getenv('FLASK_ENV') == 'development'
    TESTING = False
    PORT = int(os.getenv('PORT', 8088))

    # Initial propagation state
    SOLAR_FLUX_INDEX = int(os.getenv('SOLAR_FLUX_INDEX', 120))  # Moderate solar activity
    K_INDEX = int(os.getenv('K_INDEX', 3))  # Moderate geomagnetic activity
    SEASON = os.getenv('SEASON', 'Winter')
    AUTO_TIME_ENABLED = _env_bool('AUTO_TIME_ENABLED', True)
    SIMULATE_SOLAR_DRIFT = _env_bool('SIMULATE_SOLAR_DRIFT', False)

    # External data configuration
    USE_EXTERNAL_DATA = _env_bool('USE_EXTERNAL_DATA', False)
    USE_DXVIEW_DATA = _env_bool('USE_DXVIEW_DATA', False)
    USE_SWPC_DATA = _env_bool('USE_SWPC_DATA', False)
    DXVIEW_URL = os.getenv('DXVIEW_URL', 'https://hf.dxview.org/api/propagation')
    SWPC_URL = os.getenv('SWPC_URL', 'https://services.swpc.noaa.gov/products/summary/solar-indices.json')
    FEED_TIMEOUT = int(os.getenv('FEED_TIMEOUT', 10))

    # Scheduler Configuration
    UPDATE_INTERVAL = int(os.getenv('UPDATE_INTERVAL', 300))  # 5 minutes
    EXTERNAL_REFRESH_INTERVAL = int(os.getenv('EXTERNAL_REFRESH_INTERVAL', 1800))  # 30 minutes

    # Logging Configuration
    LOG_FILE = os.getenv('LOG_FILE', 'logs/hf_band_simulation.log')

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration values."""
        errors = []

        if not 60 <= cls.SOLAR_FLUX_INDEX <= 300:
            errors.append("SOLAR_FLUX_INDEX must be between 60 and 300")

        if not 0 <= cls.K_INDEX <= 9:
            errors.append("K_INDEX must be between 0 and 9")

        if cls.SEASON not in ('Winter', 'Spring', 'Summer', 'Fall'):
            errors.append("SEASON must be one of Winter, Spring, Summer, Fall")

        if cls.UPDATE_INTERVAL <= 0:
            errors.append("UPDATE_INTERVAL must be positive")

        return errors

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production mode."""
        return not cls.DEBUG and not cls.TESTING


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    PORT = 5002  # Development port
    UPDATE_INTERVAL = 60


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    PORT = 8088  # Production port


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    AUTO_TIME_ENABLED = False
    SIMULATE_SOLAR_DRIFT = False
    USE_EXTERNAL_DATA = False
    USE_DXVIEW_DATA = False
    USE_SWPC_DATA = False
    FEED_TIMEOUT = 2


# Configuration mapping
config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig  # Default to production
}


def get_config(config_name: Optional[str] = None) -> Config:
    """Get configuration based on environment."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'default')

    return config_map.get(config_name, config_map['default'])
