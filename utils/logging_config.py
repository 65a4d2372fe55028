"""
Logging configuration for HF Band Simulation.

Engine modules log through module-level loggers; the application factory
calls setup_logging() once with its config class to attach handlers.
"""

import logging
import logging.handlers
import os
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Marks handlers installed here so a second call replaces only those
HANDLER_NAME = 'hf_band_simulation'

# Libraries that log every request at INFO
QUIET_LOGGERS = ('urllib3', 'werkzeug')


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers = [logging.StreamHandler()]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT))

    return handlers


def setup_logging(
    config=None,
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Attach console and (optionally) rotating file handlers to a logger.

    Args:
        config: Config class; DEBUG picks the default level and production
            configs log to LOG_FILE
        name: Logger name (None configures the root logger)
        level: Logging level overriding the config
        log_file: Log file path overriding the config

    Returns:
        Configured logger instance
    """
    if level is None:
        level = 'DEBUG' if config is not None and config.DEBUG else 'INFO'
    if log_file is None and config is not None and config.is_production():
        log_file = config.LOG_FILE

    numeric_level = getattr(logging, level.upper())
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for handler in [h for h in logger.handlers if h.get_name() == HANDLER_NAME]:
        logger.removeHandler(handler)
        handler.close()

    for handler in _build_handlers(log_file):
        handler.set_name(HANDLER_NAME)
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for quiet in QUIET_LOGGERS:
            logging.getLogger(quiet).setLevel(logging.WARNING)

    return logger
