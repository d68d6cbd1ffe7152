"""
Logging configuration for the forwarder and configurator Lambdas
"""

import logging
import os
import sys


def setup_logging(level: str = None) -> logging.Logger:
    """
    Set up logging configuration for the forwarder

    Lambda installs its own handler on the root logger before our code runs,
    so basicConfig alone is a no-op there; the root logger and every handler
    already attached are forced to the requested level as well.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, level, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers:
        handler.setLevel(log_level)

    logger = logging.getLogger('log_forwarder')
    logger.setLevel(log_level)

    return logger
