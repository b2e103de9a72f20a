"""
Logging setup shared by the server, the thumbnail pass and the fetch mode.
"""
import logging
import sys

logger = logging.getLogger('imgserve')
logger.setLevel(logging.INFO)

formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S')

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(formatter)
logger.addHandler(console_handler)


def set_log_level(level):
    """Set the level of the logger and its console handler.

    Args:
        level: a logging level such as logging.DEBUG or logging.WARNING
    """
    logger.setLevel(level)
    console_handler.setLevel(level)
    logger.debug("Log level set to %s", logging.getLevelName(level))


def enable_debug_logging():
    set_log_level(logging.DEBUG)


__all__ = ['logger', 'set_log_level', 'enable_debug_logging']
