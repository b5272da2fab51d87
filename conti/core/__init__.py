"""
Conti Core Module

Contains core systems including configuration, constants, exceptions, logging
and retry handling.
"""

from .config import BatchEngineConfig, load_config, get_config, set_config
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, get_logger, LogLevel
from .retry import RetryConfig, RetryPolicy, calculate_delay, shot_retry_config

__all__ = [
    'BatchEngineConfig',
    'load_config',
    'get_config',
    'set_config',
    'setup_logging',
    'get_logger',
    'LogLevel',
    'RetryConfig',
    'RetryPolicy',
    'calculate_delay',
    'shot_retry_config',
]
