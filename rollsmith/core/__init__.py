"""
Core infrastructure for rollsmith: configuration, logging and error codes.
"""

from .config import Config, get_config, reset_config
from .errors import (
    ErrorCode,
    RollError,
    FormulaError,
    ArityError,
    EvaluationError,
    RollStateError,
    RollOptionsError,
    SerializationError,
    RollWarning,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    'Config',
    'get_config',
    'reset_config',
    'ErrorCode',
    'RollError',
    'FormulaError',
    'ArityError',
    'EvaluationError',
    'RollStateError',
    'RollOptionsError',
    'SerializationError',
    'RollWarning',
    'setup_logging',
    'get_logger',
]
