"""
Shared fixtures for rollsmith tests.
"""

import logging

import pytest

from rollsmith.core.config import reset_config
from rollsmith.core.logging_config import ROLL_LOGGER, ROOT_LOGGER
from rollsmith.dice import DiceRoller, reset_function_registry, set_roller


@pytest.fixture(autouse=True)
def clean_state():
    """Reset shared config, roller and function registry around every test."""
    reset_config()
    reset_function_registry()
    set_roller(None)
    yield
    reset_config()
    reset_function_registry()
    set_roller(None)


@pytest.fixture
def roller():
    """Install a seeded roller so dice results are repeatable."""
    seeded = DiceRoller(seed=42)
    set_roller(seeded)
    return seeded


@pytest.fixture
def restore_logging():
    """Put the rollsmith loggers back the way they were after setup_logging runs."""
    loggers = [logging.getLogger(name) for name in (ROOT_LOGGER, ROLL_LOGGER)]
    saved = [(list(lg.handlers), lg.level, lg.propagate) for lg in loggers]
    yield
    for lg, (handlers, level, propagate) in zip(loggers, saved):
        for handler in lg.handlers:
            if handler not in handlers:
                handler.close()
        lg.handlers[:] = handlers
        lg.setLevel(level)
        lg.propagate = propagate
