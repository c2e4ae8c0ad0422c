"""
Safe roll evaluation.

Callers that must always get a roll back (sheet totals, chat cards, the web
API) go through here: construction and evaluation errors are contained and
attached to a zero placeholder roll instead of propagating.
"""

import logging
import re
from typing import Any, Mapping, Optional, Type

from rollsmith.core.config import get_config
from rollsmith.core.errors import RollWarning
from rollsmith.core.logging_config import ROLL_LOGGER, get_logger
from .roll import Roll

logger = logging.getLogger(__name__)
roll_logger = get_logger(ROLL_LOGGER)

NUMERIC_PATTERN = re.compile(r'^\s*-?(?:\d+(?:\.\d*)?|\.\d+)\s*$')


def _placeholder(roll_class: Type[Roll], data, minimize: bool, maximize: bool) -> Roll:
    try:
        return roll_class('0', data).evaluate(minimize=minimize, maximize=maximize)
    except Exception as e:
        # Subclasses with extra option requirements may not accept a bare "0"
        logger.debug(f"{roll_class.__name__} placeholder failed, using Roll: {e}")
        return Roll('0', data).evaluate()


def _report(roll: Roll, formula: str, context: Optional[str], suppress_error: bool) -> Roll:
    if roll.warning:
        roll.err = RollWarning("This formula had a value replaced with null.")

    if roll.err is not None:
        extra = {'roll_error': roll.err, 'formula': formula}
        if context and not suppress_error:
            roll_logger.error(f"{context}: {roll.err}", extra=extra)
        elif get_config().debug_rolls:
            roll_logger.error(f"Roll error: {roll.err}", extra=extra)
    return roll


def safe_roll(
    formula: str,
    data: Optional[Mapping[str, Any]] = None,
    context: Optional[str] = None,
    *,
    roll_class: Type[Roll] = Roll,
    options: Optional[dict] = None,
    suppress_error: bool = False,
    minimize: bool = False,
    maximize: bool = False
) -> Roll:
    """
    Construct and evaluate a roll without raising.

    Args:
        formula: Roll formula
        data: Roll data
        context: Label included in the logged error
        roll_class: Roll class to construct (Roll, CheckRoll, DamageRoll, ...)
        options: Options passed to the roll class
        suppress_error: Never log, even with a context
        minimize: Resolve every die to 1
        maximize: Resolve every die to its face count

    Returns:
        The evaluated roll, or an evaluated "0" placeholder with ``err`` set
    """
    try:
        roll = roll_class(formula, data, options).evaluate(minimize=minimize, maximize=maximize)
    except Exception as e:
        roll = _placeholder(roll_class, data, minimize, maximize)
        roll.err = e
    return _report(roll, formula, context, suppress_error)


async def safe_roll_async(
    formula: str,
    data: Optional[Mapping[str, Any]] = None,
    context: Optional[str] = None,
    *,
    roll_class: Type[Roll] = Roll,
    options: Optional[dict] = None,
    suppress_error: bool = False,
    minimize: bool = False,
    maximize: bool = False
) -> Roll:
    """Asynchronous counterpart of safe_roll. The placeholder is evaluated synchronously."""
    try:
        roll = await roll_class(formula, data, options).evaluate_async(minimize=minimize, maximize=maximize)
    except Exception as e:
        roll = _placeholder(roll_class, data, minimize, maximize)
        roll.err = e
    return _report(roll, formula, context, suppress_error)


def safe_total(formula: Any, data: Optional[Mapping[str, Any]] = None) -> Any:
    """
    Total of a formula, skipping the roll machinery for plain numbers.

    Returns 0 when the formula cannot be evaluated.
    """
    if isinstance(formula, (int, float)) and not isinstance(formula, bool):
        return formula
    text = str(formula)
    if NUMERIC_PATTERN.match(text):
        value = float(text)
        return int(value) if value.is_integer() else value
    return safe_roll(text, data).total


__all__ = ['safe_roll', 'safe_roll_async', 'safe_total']
