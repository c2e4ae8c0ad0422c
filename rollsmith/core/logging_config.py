"""
Logging for rollsmith.

Everything the engine logs goes through the ``rollsmith`` logger tree.
setup_logging attaches handlers to that tree only, so applications embedding
the engine keep control of the root logger.

Roll failures contained by the safe wrapper are logged on ``rollsmith.rolls``
with the error and formula attached, and rendered by RollErrorFormatter:

    ERROR rollsmith.rolls: Longsword attack: Division by zero [division_by_zero] in '1d8 / 0'
"""

import logging
import sys
from typing import Optional, TextIO

from colorama import Fore, Style, just_fix_windows_console

ROOT_LOGGER = 'rollsmith'
ROLL_LOGGER = 'rollsmith.rolls'

DEFAULT_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name.

    With colors off it behaves like a plain logging.Formatter, which is what
    file handlers get.
    """

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or DEFAULT_FORMAT)
        self.use_colors = use_colors

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().formatMessage(record)
        # Work on a copy; other handlers format the same record
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, '')
        colored.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        return super().formatMessage(colored)


class RollErrorFormatter(ColoredFormatter):
    """
    Formatter for contained roll failures.

    Records logged with ``extra={'roll_error': error, 'formula': formula}``
    get the error code and the formula appended to the message.
    """

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        error = getattr(record, 'roll_error', None)
        if error is None:
            return text

        code = getattr(error, 'code', None)
        text += f" [{code if code is not None else type(error).__name__}]"
        formula = getattr(record, 'formula', None)
        if formula:
            text += f" in {formula!r}"
        return text


def _install(logger: logging.Logger, formatter_class, format_string: Optional[str],
             use_colors: bool, stream: TextIO, log_file: Optional[str]) -> None:
    # Replace handlers from an earlier setup_logging call, keep everyone else's
    for handler in [h for h in logger.handlers if getattr(h, 'installed_by_rollsmith', False)]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setFormatter(formatter_class(format_string, use_colors))
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter_class(format_string, use_colors=False))
        handlers.append(file_handler)

    for handler in handlers:
        handler.installed_by_rollsmith = True
        logger.addHandler(handler)


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    use_colors: Optional[bool] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Configure the rollsmith logger tree.

    Calling it again replaces the handlers it installed before.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that also receives every record, uncolored
        format_string: Optional custom format string
        use_colors: Color console output; defaults to whether the stream is a terminal
        stream: Console stream, sys.stderr by default

    Returns:
        The ``rollsmith`` logger

    Example:
        setup_logging(level='DEBUG', log_file='rollsmith.log')
        safe_roll('1d8 / 0', context='Longsword attack')  # logged with its error code
    """
    stream = stream or sys.stderr
    if use_colors is None:
        use_colors = stream.isatty()
    if use_colors:
        just_fix_windows_console()

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False
    _install(logger, ColoredFormatter, format_string, use_colors, stream, log_file)

    # Roll failures get their own handler and formatter; the level comes from the parent
    roll_logger = logging.getLogger(ROLL_LOGGER)
    roll_logger.propagate = False
    _install(roll_logger, RollErrorFormatter, format_string, use_colors, stream, log_file)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the rollsmith tree.

    Module names (``rollsmith.dice.roll``) are used as they are; anything else
    is nested under ``rollsmith``.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + '.'):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


__all__ = [
    'ROOT_LOGGER',
    'ROLL_LOGGER',
    'ColoredFormatter',
    'RollErrorFormatter',
    'setup_logging',
    'get_logger',
]
