"""
Configuration management for rollsmith.

Provides centralized configuration loading from environment variables
with sensible defaults for all settings.
"""

import os
from pathlib import Path
from typing import Optional
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


class Config:
    """
    Centralized configuration management for rollsmith.

    Loads configuration from environment variables with fallback defaults.
    Supports .env files via python-dotenv.

    Example:
        config = Config()
        print(config.critical)  # 20
        print(config.port)      # 5000
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Optional path to .env file. If None, auto-discovers .env
                     in project root or skips if not found.
        """
        if env_file:
            load_dotenv(env_file)
            logger.info(f"Loaded configuration from {env_file}")
        else:
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / '.env'
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded configuration from {env_path}")
            else:
                logger.debug("No .env file found, using environment variables and defaults")

        # === Server Settings ===
        self.host = os.getenv('ROLLSMITH_HOST', '127.0.0.1')
        self.port = int(os.getenv('ROLLSMITH_PORT', '5000'))
        self.debug = _env_flag('ROLLSMITH_DEBUG')

        # === Logging ===
        self.log_level = os.getenv('ROLLSMITH_LOG_LEVEL', 'INFO').upper()
        self.log_file = os.getenv('ROLLSMITH_LOG_FILE', None)

        # Log every contained roll failure, even without a context label
        self.debug_rolls = _env_flag('ROLLSMITH_DEBUG_ROLLS')

        # === Dice Settings ===
        seed = os.getenv('ROLLSMITH_SEED')
        self.seed = int(seed) if seed else None

        # Check roll thresholds
        self.critical = int(os.getenv('ROLLSMITH_CRITICAL', '20'))
        self.fumble = int(os.getenv('ROLLSMITH_FUMBLE', '1'))
        self.misfire = int(os.getenv('ROLLSMITH_MISFIRE', '0'))

    def validate(self) -> bool:
        """
        Validate configuration and log warnings for suspicious values.

        Returns:
            True if config is valid, False if critical values are wrong
        """
        valid = True

        if self.log_level not in VALID_LOG_LEVELS:
            logger.error(
                f"Invalid ROLLSMITH_LOG_LEVEL: {self.log_level}. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
            valid = False

        if not 1 <= self.critical <= 20:
            logger.warning(f"ROLLSMITH_CRITICAL={self.critical} is outside the d20 range")

        if self.fumble >= self.critical:
            logger.error(
                f"ROLLSMITH_FUMBLE ({self.fumble}) must be lower than "
                f"ROLLSMITH_CRITICAL ({self.critical})"
            )
            valid = False

        if self.misfire < 0:
            logger.warning(f"ROLLSMITH_MISFIRE={self.misfire} is negative, misfires can never occur")

        return valid

    def __repr__(self) -> str:
        return (
            f"Config("
            f"critical={self.critical}, "
            f"fumble={self.fumble}, "
            f"misfire={self.misfire}, "
            f"host={self.host}, "
            f"port={self.port}, "
            f"debug={self.debug})"
        )


# Global config instance (lazy-loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global config instance (singleton pattern).

    Returns:
        Global Config instance

    Example:
        from rollsmith.core.config import get_config
        config = get_config()
        print(config.critical)
    """
    global _config
    if _config is None:
        _config = Config()
        _config.validate()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() re-reads the environment."""
    global _config
    _config = None


__all__ = ['Config', 'get_config', 'reset_config']
