"""
Utility Functions

Helpers for YAML configuration, logging setup, setting validation and
number formatting.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..errors import ConfigError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration mapping.

    Args:
        config_path: Path to YAML config file

    Returns:
        Configuration dictionary (empty for an empty file)

    Raises:
        FileNotFoundError: the file does not exist
        ConfigError: the file is not YAML, or its top level is not a mapping
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(
            f"{config_path}: expected a mapping at the top level, "
            f"got {type(config).__name__}")
    return config


def setup_logging(level: str = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the package logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level name
        log_file: Optional log file path

    Returns:
        The 'branch_sim' logger
    """
    logger = logging.getLogger("branch_sim")
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def check_int_range(value: Any, name: str,
                    minimum: int = 0,
                    maximum: Optional[int] = None) -> int:
    """Validate an integer setting, raising ConfigError when out of range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(f"{name} must be <= {maximum}, got {value}")
    return value


def check_power_of_two(value: Any, name: str) -> int:
    """Validate a table size: a positive power of two."""
    check_int_range(value, name, minimum=1)
    if value & (value - 1):
        raise ConfigError(f"{name} must be a power of two, got {value}")
    return value


def log2_exact(value: int) -> int:
    """log2 of a power of two."""
    return value.bit_length() - 1


def format_number(n: Union[int, float], precision: int = 2) -> str:
    """Format large numbers with K/M/B suffixes."""
    for scale, suffix in ((1e9, 'B'), (1e6, 'M'), (1e3, 'K')):
        if abs(n) >= scale:
            return f"{n / scale:.{precision}f}{suffix}"
    return f"{n:.{precision}f}"


def format_bits(bits: int) -> str:
    """Format a bit count as bits or KiB."""
    if bits < 8192:
        return f"{bits} bits"
    return f"{bits / 8192:.2f} KiB"
