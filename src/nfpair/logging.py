"""Logging configuration for nfpair."""

import logging
import sys
from pathlib import Path

from nfpair.config import Config

LOGGER_NAME = "nfpair"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Module-level logger cache
_logger: logging.Logger | None = None


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: Config, verbose: bool = False) -> logging.Logger:
    """Set up the nfpair logger from configuration.

    Console output goes to stderr so prompts and results on stdout stay
    readable. Calling this twice returns the already configured logger.

    Args:
        config: Configuration object with log settings.
        verbose: Force DEBUG regardless of the configured level.

    Returns:
        Configured logger instance.
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else _resolve_level(config.log_level))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.propagate = False

    # aiohttp logs every failed connection attempt; the probe already reports it
    if not verbose:
        logging.getLogger("aiohttp").setLevel(logging.ERROR)

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers:
            handler.close()
        _logger.handlers.clear()
        _logger = None
