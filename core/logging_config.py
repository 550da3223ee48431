"""
Centralized logging configuration for the workflow node mapping service.

Features:
- Colored console output per log level
- Simple, detailed and JSON line formats
- Optional file handler
- Configuration driven by Settings

Nothing is configured at import time; the CLI and the API call
configure_logging_from_settings() on startup.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional, Union

from core.config import Settings


class Colors:
    """ANSI color codes for terminal output"""
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


_TIMESTAMP_PATTERN = re.compile(r'(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})')

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(levelname)s - %(message)s"
JSON_FORMAT = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name, timestamp and logger name"""

    COLORS = {
        logging.DEBUG: Colors.GRAY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.MAGENTA,
    }

    def format(self, record):
        formatted = super().format(record)

        level_color = self.COLORS.get(record.levelno, Colors.WHITE)
        formatted = formatted.replace(
            record.levelname,
            f"{level_color}{record.levelname}{Colors.RESET}",
            1
        )
        formatted = _TIMESTAMP_PATTERN.sub(f"{Colors.CYAN}\\1{Colors.RESET}", formatted, count=1)

        if record.name:
            formatted = formatted.replace(
                f"{record.name} - ",
                f"{Colors.BLUE}{record.name}{Colors.RESET} - ",
                1
            )

        return formatted


def _build_formatter(log_format: str, colored: bool) -> logging.Formatter:
    if log_format == "json":
        return logging.Formatter(JSON_FORMAT, datefmt=DATE_FORMAT)
    fmt = SIMPLE_FORMAT if log_format == "simple" else DETAILED_FORMAT
    if colored:
        return ColoredFormatter(fmt, datefmt=DATE_FORMAT)
    return logging.Formatter(fmt, datefmt=DATE_FORMAT)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "detailed",
    log_file: Optional[Union[str, Path]] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Set up centralized logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format style ('simple', 'detailed', 'json')
        log_file: Optional file path for logging
        enable_colors: Whether to enable colored output (terminal only)

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Console output goes to stderr so CLI JSON on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    colored = enable_colors and sys.stderr.isatty()
    console_handler.setFormatter(_build_formatter(log_format, colored))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        # File handler always uses non-colored format
        file_handler.setFormatter(_build_formatter(log_format, colored=False))
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)


def configure_logging_from_settings(
    app_settings: Optional[Settings] = None,
    log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """Configure logging based on application settings"""
    if app_settings is None:
        from core.config import settings as app_settings

    log_level = app_settings.log_level
    # Debug mode always wins over the configured level
    if app_settings.debug:
        log_level = "DEBUG"

    root_logger = setup_logging(
        log_level=log_level,
        log_format=app_settings.log_format,
        log_file=log_file,
        enable_colors=True
    )

    get_logger(__name__).debug(
        f"Logging configured with level: {log_level}, format: {app_settings.log_format}"
    )
    return root_logger
