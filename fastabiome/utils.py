"""
Helper Functions and Utilities

This module provides common utility functions used throughout the fastabiome
package: logging configuration, filename handling, time formatting and
progress tracking for long-running classification.

Example Usage:
    >>> from fastabiome.utils import setup_logging, get_timestamp
    >>> logger = setup_logging(log_level="DEBUG")
    >>> get_timestamp()
    '2025-11-03T10:30:45.123Z'
"""

from typing import Optional, Union
from pathlib import Path
from datetime import datetime, timezone
import logging
import math
import re
import sys

logger = logging.getLogger(__name__)


# ============================================================================
# Logging Configuration
# ============================================================================

def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for fastabiome.

    Sets up the package logger with console and optional file output.

    Parameters
    ----------
    log_level : str, optional
        Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL (default: INFO)
    log_file : str, optional
        Path to log file. If None, logs only to console (default: None)
    format_string : str, optional
        Custom format string for log messages. If None, uses default format

    Returns
    -------
    logging.Logger
        Configured logger instance

    Notes
    -----
    The default format includes timestamp, level, and message:
    [2025-11-03 10:30:45] INFO: Starting analysis
    """
    package_logger = logging.getLogger("fastabiome")
    package_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    package_logger.handlers.clear()

    if format_string is None:
        format_string = "[%(asctime)s] %(levelname)s: %(message)s"

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    # Console output goes to stderr so JSON written to stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

        package_logger.info(f"Logging to file: {log_file}")

    return package_logger


# ============================================================================
# File Names
# ============================================================================

def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename for cross-platform compatibility.

    Replaces spaces and problematic characters with underscores.

    Examples
    --------
    >>> sanitize_filename("river sample (June).fasta")
    'river_sample_June_.fasta'
    """
    safe = filename.replace(' ', '_')
    safe = re.sub(r'[^\w\-.]', '_', safe)
    safe = re.sub(r'_+', '_', safe)
    return safe.strip('_') or "unnamed"


def display_name_for(file_path: Union[str, Path]) -> str:
    """Default display name for a FASTA file: its base name."""
    return Path(file_path).name


# ============================================================================
# Time and Formatting Utilities
# ============================================================================

def format_elapsed_time(seconds: float) -> str:
    """
    Format elapsed time in human-readable format.

    Examples
    --------
    >>> format_elapsed_time(45)
    '45s'
    >>> format_elapsed_time(90)
    '1.5m'
    """
    if seconds < 60:
        return f"{seconds:.0f}s"

    minutes = seconds / 60
    if minutes < 60:
        return f"{minutes:.1f}m"

    hours = minutes / 60
    return f"{int(hours)}h {int(minutes % 60)}m"


def round_half_up(value: float, decimals: int = 0) -> float:
    """
    Round halves away from zero for positive values, like JavaScript's
    ``Math.round(value * 10**decimals) / 10**decimals``.

    Examples
    --------
    >>> round_half_up(0.125, 2)
    0.13
    """
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def get_timestamp() -> str:
    """
    Current UTC time as an ISO-8601 string with millisecond precision.

    The trailing ``Z`` matches what browser clients produce with
    ``Date.toISOString()``.
    """
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ============================================================================
# Progress Tracking
# ============================================================================

class ProgressTracker:
    """
    Simple progress tracker for long-running operations.

    Examples
    --------
    >>> tracker = ProgressTracker(total=100, description="Classifying")
    >>> for i in range(100):
    ...     tracker.update()
    >>> tracker.finish()
    """

    def __init__(self, total: int, description: str = "Progress"):
        self.total = total
        self.description = description
        self.current = 0
        self.start_time = datetime.now()
        self.last_log_percent = 0

    def update(self, n: int = 1) -> None:
        """Update progress by n items, logging at 10% intervals."""
        self.current += n
        if self.total <= 0:
            return
        percent = (self.current / self.total) * 100

        if percent - self.last_log_percent >= 10:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            rate = self.current / elapsed if elapsed > 0 else 0
            eta = (self.total - self.current) / rate if rate > 0 else 0

            logger.debug(
                f"{self.description}: {self.current}/{self.total} "
                f"({percent:.1f}%) - ETA: {format_elapsed_time(eta)}"
            )
            self.last_log_percent = int(percent / 10) * 10

    def finish(self) -> None:
        """Log completion."""
        elapsed = (datetime.now() - self.start_time).total_seconds()
        logger.debug(
            f"{self.description} complete: {self.total} items "
            f"in {format_elapsed_time(elapsed)}"
        )
