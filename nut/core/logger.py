"""Logging configuration and utilities."""

import os
import sys
import logging
from datetime import datetime
from typing import Optional


def setup_logging(
    operation: str = "nut",
    log_dir: Optional[str] = None,
    verbose: bool = False
) -> logging.Logger:
    """Configure logging to the console and, optionally, a log file.

    Console output goes to stderr; stdout is left for command output.

    Args:
        operation: Name of the operation for the log filename
        log_dir: Directory for a timestamped log file, or None for console only
        verbose: Log debug messages, including every git invocation

    Returns:
        Configured logger instance
    """
    handlers = [logging.StreamHandler(sys.stderr)]

    log_file = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = os.path.join(log_dir, f'nut_{operation}_{timestamp}.log')
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True  # Reset any existing configuration
    )

    logger = logging.getLogger('nut')
    logger.debug(f"Starting {operation} operation")
    if log_file:
        logger.debug(f"Log file: {log_file}")

    return logger
