"""
Logging for create3-deploy runs.

Every module logs under the ``create3_deploy`` package logger. CLI runs attach
a stdout handler plus, unless disabled, a daily-rotated run log and a
size-rotated error log in ``CREATE3_LOG_DIR``.
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Optional


# Log formats
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PACKAGE_LOGGER = "create3_deploy"


def get_log_dir() -> Path:
    """Log directory (CREATE3_LOG_DIR, default ./logs)."""
    return Path(os.getenv("CREATE3_LOG_DIR", "logs"))


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
    detailed: bool = False,
    to_files: bool = True,
) -> logging.Logger:
    """
    Configure ``name`` once; later calls return it unchanged.

    Args:
        name: Logger name; the package logger covers every module
        level: Threshold for the console and run-log handlers
        log_file: Run log file name inside the log directory (default ``<name>.log``)
        console: Attach a stdout handler
        detailed: Include logger name and source line in each record
        to_files: Attach the run log and the ``<name>_errors.log`` handler

    Example:
        >>> logger = setup_logger("create3_deploy", level=logging.DEBUG)
        >>> logger.info("Bootstrapping factory")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    log_format = DETAILED_FORMAT if detailed else SIMPLE_FORMAT
    formatter = logging.Formatter(log_format, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if not to_files:
        return logger

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    # File handler with daily rotation
    if log_file is None:
        log_file = f"{name}.log"

    file_handler = TimedRotatingFileHandler(
        log_dir / log_file,
        when="midnight",
        interval=1,
        backupCount=30,  # Keep 30 days of logs
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Separate error log
    error_handler = RotatingFileHandler(
        log_dir / f"{name}_errors.log",
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(error_handler)

    return logger


def log_deployment(logger: logging.Logger, name: str, outcome) -> None:
    """
    Log a deployment outcome in structured format.

    Args:
        logger: Logger instance
        name: Display name of the deployed contract
        outcome: DeployOutcome returned by the executor
    """
    status = "EXISTING" if outcome.already_deployed else "DEPLOYED"
    msg = f"{status} | {name} | Address: {outcome.address}"
    if outcome.transaction_hash:
        msg += f" | TX: {outcome.transaction_hash}"
    if outcome.gas_used is not None:
        msg += f" | Gas: {outcome.gas_used:,}"
    if outcome.verified is not None:
        msg += f" | Verified: {'yes' if outcome.verified else 'no'}"
    logger.info(msg)


def get_cli_logger(debug: bool = False, to_files: bool = True) -> logging.Logger:
    """Get the package logger configured for CLI runs."""
    level = logging.DEBUG if debug else logging.INFO
    return setup_logger(PACKAGE_LOGGER, level=level, detailed=debug, to_files=to_files)
