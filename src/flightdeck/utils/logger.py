# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Loguru configuration shared by every flightdeck module.

Command output (build logs, tables, hints) is written directly to the
terminal; the logger only carries diagnostics.
"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

__all__ = ["logger", "configure_logging"]

_LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"


def _ensure_log_directory(log_dir: Optional[Path] = None) -> Path:
    """
    Creates the log directory if it does not exist yet.
    """
    path = log_dir or Path("logs")
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """
    (Re)installs the loguru sinks.

    Args:
        level: Minimum level for the stderr sink. Defaults to FLIGHTDECK_LOG_LEVEL or WARNING.
        log_dir: Directory for a rotating file sink. Defaults to FLIGHTDECK_LOG_DIR; no file sink when unset.
    """
    level = (level or os.environ.get("FLIGHTDECK_LOG_LEVEL") or "WARNING").upper()
    log_dir = log_dir or os.environ.get("FLIGHTDECK_LOG_DIR")

    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, colorize=None)

    if log_dir:
        path = _ensure_log_directory(Path(log_dir))
        logger.add(path / "flightdeck.log", level="DEBUG", rotation="10 MB", retention=5, enqueue=False)


configure_logging()
