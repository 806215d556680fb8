"""Logging setup for rcrenamer."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Configure the root logger.

    Args:
        verbose: Log DEBUG messages instead of INFO and above
        log_file: Optional file receiving the log in addition to stderr
    """
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding='utf-8', mode='a')
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        force=True
    )


def setup_logging_from_config(config) -> None:
    """Configure logging from a Config (uses the logging section)."""
    setup_logging(
        verbose=config.logging.verbose,
        log_file=Path(config.logging.log_file) if config.logging.log_file else None,
    )
