"""Utility modules for rcrenamer."""

from .config import Config, load_config, save_config
from .log import setup_logging, setup_logging_from_config

__all__ = ["Config", "load_config", "save_config", "setup_logging", "setup_logging_from_config"]
