"""
rcrenamer Configuration System
==============================

Persistent configuration with:
- JSON storage
- Environment variable overrides
- Validation
"""

from __future__ import annotations

import os
import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
import logging

from ..core.checksum_engine import CHUNK_SIZE, DEFAULT_PROGRESS_STEP
from ..core.reconciliation import IGNORED_EXTENSIONS

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".rcrenamer"
CONFIG_FILE = CONFIG_DIR / "config.json"


@dataclass
class ScanConfig:
    """Checksum computation settings."""
    parallelism: int = 0  # 0 = auto (available cores)
    chunk_size: int = CHUNK_SIZE
    progress_step: int = DEFAULT_PROGRESS_STEP


@dataclass
class MatchConfig:
    """Reconciliation settings."""
    require_all_checksums: bool = False  # Every checksum kind present on both sides must agree
    ignored_extensions: list[str] = field(
        default_factory=lambda: list(IGNORED_EXTENSIONS)
    )


@dataclass
class RenameConfig:
    """Rename execution settings."""
    dry_run: bool = False


@dataclass
class LoggingConfig:
    """Logging settings."""
    verbose: bool = False
    log_file: str = ""  # Empty = console only


@dataclass
class Config:
    """Main configuration container."""
    scan: ScanConfig = field(default_factory=ScanConfig)
    match: MatchConfig = field(default_factory=MatchConfig)
    rename: RenameConfig = field(default_factory=RenameConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    version: str = "0.1.0"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create from dictionary."""
        return cls(
            scan=ScanConfig(**data.get("scan", {})),
            match=MatchConfig(**data.get("match", {})),
            rename=RenameConfig(**data.get("rename", {})),
            logging=LoggingConfig(**data.get("logging", {})),
            version=data.get("version", "0.1.0")
        )

    def validate(self) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if self.scan.parallelism < 0 or self.scan.parallelism > 256:
            errors.append("Parallelism must be between 0 (auto) and 256")

        if self.scan.chunk_size < 4096 or self.scan.chunk_size > 256 * 1024 * 1024:
            errors.append("Chunk size must be between 4 KB and 256 MB")

        if self.scan.progress_step < 1 or self.scan.progress_step > 100:
            errors.append("Progress step must be between 1 and 100 percent")

        for ext in self.match.ignored_extensions:
            if not ext.startswith("."):
                errors.append(f"Ignored extension must start with a dot: {ext!r}")

        return errors


def _parse_bool(value: str) -> bool:
    """Interpret an environment variable as a flag."""
    if value.strip().lower() in ("1", "true", "yes", "on"):
        return True
    if value.strip().lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "RCR_PARALLELISM": ("scan", "parallelism", int),
    "RCR_CHUNK_SIZE": ("scan", "chunk_size", int),
    "RCR_REQUIRE_ALL": ("match", "require_all_checksums", _parse_bool),
    "RCR_DRY_RUN": ("rename", "dry_run", _parse_bool),
    "RCR_VERBOSE": ("logging", "verbose", _parse_bool),
    "RCR_LOG_FILE": ("logging", "log_file", str),
}


def load_config(config_file: Optional[Path] = None) -> Config:
    """
    Load configuration from file.
    Falls back to defaults if not found.
    Supports environment variable overrides.
    """
    config_file = Path(config_file) if config_file else CONFIG_FILE
    config = Config()

    # Load from file if exists
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
                config = Config.from_dict(data)
                logger.info(f"Loaded config from {config_file}")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load config: {e}")

    for env_var, (section, key, converter) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            try:
                section_obj = getattr(config, section)
                setattr(section_obj, key, converter(value))
                logger.debug(f"Override from {env_var}: {section}.{key}")
            except ValueError as e:
                logger.warning(f"Failed to apply {env_var}: {e}")

    return config


def save_config(config: Config, config_file: Optional[Path] = None) -> bool:
    """
    Save configuration to file.
    Creates config directory if needed.
    """
    config_file = Path(config_file) if config_file else CONFIG_FILE
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)

        logger.info(f"Saved config to {config_file}")
        return True

    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        return False


def get_default_config() -> Config:
    """Get default configuration."""
    return Config()
