"""Tests for configuration and logging setup."""

import json
import logging

import pytest

from rcrenamer.core.checksum_engine import CHUNK_SIZE, ChecksumEngine
from rcrenamer.core.par2_reader import Par2Reader
from rcrenamer.core.reconciliation import IGNORED_EXTENSIONS, Reconciler
from rcrenamer.core.rename_scheduler import RenameScheduler
from rcrenamer.utils.config import Config, get_default_config, load_config, save_config
from rcrenamer.utils.log import setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("RCR_PARALLELISM", "RCR_CHUNK_SIZE", "RCR_REQUIRE_ALL", "RCR_DRY_RUN", "RCR_VERBOSE", "RCR_LOG_FILE"):
        monkeypatch.delenv(var, raising=False)


class TestConfig:
    """Tests for the Config container."""

    def test_defaults(self):
        config = get_default_config()

        assert config.scan.parallelism == 0
        assert config.scan.chunk_size == CHUNK_SIZE
        assert config.match.require_all_checksums is False
        assert config.match.ignored_extensions == list(IGNORED_EXTENSIONS)
        assert config.rename.dry_run is False
        assert config.validate() == []

    def test_dict_round_trip(self):
        config = Config()
        config.scan.parallelism = 3
        config.match.require_all_checksums = True

        restored = Config.from_dict(json.loads(json.dumps(config.to_dict())))

        assert restored == config

    def test_partial_dict_uses_defaults(self):
        config = Config.from_dict({"rename": {"dry_run": True}})

        assert config.rename.dry_run
        assert config.scan.chunk_size == CHUNK_SIZE

    def test_validate_reports_each_problem(self):
        config = Config()
        config.scan.parallelism = -1
        config.scan.chunk_size = 10
        config.scan.progress_step = 0
        config.match.ignored_extensions = ["nfo"]

        assert len(config.validate()) == 4


class TestLoadSave:
    """Tests for load_config and save_config."""

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "sub" / "config.json"
        config = Config()
        config.scan.parallelism = 5

        assert save_config(config, path)
        assert load_config(path).scan.parallelism == 5

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "none.json") == Config()

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_config(path) == Config()

    def test_unknown_key_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"scan": {"turbo": True}}))

        assert load_config(path) == Config()

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RCR_PARALLELISM", "7")
        monkeypatch.setenv("RCR_REQUIRE_ALL", "yes")
        monkeypatch.setenv("RCR_DRY_RUN", "1")

        config = load_config(tmp_path / "none.json")

        assert config.scan.parallelism == 7
        assert config.match.require_all_checksums is True
        assert config.rename.dry_run is True

    def test_bad_env_value_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RCR_PARALLELISM", "many")
        monkeypatch.setenv("RCR_VERBOSE", "maybe")

        config = load_config(tmp_path / "none.json")

        assert config.scan.parallelism == 0
        assert config.logging.verbose is False


class TestFromConfig:
    """Tests that components pick up their settings."""

    def test_components(self, tmp_path):
        config = Config()
        config.scan.parallelism = 2
        config.scan.chunk_size = 8192
        config.match.require_all_checksums = True
        config.match.ignored_extensions = [".NFO"]
        config.rename.dry_run = True
        config.logging.verbose = True

        engine = ChecksumEngine.from_config(config)
        reconciler = Reconciler.from_config(config)
        scheduler = RenameScheduler.from_config(config, tmp_path)

        assert (engine.parallelism, engine.chunk_size) == (2, 8192)
        assert reconciler.require_all_checksums
        assert reconciler.ignored_extensions == (".nfo",)
        assert scheduler.dry_run
        assert Par2Reader.from_config(config).verbose


class TestLogging:
    """Tests for logging setup."""

    def test_verbose_sets_debug(self):
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

        setup_logging(verbose=False)
        assert logging.getLogger().level == logging.INFO

    def test_log_file_written(self, tmp_path):
        config = Config()
        config.logging.log_file = str(tmp_path / "logs" / "rcr.log")

        setup_logging_from_config(config)
        logging.getLogger("rcrenamer.test").info("hello log")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "hello log" in (tmp_path / "logs" / "rcr.log").read_text(encoding="utf-8")
        setup_logging()
