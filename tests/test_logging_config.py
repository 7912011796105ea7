"""Tests for logging setup."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from planflow import config as config_module
from planflow.logging_config import setup_logging


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
	"""Point the config singleton at a temp dir with no level override."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	monkeypatch.setattr(config_module, "_config", None)
	# config.toml is read from the platformdirs location before env overrides apply
	monkeypatch.setattr(config_module.platformdirs, "user_config_dir", lambda *a, **k: str(config_dir))
	monkeypatch.setenv("PLANFLOW_CONFIG_DIR", str(config_dir))
	monkeypatch.setenv("PLANFLOW_DATA_DIR", str(tmp_path / "data"))
	monkeypatch.delenv("PLANFLOW_LOG_LEVEL", raising=False)
	return config_dir


@pytest.fixture
def logger_name():
	name = "planflow-test-logging"
	yield name
	logger = logging.getLogger(name)
	for handler in list(logger.handlers):
		handler.close()
		logger.removeHandler(handler)


def test_setup_logging_handlers(tmp_path: Path, logger_name: str):
	logger = setup_logging(logger_name, level="DEBUG", log_dir=str(tmp_path / "logs"))

	assert logger.level == logging.DEBUG
	assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
	logger.info("hello")
	assert (tmp_path / "logs" / f"{logger_name}.log").exists()


def test_setup_logging_is_idempotent(tmp_path: Path, logger_name: str):
	first = setup_logging(logger_name, log_dir=str(tmp_path))
	count = len(first.handlers)
	second = setup_logging(logger_name, log_dir=str(tmp_path))
	assert second is first
	assert len(second.handlers) == count


def test_defaults_to_info(tmp_path: Path, logger_name: str):
	logger = setup_logging(logger_name, log_dir=str(tmp_path))
	assert logger.level == logging.INFO


def test_level_from_env(tmp_path: Path, logger_name: str, monkeypatch):
	monkeypatch.setenv("PLANFLOW_LOG_LEVEL", "warning")
	logger = setup_logging(logger_name, log_dir=str(tmp_path))
	assert logger.level == logging.WARNING


def test_level_from_config_toml(isolated_config: Path, tmp_path: Path, logger_name: str):
	(isolated_config / "config.toml").write_text('log_level = "DEBUG"\n')
	logger = setup_logging(logger_name, log_dir=str(tmp_path))
	assert logger.level == logging.DEBUG


def test_log_dir_from_config(tmp_path: Path, logger_name: str):
	setup_logging(logger_name, level="INFO")
	assert (tmp_path / "data" / "logs" / f"{logger_name}.log").exists()
