"""Tests for the configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

from planflow import config as config_module
from planflow.config import DEFAULT_EMBEDDED_PORT, Config, _apply_env_overrides, _apply_toml, load_config


def test_config_defaults():
	"""Config should have sensible defaults."""
	config = Config()
	assert config.config_dir.is_absolute()
	assert config.data_dir.is_absolute()
	assert config.db_path == config.data_dir / "plans.db"
	assert config.log_dir == config.data_dir / "logs"
	assert config.plan_store_url == ""
	assert config.embedded_port == DEFAULT_EMBEDDED_PORT == 7433
	assert config.request_timeout == 10.0
	assert config.strict_lock is False


def test_config_env_overrides():
	"""Environment variables should override defaults."""
	config = Config()
	with patch.dict(os.environ, {
		"PLANFLOW_DATA_DIR": "/tmp/test-data",
		"PLANFLOW_CONFIG_DIR": "/tmp/test-config",
		"PLANFLOW_PLAN_STORE_URL": "http://127.0.0.1:9000",
		"PLANFLOW_EMBEDDED_PORT": "9000",
		"PLANFLOW_REQUEST_TIMEOUT": "2.5",
		"PLANFLOW_STRICT_LOCK": "yes",
	}):
		config = _apply_env_overrides(config)
		assert config.data_dir == Path("/tmp/test-data")
		assert config.config_dir == Path("/tmp/test-config")
		# Derived paths should be recomputed
		assert config.db_path == Path("/tmp/test-data/plans.db")
		assert config.plan_store_url == "http://127.0.0.1:9000"
		assert config.embedded_port == 9000
		assert config.request_timeout == 2.5
		assert config.strict_lock is True


def test_config_toml(tmp_path: Path):
	"""config.toml values apply, but derived paths are always recomputed."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text(
		f'data_dir = "{tmp_path / "data"}"\n'
		'plan_store_url = "http://plans.local:7433"\n'
		'db_path = "/ignored.db"\n'
	)
	config = _apply_toml(Config(config_dir=config_dir, data_dir=tmp_path / "default"))

	assert config.data_dir == tmp_path / "data"
	assert config.db_path == tmp_path / "data" / "plans.db"
	assert config.plan_store_url == "http://plans.local:7433"


def test_config_ensure_dirs(tmp_path: Path):
	"""ensure_dirs should create all required directories."""
	config = Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
	)
	assert not config.config_dir.exists()
	assert not config.data_dir.exists()

	config.ensure_dirs()

	assert config.config_dir.exists()
	assert config.data_dir.exists()
	assert config.log_dir.exists()


def test_load_config_creates_dirs(tmp_path: Path):
	"""load_config should create directories."""
	with patch.dict(os.environ, {
		"PLANFLOW_DATA_DIR": str(tmp_path / "data"),
		"PLANFLOW_CONFIG_DIR": str(tmp_path / "config"),
	}):
		config = load_config()
		assert config.data_dir.exists()
		assert config.config_dir.exists()


def test_get_config_is_cached(tmp_path: Path, monkeypatch):
	monkeypatch.setattr(config_module, "_config", None)
	monkeypatch.setenv("PLANFLOW_DATA_DIR", str(tmp_path / "data"))
	monkeypatch.setenv("PLANFLOW_CONFIG_DIR", str(tmp_path / "config"))

	first = config_module.get_config()
	assert config_module.get_config() is first
