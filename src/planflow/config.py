"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

APP_NAME = "planflow"
APP_AUTHOR = "planflow"

DEFAULT_EMBEDDED_PORT = 7433


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	db_path: Path = field(init=False)
	log_dir: Path = field(init=False)

	# User-configurable
	plan_store_url: str = ""
	embedded_port: int = DEFAULT_EMBEDDED_PORT
	request_timeout: float = 10.0
	strict_lock: bool = False
	log_level: str = "INFO"

	def __post_init__(self) -> None:
		self.db_path = self.data_dir / "plans.db"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


def _parse_bool(val: str) -> bool:
	return val.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config: Config) -> Config:
	"""Apply PLANFLOW_* environment variable overrides."""
	path_map = {
		"PLANFLOW_CONFIG_DIR": "config_dir",
		"PLANFLOW_DATA_DIR": "data_dir",
	}
	for env_key, attr in path_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	value_map = {
		"PLANFLOW_PLAN_STORE_URL": ("plan_store_url", str),
		"PLANFLOW_EMBEDDED_PORT": ("embedded_port", int),
		"PLANFLOW_REQUEST_TIMEOUT": ("request_timeout", float),
		"PLANFLOW_STRICT_LOCK": ("strict_lock", _parse_bool),
		"PLANFLOW_LOG_LEVEL": ("log_level", str),
	}
	for env_key, (attr, convert) in value_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, convert(val))

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	derived_fields = {"db_path", "log_dir"}
	for key, val in data.items():
		if key in derived_fields:
			continue
		if hasattr(config, key):
			if key in path_fields:
				setattr(config, key, Path(os.path.expanduser(val)))
			else:
				setattr(config, key, val)

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
