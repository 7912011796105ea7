"""Tests for choosing a store backend from configuration."""

from pathlib import Path

import pytest

from planflow.config import Config
from planflow.errors import TransportError
from planflow.store import EmbeddedServer, LocalStore, RemoteStore, open_store


@pytest.fixture
def config(tmp_path: Path) -> Config:
	return Config(config_dir=tmp_path / "config", data_dir=tmp_path / "data")


def test_local_when_no_url(config: Config):
	store = open_store(config)
	try:
		assert isinstance(store, LocalStore)
		assert store.db_path == str(config.db_path)
	finally:
		store.close()


def test_remote_is_lazy(config: Config):
	config.plan_store_url = "http://127.0.0.1:1"
	store = open_store(config)
	try:
		assert isinstance(store, RemoteStore)
		with pytest.raises(TransportError):
			store.ping()
	finally:
		store.close()


def test_fallback_to_local(config: Config, caplog):
	config.plan_store_url = "http://127.0.0.1:1"
	config.request_timeout = 0.5
	with caplog.at_level("WARNING"):
		store = open_store(config, fallback=True)
	try:
		assert isinstance(store, LocalStore)
		assert "unreachable" in caplog.text
	finally:
		store.close()


def test_fallback_keeps_reachable_remote(config: Config, tmp_path: Path):
	with EmbeddedServer(str(tmp_path / "server.db")) as server:
		config.plan_store_url = server.url
		store = open_store(config, fallback=True)
		try:
			assert isinstance(store, RemoteStore)
		finally:
			store.close()
