"""Shared fixtures for planflow tests."""

from pathlib import Path

import pytest
from starlette.testclient import TestClient

from planflow.store.local import LocalStore
from planflow.store.remote import RemoteStore
from planflow.web.app import build_app


@pytest.fixture
def local_store(tmp_path: Path):
	"""A LocalStore on a fresh database file."""
	store = LocalStore(str(tmp_path / "plans.db"))
	yield store
	store.close()


@pytest.fixture
def remote_store(local_store: LocalStore):
	"""A RemoteStore talking to the server app in-process."""
	client = TestClient(build_app(store=local_store))
	store = RemoteStore("http://testserver", client=client)
	yield store
	client.close()


@pytest.fixture(params=["local", "remote"])
def store(request):
	"""Every PlanStore backend, for contract tests."""
	return request.getfixturevalue(f"{request.param}_store")
