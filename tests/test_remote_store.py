"""Tests for RemoteStore behaviour beyond the shared contract."""

import httpx
import pytest

from planflow.errors import (
	AlreadyExistsError,
	InternalError,
	InvalidInputError,
	NotFoundError,
	TransportError,
)
from planflow.plans.models import PlanEntry
from planflow.store.remote import RemoteStore


def _mock_store(handler) -> RemoteStore:
	client = httpx.Client(transport=httpx.MockTransport(handler))
	return RemoteStore("http://plans.test", client=client)


def test_construction_is_lazy():
	calls = []

	def handler(request: httpx.Request) -> httpx.Response:
		calls.append(request)
		return httpx.Response(200, json={"status": "ok"})

	store = _mock_store(handler)
	assert calls == []
	store.ping()
	assert len(calls) == 1
	assert calls[0].url.path == "/v1/ping"


def test_unreachable_server_is_transport_error():
	store = RemoteStore("http://127.0.0.1:1", timeout=0.5)
	try:
		with pytest.raises(TransportError):
			store.ping()
		with pytest.raises(TransportError):
			store.get("p", "a.md")
	finally:
		store.close()


def test_connect_error_is_not_not_found():
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ConnectError("connection refused", request=request)

	store = _mock_store(handler)
	with pytest.raises(TransportError) as exc_info:
		store.get("p", "a.md")
	assert not isinstance(exc_info.value, NotFoundError)


def test_non_json_reply_is_transport_error():
	store = _mock_store(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))
	with pytest.raises(TransportError):
		store.list("p")


def test_unknown_error_kind_is_transport_error():
	store = _mock_store(lambda request: httpx.Response(418, json={"error": "teapot", "message": "no"}))
	with pytest.raises(TransportError):
		store.list("p")


@pytest.mark.parametrize("kind, status_code, error_cls", [
	("not_found", 404, NotFoundError),
	("already_exists", 409, AlreadyExistsError),
	("invalid_input", 400, InvalidInputError),
	("internal", 500, InternalError),
])
def test_error_replies_map_to_taxonomy(kind, status_code, error_cls):
	store = _mock_store(
		lambda request: httpx.Response(status_code, json={"error": kind, "message": "boom"})
	)
	with pytest.raises(error_cls, match="boom"):
		store.get("p", "a.md")


def test_malformed_entry_is_transport_error():
	store = _mock_store(lambda request: httpx.Response(200, json={"status": "ready"}))
	with pytest.raises(TransportError):
		store.get("p", "a.md")


def test_malformed_content_is_transport_error():
	store = _mock_store(lambda request: httpx.Response(200, json={"content": 42}))
	with pytest.raises(TransportError):
		store.get_content("p", "a.md")


def test_list_by_status_sends_repeated_params():
	seen = []

	def handler(request: httpx.Request) -> httpx.Response:
		assert request.url.params["project"] == "p"
		seen.append(request.url.params.get_list("status"))
		return httpx.Response(200, json=[])

	store = _mock_store(handler)
	assert store.list_by_status("p", "ready", "done") == []
	assert seen == [["ready", "done"]]

	# No statuses: no round trip at all
	assert store.list_by_status("p") == []
	assert len(seen) == 1


def test_keys_travel_as_query_params():
	seen = []

	def handler(request: httpx.Request) -> httpx.Response:
		seen.append((request.url.path, dict(request.url.params)))
		return httpx.Response(200, json={"filename": "docs/a b.md"})

	store = _mock_store(handler)
	store.get("team/app", "docs/a b.md")
	assert seen == [("/v1/plan", {"project": "team/app", "filename": "docs/a b.md"})]


def test_update_never_sends_content():
	bodies = []

	def handler(request: httpx.Request) -> httpx.Response:
		bodies.append(request.content)
		return httpx.Response(200, json={"status": "ok"})

	store = _mock_store(handler)
	store.update("p", "a.md", PlanEntry(filename="a.md", content="secret"))
	assert b"secret" not in bodies[0]


def test_close_leaves_injected_client_open():
	client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
	store = RemoteStore("http://plans.test", client=client)
	store.close()
	assert not client.is_closed


def test_repr():
	store = RemoteStore("http://127.0.0.1:7433/")
	assert repr(store) == "RemoteStore('http://127.0.0.1:7433')"
	store.close()
