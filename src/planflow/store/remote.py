"""
Remote Store - HTTP client for a plan store server.

Every PlanStore call becomes one JSON request/response exchange. The
client connects lazily: constructing it performs no I/O, and an
unreachable server surfaces as TransportError on the first call.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..errors import WIRE_ERRORS, TransportError
from ..plans.models import PlanEntry, PlanStatus, TopicEntry
from .base import PlanStore, status_values

logger = logging.getLogger(__name__)


class RemoteStore(PlanStore):
	"""
	PlanStore backed by a remote server speaking the /v1 protocol.

	Usage:
		store = RemoteStore("http://127.0.0.1:7433")
		store.ping()  # raises TransportError if the server is down

	Args:
		base_url: Server root, e.g. "http://127.0.0.1:7433"
		timeout: Per-request timeout in seconds
		client: Optional pre-built httpx.Client (e.g. a Starlette TestClient)
	"""

	def __init__(
		self,
		base_url: str,
		timeout: float = 10.0,
		client: Optional[httpx.Client] = None,
	):
		self.base_url = base_url.rstrip("/")
		self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
		self._owns_client = client is None

	def _request(
		self,
		method: str,
		path: str,
		*,
		json: Any = None,
		params: Any = None,
	) -> Any:
		"""Send one request and decode the JSON reply, raising on error replies."""
		url = f"{self.base_url}{path}"
		try:
			response = self._client.request(method, url, json=json, params=params)
		except httpx.RequestError as e:
			logger.debug(f"Plan store unreachable: {method} {url}: {e}")
			raise TransportError(f"{method} {url}: {e}") from e

		try:
			payload = response.json()
		except ValueError as e:
			raise TransportError(
				f"{method} {url}: undecodable response (HTTP {response.status_code})"
			) from e

		if response.is_success:
			return payload

		error_cls = None
		if isinstance(payload, dict):
			error_cls = WIRE_ERRORS.get(payload.get("error", ""))
		if error_cls is None:
			raise TransportError(f"{method} {url}: unexpected HTTP {response.status_code}")
		raise error_cls(payload.get("message", ""))

	@staticmethod
	def _plan_params(project: str, filename: str) -> dict:
		return {"project": project, "filename": filename}

	@staticmethod
	def _decode(model: type, payload: Any) -> Any:
		try:
			if isinstance(payload, list):
				return [model.model_validate(item) for item in payload]
			return model.model_validate(payload)
		except ValidationError as e:
			raise TransportError(f"malformed {model.__name__} in response: {e}") from e

	def ping(self) -> None:
		self._request("GET", "/v1/ping")

	def close(self) -> None:
		if self._owns_client:
			self._client.close()

	def create(self, project: str, entry: PlanEntry) -> None:
		self._request(
			"POST",
			"/v1/plans",
			json=entry.model_dump(mode="json", exclude_none=True),
			params={"project": project},
		)

	def get(self, project: str, filename: str) -> PlanEntry:
		payload = self._request("GET", "/v1/plan", params=self._plan_params(project, filename))
		return self._decode(PlanEntry, payload)

	def update(self, project: str, filename: str, entry: PlanEntry) -> None:
		# The body never travels with a metadata update
		payload = entry.model_dump(mode="json", exclude_none=True, exclude={"content"})
		self._request("PUT", "/v1/plan", json=payload, params=self._plan_params(project, filename))

	def rename(self, project: str, old_filename: str, new_filename: str) -> None:
		self._request(
			"POST",
			"/v1/plan/rename",
			json={"new_filename": new_filename},
			params=self._plan_params(project, old_filename),
		)

	def list(self, project: str) -> list[PlanEntry]:
		return self._decode(
			PlanEntry, self._request("GET", "/v1/plans", params={"project": project})
		)

	def list_by_status(self, project: str, *statuses: PlanStatus | str) -> list[PlanEntry]:
		if not statuses:
			return []
		params = [("project", project)]
		params += [("status", value) for value in status_values(statuses)]
		return self._decode(PlanEntry, self._request("GET", "/v1/plans", params=params))

	def list_by_topic(self, project: str, topic: str) -> list[PlanEntry]:
		return self._decode(
			PlanEntry,
			self._request("GET", "/v1/plans", params={"project": project, "topic": topic}),
		)

	def list_topics(self, project: str) -> list[TopicEntry]:
		return self._decode(
			TopicEntry, self._request("GET", "/v1/topics", params={"project": project})
		)

	def create_topic(self, project: str, entry: TopicEntry) -> None:
		self._request(
			"POST",
			"/v1/topics",
			json=entry.model_dump(mode="json", exclude_none=True),
			params={"project": project},
		)

	def get_content(self, project: str, filename: str) -> str:
		payload = self._request(
			"GET", "/v1/plan/content", params=self._plan_params(project, filename)
		)
		if not isinstance(payload, dict) or not isinstance(payload.get("content"), str):
			raise TransportError("malformed content response")
		return payload["content"]

	def set_content(self, project: str, filename: str, content: str) -> None:
		self._request(
			"PUT",
			"/v1/plan/content",
			json={"content": content},
			params=self._plan_params(project, filename),
		)

	def __repr__(self) -> str:
		return f"RemoteStore({self.base_url!r})"
