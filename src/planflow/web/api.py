"""JSON endpoints of the plan store protocol."""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..errors import InternalError, InvalidInputError, PlanflowError
from ..plans.models import PlanEntry, TopicEntry
from ..store.base import PlanStore

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
	"not_found": 404,
	"already_exists": 409,
	"invalid_input": 400,
	"internal": 500,
}


def get_store(request: Request) -> PlanStore:
	"""Get the PlanStore from app state."""
	return request.app.state.store


def _key(request: Request, name: str) -> str:
	"""A required key query parameter. Keys may contain any character, including '/'."""
	value = request.query_params.get(name)
	if value is None:
		raise InvalidInputError(f"{name} query parameter is required")
	return value


def _dump(model: BaseModel) -> dict:
	return model.model_dump(mode="json", exclude_none=True)


async def _read_json(request: Request) -> dict:
	try:
		data = await request.json()
	except json.JSONDecodeError as e:
		raise InvalidInputError(f"request body is not valid JSON: {e}") from e
	if not isinstance(data, dict):
		raise InvalidInputError("request body must be a JSON object")
	return data


async def _read_model(request: Request, model: type[BaseModel]) -> BaseModel:
	data = await _read_json(request)
	try:
		return model.model_validate(data)
	except ValidationError as e:
		raise InvalidInputError(str(e)) from e


async def handle_error(request: Request, exc: PlanflowError) -> JSONResponse:
	"""Render a planflow error as ``{"error": kind, "message": text}``."""
	if isinstance(exc, InternalError):
		logger.error(f"Store failure serving {request.method} {request.url.path}: {exc}")
	status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
	return JSONResponse({"error": exc.kind, "message": str(exc)}, status_code=status_code)


async def api_ping(request: Request) -> JSONResponse:
	"""Liveness probe; also checks the engine behind the server."""
	store = get_store(request)
	await asyncio.to_thread(store.ping)
	return JSONResponse({"status": "ok"})


async def api_list_plans(request: Request) -> JSONResponse:
	"""All plans, or only those matching ?status=... (repeatable) or ?topic=..."""
	store = get_store(request)
	project = _key(request, "project")
	statuses = request.query_params.getlist("status")
	topic = request.query_params.get("topic")

	if statuses:
		entries = await asyncio.to_thread(store.list_by_status, project, *statuses)
	elif topic is not None:
		entries = await asyncio.to_thread(store.list_by_topic, project, topic)
	else:
		entries = await asyncio.to_thread(store.list, project)
	return JSONResponse([_dump(e) for e in entries])


async def api_create_plan(request: Request) -> JSONResponse:
	store = get_store(request)
	project = _key(request, "project")
	entry = await _read_model(request, PlanEntry)
	await asyncio.to_thread(store.create, project, entry)
	return JSONResponse(_dump(entry.model_copy(update={"content": None})), status_code=201)


async def api_get_plan(request: Request) -> JSONResponse:
	store = get_store(request)
	entry = await asyncio.to_thread(
		store.get, _key(request, "project"), _key(request, "filename")
	)
	return JSONResponse(_dump(entry))


async def api_update_plan(request: Request) -> JSONResponse:
	store = get_store(request)
	project = _key(request, "project")
	filename = _key(request, "filename")
	entry = await _read_model(request, PlanEntry)
	await asyncio.to_thread(store.update, project, filename, entry)
	return JSONResponse({"status": "ok"})


async def api_rename_plan(request: Request) -> JSONResponse:
	store = get_store(request)
	project = _key(request, "project")
	filename = _key(request, "filename")
	data = await _read_json(request)
	new_filename = data.get("new_filename")
	if not isinstance(new_filename, str) or not new_filename:
		raise InvalidInputError("new_filename is required")
	await asyncio.to_thread(store.rename, project, filename, new_filename)
	return JSONResponse({"status": "ok"})


async def api_get_content(request: Request) -> JSONResponse:
	store = get_store(request)
	content = await asyncio.to_thread(
		store.get_content, _key(request, "project"), _key(request, "filename")
	)
	return JSONResponse({"content": content})


async def api_set_content(request: Request) -> JSONResponse:
	store = get_store(request)
	project = _key(request, "project")
	filename = _key(request, "filename")
	data = await _read_json(request)
	content = data.get("content")
	if not isinstance(content, str):
		raise InvalidInputError("content must be a string")
	await asyncio.to_thread(store.set_content, project, filename, content)
	return JSONResponse({"status": "ok"})


async def api_list_topics(request: Request) -> JSONResponse:
	store = get_store(request)
	topics = await asyncio.to_thread(store.list_topics, _key(request, "project"))
	return JSONResponse([_dump(t) for t in topics])


async def api_create_topic(request: Request) -> JSONResponse:
	store = get_store(request)
	project = _key(request, "project")
	entry = await _read_model(request, TopicEntry)
	await asyncio.to_thread(store.create_topic, project, entry)
	return JSONResponse(_dump(entry), status_code=201)
