"""Starlette app with route assembly."""

from __future__ import annotations

import logging
from typing import Optional

from starlette.applications import Starlette
from starlette.routing import Route

from ..errors import PlanflowError
from ..store.base import PlanStore
from ..store.local import LocalStore
from .api import (
	api_create_plan,
	api_create_topic,
	api_get_content,
	api_get_plan,
	api_list_plans,
	api_list_topics,
	api_ping,
	api_rename_plan,
	api_set_content,
	api_update_plan,
	handle_error,
)

logger = logging.getLogger(__name__)

# Project and filename travel as query parameters so any key survives URL decoding
PLAN_PATH = "/v1/plan"


def build_app(store: Optional[PlanStore] = None, db_path: str = "") -> Starlette:
	"""
	Build the ASGI app serving ``store`` over the plan store protocol.

	Without a store, a LocalStore is opened at ``db_path`` (or the
	configured default). The caller owns the store's lifetime.
	"""
	routes = [
		Route("/v1/ping", api_ping, methods=["GET"]),
		Route("/v1/plans", api_list_plans, methods=["GET"]),
		Route("/v1/plans", api_create_plan, methods=["POST"]),
		Route(PLAN_PATH, api_get_plan, methods=["GET"]),
		Route(PLAN_PATH, api_update_plan, methods=["PUT"]),
		Route(PLAN_PATH + "/rename", api_rename_plan, methods=["POST"]),
		Route(PLAN_PATH + "/content", api_get_content, methods=["GET"]),
		Route(PLAN_PATH + "/content", api_set_content, methods=["PUT"]),
		Route("/v1/topics", api_list_topics, methods=["GET"]),
		Route("/v1/topics", api_create_topic, methods=["POST"]),
	]

	app = Starlette(routes=routes, exception_handlers={PlanflowError: handle_error})
	app.state.store = store if store is not None else LocalStore(db_path)
	return app
