"""HTTP server side of the plan store protocol."""

from __future__ import annotations

from typing import Optional

from ..store.base import PlanStore


def create_app(store: Optional[PlanStore] = None, db_path: str = "") -> object:
	"""Create the Starlette ASGI application."""
	from .app import build_app

	return build_app(store=store, db_path=db_path)


def run_plan_server(port: int = 0, db_path: str = "", host: str = "127.0.0.1") -> None:
	"""Run the plan store server in the foreground until interrupted."""
	import uvicorn

	from ..config import get_config
	from ..store.local import LocalStore

	if not port:
		port = get_config().embedded_port

	store = LocalStore(db_path)
	app = create_app(store=store)

	print(f"Plan store serving {store.db_path} at http://{host}:{port}")
	print("Press Ctrl+C to stop.")
	try:
		uvicorn.run(app, host=host, port=port, log_level="warning")
	finally:
		store.close()
