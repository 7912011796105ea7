"""
Embedded Server - an in-process plan store server on loopback.

Several processes on one host can share a single LocalStore through
RemoteStore clients instead of opening the SQLite file concurrently.
The control surface starts this on boot and stops it on exit.
"""

import logging
import socket
import threading
import time
from typing import Optional

import uvicorn

from ..errors import InternalError
from .local import LocalStore

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 5.0
SHUTDOWN_TIMEOUT = 5.0


class EmbeddedServer:
	"""
	Serves a LocalStore over the plan store protocol on 127.0.0.1.

	Usage:
		server = EmbeddedServer("data/plans.db", port=0)  # 0 = OS-assigned
		url = server.start()
		store = RemoteStore(url)
		...
		server.stop()
	"""

	def __init__(self, db_path: str, port: int = 0, host: str = "127.0.0.1"):
		self.db_path = db_path
		self.port = port
		self.host = host
		self._store: Optional[LocalStore] = None
		self._server: Optional[uvicorn.Server] = None
		self._thread: Optional[threading.Thread] = None
		self._url = ""
		self._stop_lock = threading.Lock()
		self._stopped = False

	@property
	def url(self) -> str:
		"""Base URL, e.g. "http://127.0.0.1:7433". Empty until started."""
		return self._url

	@property
	def store(self) -> Optional[LocalStore]:
		"""The underlying LocalStore, for direct same-process access."""
		return self._store

	def start(self) -> str:
		"""
		Open the database, bind the port and serve on a background thread.

		Returns:
			The base URL of the running server

		Raises:
			InternalError: If the database cannot be opened, the port cannot
				be bound, or the server does not come up in time
		"""
		if self._thread is not None:
			raise InternalError("embedded server already started")

		from ..web.app import build_app

		store = LocalStore(self.db_path)

		sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		try:
			sock.bind((self.host, self.port))
		except OSError as e:
			sock.close()
			store.close()
			raise InternalError(f"embedded server: listen on {self.host}:{self.port}: {e}") from e

		bound_host, bound_port = sock.getsockname()[:2]

		config = uvicorn.Config(
			build_app(store=store),
			log_level="warning",
			lifespan="off",
		)
		server = uvicorn.Server(config)
		thread = threading.Thread(
			target=server.run,
			kwargs={"sockets": [sock]},
			name="planflow-embedded-server",
			daemon=True,
		)

		self._store = store
		self._server = server
		self._thread = thread
		thread.start()

		deadline = time.monotonic() + STARTUP_TIMEOUT
		while not server.started:
			if not thread.is_alive() or time.monotonic() > deadline:
				self.stop()
				sock.close()
				raise InternalError(f"embedded server failed to start on {bound_host}:{bound_port}")
			time.sleep(0.01)

		self._url = f"http://{bound_host}:{bound_port}"
		logger.info(f"Embedded plan store serving {self.db_path} at {self._url}")
		return self._url

	def stop(self) -> None:
		"""
		Gracefully shut down the listener and close the database.

		Safe to call multiple times; calls before start() or after the
		first stop are no-ops.
		"""
		with self._stop_lock:
			if self._stopped or self._thread is None:
				return
			self._stopped = True

		if self._server is not None:
			self._server.should_exit = True
		if self._thread is not None:
			self._thread.join(timeout=SHUTDOWN_TIMEOUT)
			if self._thread.is_alive():
				logger.warning("Embedded plan store did not shut down in time")
		if self._store is not None:
			self._store.close()
		logger.info("Embedded plan store stopped")

	def __enter__(self) -> "EmbeddedServer":
		self.start()
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		self.stop()
