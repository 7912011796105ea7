"""Choose a PlanStore backend from configuration."""

import logging
from typing import Optional

from ..config import Config, get_config
from ..errors import TransportError
from .base import PlanStore
from .local import LocalStore
from .remote import RemoteStore

logger = logging.getLogger(__name__)


def open_store(config: Optional[Config] = None, fallback: bool = False) -> PlanStore:
	"""
	Open the configured plan store.

	A RemoteStore is returned when ``plan_store_url`` is set, otherwise a
	LocalStore at ``db_path``. The remote client connects lazily, so an
	unreachable server only shows up on first use, unless ``fallback`` is
	set: then the server is pinged up front and a TransportError falls
	back to the local database.
	"""
	config = config or get_config()

	if not config.plan_store_url:
		return LocalStore(str(config.db_path))

	remote = RemoteStore(config.plan_store_url, timeout=config.request_timeout)
	if not fallback:
		return remote

	try:
		remote.ping()
	except TransportError as e:
		logger.warning(f"Plan store at {config.plan_store_url} unreachable, using local db: {e}")
		remote.close()
		return LocalStore(str(config.db_path))
	return remote
