"""Advisory, same-host lock file guarding plan state transitions."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

try:
	import fcntl
except ImportError:  # Windows
	fcntl = None

from ..errors import InternalError

logger = logging.getLogger(__name__)

LOCK_FILE = ".plan-state.lock"


@contextmanager
def plan_dir_lock(plan_dir: Path, strict: bool = False) -> Iterator[bool]:
	"""
	Hold an exclusive flock on ``<plan_dir>/.plan-state.lock``.

	Best effort: when the lock file cannot be created or flock is not
	supported, the body runs unlocked and the context yields False.
	With ``strict`` set, those failures raise InternalError instead.

	Yields:
		True if the lock is held
	"""
	lock_path = Path(plan_dir) / LOCK_FILE

	if fcntl is None:
		if strict:
			raise InternalError("file locking is not supported on this platform")
		logger.warning("File locking unsupported on this platform, transitioning unlocked")
		yield False
		return

	try:
		fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o644)
	except OSError as e:
		if strict:
			raise InternalError(f"open lock file {lock_path}: {e}") from e
		logger.warning(f"Cannot open lock file {lock_path}, transitioning unlocked: {e}")
		yield False
		return

	try:
		try:
			fcntl.flock(fd, fcntl.LOCK_EX)
		except OSError as e:
			if strict:
				raise InternalError(f"lock {lock_path}: {e}") from e
			logger.warning(f"Cannot lock {lock_path}, transitioning unlocked: {e}")
			yield False
			return

		try:
			yield True
		finally:
			fcntl.flock(fd, fcntl.LOCK_UN)
	finally:
		os.close(fd)
