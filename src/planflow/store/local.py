"""
Local Store - SQLite-backed plan storage.

Features:
- CRUD operations for plans and topics, keyed by (project, name)
- Plan document bodies stored alongside, but read separately from, metadata
- Uniqueness violations reported as AlreadyExistsError
- One shared connection so the engine can serve many request threads
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ..errors import AlreadyExistsError, InternalError, NotFoundError
from ..plans.models import PlanEntry, PlanStatus, TopicEntry
from .base import PlanStore, status_values

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS plans (
	id          INTEGER PRIMARY KEY,
	project     TEXT NOT NULL,
	filename    TEXT NOT NULL,
	status      TEXT NOT NULL DEFAULT 'ready',
	description TEXT NOT NULL DEFAULT '',
	branch      TEXT NOT NULL DEFAULT '',
	topic       TEXT NOT NULL DEFAULT '',
	created_at  TEXT NOT NULL DEFAULT '',
	implemented TEXT NOT NULL DEFAULT '',
	content     TEXT,
	UNIQUE(project, filename)
);

CREATE TABLE IF NOT EXISTS topics (
	id         INTEGER PRIMARY KEY,
	project    TEXT NOT NULL,
	name       TEXT NOT NULL,
	created_at TEXT NOT NULL DEFAULT '',
	UNIQUE(project, name)
);

CREATE INDEX IF NOT EXISTS idx_plans_project_status ON plans(project, status);
CREATE INDEX IF NOT EXISTS idx_plans_project_topic ON plans(project, topic);
"""

PLAN_COLUMNS = "filename, status, description, branch, topic, created_at, implemented"


def format_time(value: Optional[datetime]) -> str:
	"""Format a datetime as ISO-8601 UTC for storage. None becomes ''."""
	if value is None:
		return ""
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc).isoformat()


def parse_time(value: str) -> Optional[datetime]:
	"""Parse a stored ISO-8601 timestamp. Empty or invalid input gives None."""
	if not value:
		return None
	try:
		parsed = datetime.fromisoformat(value)
	except ValueError:
		return None
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
	return "UNIQUE constraint failed" in str(exc)


class LocalStore(PlanStore):
	"""
	SQLite-backed plan storage.

	Usage:
		store = LocalStore("data/plans.db")
		store.create("my-project", PlanEntry(filename="feature.md"))
		entry = store.get("my-project", "feature.md")

	Use ":memory:" for a throwaway in-memory database.
	"""

	def __init__(self, db_path: str = ""):
		if not db_path:
			from ..config import get_config
			db_path = str(get_config().db_path)
		self.db_path = db_path
		self._lock = threading.RLock()

		try:
			if db_path != ":memory:":
				Path(db_path).parent.mkdir(parents=True, exist_ok=True)
			self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
				db_path, check_same_thread=False,
			)
			self._conn.row_factory = sqlite3.Row
			if db_path != ":memory:":
				# WAL lets readers in other processes proceed during a write
				self._conn.execute("PRAGMA journal_mode=WAL")
			self._conn.execute("PRAGMA busy_timeout=5000")
			self._conn.executescript(SCHEMA)
			self._conn.commit()
		except (sqlite3.Error, OSError) as e:
			raise InternalError(f"open plan store {db_path}: {e}") from e

		logger.info(f"Plan store initialized: {db_path}")

	@contextmanager
	def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
		"""Run statements in one transaction, mapping driver errors onto the taxonomy."""
		with self._lock:
			if self._conn is None:
				raise InternalError(f"{action}: plan store is closed")
			try:
				with self._conn:
					yield self._conn
			except sqlite3.IntegrityError as e:
				if _is_unique_violation(e):
					raise AlreadyExistsError(f"{action}: {e}") from e
				raise InternalError(f"{action}: {e}") from e
			except sqlite3.Error as e:
				raise InternalError(f"{action}: {e}") from e

	def close(self) -> None:
		"""Close the database connection. Safe to call more than once."""
		with self._lock:
			if self._conn is not None:
				self._conn.close()
				self._conn = None

	def ping(self) -> None:
		with self._transaction("ping") as conn:
			conn.execute("SELECT 1").fetchone()

	def create(self, project: str, entry: PlanEntry) -> None:
		"""
		Create a new plan.

		Args:
			project: Project name
			entry: Plan metadata; ``entry.content`` becomes the document body

		Raises:
			AlreadyExistsError: If the filename is taken in this project
		"""
		try:
			with self._transaction("create plan") as conn:
				conn.execute(
					"""
					INSERT INTO plans
					(project, filename, status, description, branch, topic, created_at, implemented, content)
					VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
					""",
					(
						project,
						entry.filename,
						entry.status,
						entry.description,
						entry.branch,
						entry.topic,
						format_time(entry.created_at),
						entry.implemented,
						entry.content,
					),
				)
		except AlreadyExistsError:
			raise AlreadyExistsError(f"plan already exists: {project}/{entry.filename}") from None
		logger.debug(f"Created plan {project}/{entry.filename}")

	def get(self, project: str, filename: str) -> PlanEntry:
		with self._transaction("get plan") as conn:
			row = conn.execute(
				f"SELECT {PLAN_COLUMNS} FROM plans WHERE project = ? AND filename = ?",
				(project, filename),
			).fetchone()

		if not row:
			raise NotFoundError(f"plan not found: {project}/{filename}")
		return self._row_to_entry(row)

	def update(self, project: str, filename: str, entry: PlanEntry) -> None:
		"""
		Replace all metadata fields of an existing plan.

		The filename key and the document body are left untouched; use
		rename() and set_content() for those.

		Raises:
			NotFoundError: If the plan does not exist
		"""
		with self._transaction("update plan") as conn:
			cursor = conn.execute(
				"""
				UPDATE plans
				SET status = ?, description = ?, branch = ?, topic = ?, created_at = ?, implemented = ?
				WHERE project = ? AND filename = ?
				""",
				(
					entry.status,
					entry.description,
					entry.branch,
					entry.topic,
					format_time(entry.created_at),
					entry.implemented,
					project,
					filename,
				),
			)
			updated = cursor.rowcount

		if updated == 0:
			raise NotFoundError(f"plan not found: {project}/{filename}")

	def rename(self, project: str, old_filename: str, new_filename: str) -> None:
		"""
		Change the filename of an existing plan in a single statement.

		Raises:
			NotFoundError: If old_filename does not exist
			AlreadyExistsError: If new_filename is already taken
		"""
		try:
			with self._transaction("rename plan") as conn:
				cursor = conn.execute(
					"UPDATE plans SET filename = ? WHERE project = ? AND filename = ?",
					(new_filename, project, old_filename),
				)
				renamed = cursor.rowcount
		except AlreadyExistsError:
			raise AlreadyExistsError(f"plan already exists: {project}/{new_filename}") from None

		if renamed == 0:
			raise NotFoundError(f"plan not found: {project}/{old_filename}")
		logger.info(f"Renamed plan {project}/{old_filename} -> {new_filename}")

	def list(self, project: str) -> list[PlanEntry]:
		return self._query_plans("project = ?", [project])

	def list_by_status(self, project: str, *statuses: PlanStatus | str) -> list[PlanEntry]:
		if not statuses:
			return []
		values = status_values(statuses)
		placeholders = ", ".join("?" for _ in values)
		return self._query_plans(f"project = ? AND status IN ({placeholders})", [project, *values])

	def list_by_topic(self, project: str, topic: str) -> list[PlanEntry]:
		return self._query_plans("project = ? AND topic = ?", [project, topic])

	def _query_plans(self, where: str, params: list) -> list[PlanEntry]:
		with self._transaction("list plans") as conn:
			rows = conn.execute(
				f"SELECT {PLAN_COLUMNS} FROM plans WHERE {where} ORDER BY filename ASC",
				params,
			).fetchall()
		return [self._row_to_entry(row) for row in rows]

	def list_topics(self, project: str) -> list[TopicEntry]:
		with self._transaction("list topics") as conn:
			rows = conn.execute(
				"SELECT name, created_at FROM topics WHERE project = ? ORDER BY name ASC",
				(project,),
			).fetchall()
		return [
			TopicEntry(name=row["name"], created_at=parse_time(row["created_at"]))
			for row in rows
		]

	def create_topic(self, project: str, entry: TopicEntry) -> None:
		try:
			with self._transaction("create topic") as conn:
				conn.execute(
					"INSERT INTO topics (project, name, created_at) VALUES (?, ?, ?)",
					(project, entry.name, format_time(entry.created_at)),
				)
		except AlreadyExistsError:
			raise AlreadyExistsError(f"topic already exists: {project}/{entry.name}") from None
		logger.debug(f"Created topic {project}/{entry.name}")

	def get_content(self, project: str, filename: str) -> str:
		with self._transaction("get content") as conn:
			row = conn.execute(
				"SELECT content FROM plans WHERE project = ? AND filename = ?",
				(project, filename),
			).fetchone()

		if not row:
			raise NotFoundError(f"plan not found: {project}/{filename}")
		return row["content"] or ""

	def set_content(self, project: str, filename: str, content: str) -> None:
		with self._transaction("set content") as conn:
			cursor = conn.execute(
				"UPDATE plans SET content = ? WHERE project = ? AND filename = ?",
				(content, project, filename),
			)
			updated = cursor.rowcount

		if updated == 0:
			raise NotFoundError(f"plan not found: {project}/{filename}")

	@staticmethod
	def _row_to_entry(row: sqlite3.Row) -> PlanEntry:
		return PlanEntry(
			filename=row["filename"],
			status=row["status"],
			description=row["description"],
			branch=row["branch"],
			topic=row["topic"],
			created_at=parse_time(row["created_at"]),
			implemented=row["implemented"],
		)
