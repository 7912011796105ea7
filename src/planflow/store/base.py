"""The PlanStore interface implemented by every storage backend."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..plans.models import PlanEntry, PlanStatus, TopicEntry


class PlanStore(ABC):
	"""
	Capability interface for plan and topic persistence.

	Implementations:
		LocalStore: direct SQLite access
		RemoteStore: HTTP client for a counterpart server
		(EmbeddedServer serves a LocalStore to RemoteStore clients)

	Every listing is sorted by its key ascending. Errors are reported with
	the planflow.errors taxonomy so callers never depend on the backend.
	"""

	# Plan CRUD

	@abstractmethod
	def create(self, project: str, entry: PlanEntry) -> None:
		"""Insert a plan. Raises AlreadyExistsError on a duplicate filename."""

	@abstractmethod
	def get(self, project: str, filename: str) -> PlanEntry:
		"""Fetch plan metadata. Raises NotFoundError."""

	@abstractmethod
	def update(self, project: str, filename: str, entry: PlanEntry) -> None:
		"""Replace all metadata fields of a plan. Raises NotFoundError."""

	@abstractmethod
	def rename(self, project: str, old_filename: str, new_filename: str) -> None:
		"""Atomically rekey a plan. Raises NotFoundError or AlreadyExistsError."""

	# Queries

	@abstractmethod
	def list(self, project: str) -> list[PlanEntry]:
		"""All plans of a project, sorted by filename."""

	@abstractmethod
	def list_by_status(self, project: str, *statuses: "PlanStatus | str") -> list[PlanEntry]:
		"""Plans whose status is any of ``statuses``, sorted by filename."""

	@abstractmethod
	def list_by_topic(self, project: str, topic: str) -> list[PlanEntry]:
		"""Plans assigned to ``topic``, sorted by filename."""

	# Topics

	@abstractmethod
	def list_topics(self, project: str) -> list[TopicEntry]:
		"""All topics of a project, sorted by name."""

	@abstractmethod
	def create_topic(self, project: str, entry: TopicEntry) -> None:
		"""Insert a topic. Raises AlreadyExistsError."""

	# Document bodies

	@abstractmethod
	def get_content(self, project: str, filename: str) -> str:
		"""The plan document body ("" if never set). Raises NotFoundError."""

	@abstractmethod
	def set_content(self, project: str, filename: str, content: str) -> None:
		"""Replace the plan document body. Raises NotFoundError."""

	# Health

	@abstractmethod
	def ping(self) -> None:
		"""Raise if the backend is not usable."""

	@abstractmethod
	def close(self) -> None:
		"""Release any resources held by the store."""

	def __enter__(self) -> "PlanStore":
		return self

	def __exit__(self, exc_type, exc, tb) -> None:
		self.close()


def status_values(statuses) -> list[str]:
	"""Normalize PlanStatus members or raw strings to their string values."""
	return [s.value if isinstance(s, PlanStatus) else str(s) for s in statuses]
