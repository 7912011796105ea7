"""
Plan Registry - project-scoped plan bookkeeping on top of a PlanStore.

Covers registration (with automatic topic creation), topic and branch
assignment, slug-based renames that keep the plan file on disk in step
with the store, and the grouped views the control surface displays.
Lifecycle status changes go through fsm.StateMachine, not through here.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..errors import AlreadyExistsError, InternalError, InvalidInputError, NotFoundError, PlanflowError
from ..store.base import PlanStore
from .models import PlanEntry, PlanStatus, TopicEntry

logger = logging.getLogger(__name__)

DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}-")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def display_name(filename: str) -> str:
	"""
	Strip the date prefix and .md extension from a plan filename.

	"2026-02-20-my-feature.md" -> "my-feature"
	"plain-plan.md" -> "plain-plan"
	"""
	name = filename.removesuffix(".md")
	if DATE_PREFIX_RE.match(name) and len(name) > 11:
		name = name[11:]
	return name


def slugify(name: str) -> str:
	"""
	Lowercase, hyphen-separated slug of a human name.

	"My Cool Feature!" -> "my-cool-feature"
	"""
	return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


class PlanRegistry:
	"""
	Plan bookkeeping for one project.

	Usage:
		registry = PlanRegistry(store, "my-project", Path("docs/plans"))
		registry.register("2026-02-20-auth.md", "Auth refactor", topic="security")
		for entry in registry.unfinished():
			print(display_name(entry.filename), entry.status)
	"""

	def __init__(self, store: PlanStore, project: str, plan_dir: Union[Path, str]):
		self.store = store
		self.project = project
		self.plan_dir = Path(plan_dir)

	def register(
		self,
		filename: str,
		description: str = "",
		branch: str = "",
		topic: str = "",
		created_at: Optional[datetime] = None,
	) -> PlanEntry:
		"""
		Register a new plan in the ready state.

		A non-empty topic that does not exist yet is created alongside.

		Raises:
			AlreadyExistsError: If the plan is already registered
		"""
		created_at = created_at or datetime.now(timezone.utc)
		entry = PlanEntry(
			filename=filename,
			status=PlanStatus.READY.value,
			description=description,
			branch=branch,
			topic=topic,
			created_at=created_at,
		)
		self.store.create(self.project, entry)
		if topic:
			self._ensure_topic(topic, created_at)
		logger.info(f"Registered plan {self.project}/{filename}")
		return entry

	def _ensure_topic(self, topic: str, created_at: datetime) -> None:
		try:
			self.store.create_topic(self.project, TopicEntry(name=topic, created_at=created_at))
		except AlreadyExistsError:
			pass

	def entry(self, filename: str) -> PlanEntry:
		"""The stored entry. Raises NotFoundError."""
		return self.store.get(self.project, filename)

	def plans(self) -> list[PlanEntry]:
		"""All plans, including done and cancelled, sorted by filename."""
		return self.store.list(self.project)

	def unfinished(self) -> list[PlanEntry]:
		"""Plans that are neither done nor cancelled, sorted by filename."""
		closed = {PlanStatus.DONE.value, PlanStatus.CANCELLED.value}
		return [e for e in self.store.list(self.project) if e.status not in closed]

	def finished(self) -> list[PlanEntry]:
		"""Done plans, newest first; ties by filename descending."""
		done = self.store.list_by_status(self.project, PlanStatus.DONE)
		return sorted(done, key=lambda e: (e.created_at or _EPOCH, e.filename), reverse=True)

	def cancelled(self) -> list[PlanEntry]:
		return self.store.list_by_status(self.project, PlanStatus.CANCELLED)

	def topics(self) -> list[TopicEntry]:
		return self.store.list_topics(self.project)

	def plans_by_topic(self, topic: str) -> list[PlanEntry]:
		return self.store.list_by_topic(self.project, topic)

	def ungrouped(self) -> list[PlanEntry]:
		"""Unfinished plans with no topic, sorted by filename."""
		return [e for e in self.unfinished() if not e.topic]

	def has_running_coder_in_topic(self, topic: str, exclude: str = "") -> Optional[str]:
		"""Filename of another implementing plan in ``topic``, if there is one."""
		for entry in self.store.list_by_topic(self.project, topic):
			if entry.filename != exclude and entry.status == PlanStatus.IMPLEMENTING.value:
				return entry.filename
		return None

	def set_topic(self, filename: str, topic: str) -> PlanEntry:
		"""
		Move a plan into ``topic``; an empty topic removes it from any topic.

		Raises:
			NotFoundError: If the plan is not registered
		"""
		entry = self.store.get(self.project, filename)
		entry.topic = topic
		self.store.update(self.project, filename, entry)
		if topic:
			self._ensure_topic(topic, datetime.now(timezone.utc))
		return entry

	def set_branch(self, filename: str, branch: str) -> PlanEntry:
		entry = self.store.get(self.project, filename)
		entry.branch = branch
		self.store.update(self.project, filename, entry)
		return entry

	def rename(self, old_filename: str, new_name: str) -> str:
		"""
		Rename a plan to a slug of ``new_name``, keeping any date prefix.

		The plan document on disk is moved first, if present, and moved
		back if the store rename fails.

		Returns:
			The new filename (unchanged if the slug is the same)

		Raises:
			InvalidInputError: If ``new_name`` slugifies to nothing
			NotFoundError: If the plan is not registered
			AlreadyExistsError: If the new filename is taken
			InternalError: If the document cannot be moved on disk
		"""
		slug = slugify(new_name)
		if not slug:
			raise InvalidInputError(f"new name {new_name!r} produced an empty slug")

		match = DATE_PREFIX_RE.match(old_filename)
		prefix = match.group(0) if match and len(old_filename) > 11 else ""
		new_filename = f"{prefix}{slug}.md"

		# Surface NotFoundError before touching the filesystem
		self.store.get(self.project, old_filename)
		if new_filename == old_filename:
			return old_filename
		if self._is_registered(new_filename):
			raise AlreadyExistsError(f"plan already exists: {self.project}/{new_filename}")

		old_path = self.plan_dir / old_filename
		new_path = self.plan_dir / new_filename
		moved = old_path.exists()
		if moved:
			try:
				old_path.rename(new_path)
			except OSError as e:
				raise InternalError(f"rename plan file {old_path}: {e}") from e

		try:
			self.store.rename(self.project, old_filename, new_filename)
		except PlanflowError:
			if moved:
				new_path.rename(old_path)
			raise

		logger.info(f"Renamed plan {self.project}/{old_filename} -> {new_filename}")
		return new_filename

	def _is_registered(self, filename: str) -> bool:
		try:
			self.store.get(self.project, filename)
		except NotFoundError:
			return False
		return True
