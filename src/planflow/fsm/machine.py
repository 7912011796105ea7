"""
Plan lifecycle state machine.

Validates events against the transition table and persists the new
status through a PlanStore. Every call re-reads the stored entry, so the
machine holds no plan state of its own.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from ..config import Config, get_config
from ..errors import InvalidInputError, InvalidTransitionError
from ..plans.models import VALID_STATUSES, PlanEvent, PlanStatus
from ..store.base import PlanStore
from .lock import plan_dir_lock

logger = logging.getLogger(__name__)

# current status -> event -> new status
TRANSITIONS: dict[PlanStatus, dict[PlanEvent, PlanStatus]] = {
	PlanStatus.READY: {
		PlanEvent.PLAN_START: PlanStatus.PLANNING,
		PlanEvent.IMPLEMENT_START: PlanStatus.IMPLEMENTING,
		PlanEvent.CANCEL: PlanStatus.CANCELLED,
	},
	PlanStatus.PLANNING: {
		# Restarting a planner after a crash or interrupt
		PlanEvent.PLAN_START: PlanStatus.PLANNING,
		PlanEvent.PLANNER_FINISHED: PlanStatus.READY,
		PlanEvent.CANCEL: PlanStatus.CANCELLED,
	},
	PlanStatus.IMPLEMENTING: {
		PlanEvent.IMPLEMENT_FINISHED: PlanStatus.REVIEWING,
		PlanEvent.CANCEL: PlanStatus.CANCELLED,
	},
	PlanStatus.REVIEWING: {
		PlanEvent.REVIEW_APPROVED: PlanStatus.DONE,
		PlanEvent.REVIEW_CHANGES_REQUESTED: PlanStatus.IMPLEMENTING,
		PlanEvent.CANCEL: PlanStatus.CANCELLED,
	},
	PlanStatus.DONE: {
		PlanEvent.START_OVER: PlanStatus.PLANNING,
		PlanEvent.CANCEL: PlanStatus.CANCELLED,
	},
	PlanStatus.CANCELLED: {
		PlanEvent.REOPEN: PlanStatus.PLANNING,
	},
}


def parse_event(event: Union[PlanEvent, str]) -> PlanEvent:
	"""Coerce an event name to a PlanEvent. Raises InvalidInputError."""
	try:
		return PlanEvent(event)
	except ValueError:
		raise InvalidInputError(f"unknown event {event!r}") from None


def apply_transition(current: Union[PlanStatus, str], event: Union[PlanEvent, str]) -> PlanStatus:
	"""
	Look up the status reached from ``current`` by ``event``.

	Raises:
		InvalidTransitionError: If the pair is not in the table, including
			when ``current`` is not a known status
	"""
	event = parse_event(event)
	status = PlanStatus.parse(current)
	current_name = current.value if isinstance(current, PlanStatus) else str(current)
	if status is None:
		raise InvalidTransitionError(
			current_name, event.value,
			f"no transitions defined for status {current_name!r}",
		)
	next_status = TRANSITIONS[status].get(event)
	if next_status is None:
		raise InvalidTransitionError(current_name, event.value)
	return next_status


class StateMachine:
	"""
	Applies lifecycle events to plans of one project.

	Usage:
		machine = StateMachine(store, "my-project", Path("docs/plans"))
		machine.transition("feature.md", PlanEvent.PLAN_START)

	Transitions run inside a critical section: an in-process mutex plus an
	advisory flock on the plan directory. If the file lock is unavailable
	the transition proceeds unlocked, unless ``strict_lock`` is set.
	"""

	def __init__(
		self,
		store: PlanStore,
		project: str,
		plan_dir: Union[Path, str],
		strict_lock: bool = False,
	):
		self.store = store
		self.project = project
		self.plan_dir = Path(plan_dir)
		self.strict_lock = strict_lock
		self._mutex = threading.Lock()

	@classmethod
	def from_config(
		cls,
		store: PlanStore,
		project: str,
		plan_dir: Union[Path, str],
		config: Optional[Config] = None,
	) -> "StateMachine":
		"""Build a machine honoring the configured ``strict_lock`` setting."""
		config = config or get_config()
		return cls(store, project, plan_dir, strict_lock=config.strict_lock)

	def transition(self, plan_file: str, event: Union[PlanEvent, str]) -> PlanStatus:
		"""
		Apply ``event`` to ``plan_file`` and persist the resulting status.

		Returns:
			The new status

		Raises:
			NotFoundError: If the plan is not registered
			InvalidTransitionError: If the event is not allowed from the
				plan's current status; the stored status is left unchanged
			InvalidInputError: If the event name is unknown
		"""
		event = parse_event(event)
		with self._mutex, plan_dir_lock(self.plan_dir, strict=self.strict_lock):
			entry = self.store.get(self.project, plan_file)
			next_status = apply_transition(entry.status, event)
			previous = entry.status
			entry.status = next_status.value
			self.store.update(self.project, plan_file, entry)

		logger.info(f"Plan {self.project}/{plan_file}: {previous} --{event.value}--> {next_status.value}")
		return next_status

	def force_set_status(self, plan_file: str, status: Union[PlanStatus, str]) -> PlanStatus:
		"""
		Override a plan's status regardless of the transition table.

		Meant for manual operator overrides. The status must still be a
		recognized lifecycle status.

		Raises:
			InvalidInputError: If ``status`` is not a known status
			NotFoundError: If the plan is not registered
		"""
		new_status = PlanStatus.parse(status)
		if new_status is None:
			raise InvalidInputError(f"invalid status {status!r}: must be one of {VALID_STATUSES}")

		entry = self.store.get(self.project, plan_file)
		previous = entry.status
		entry.status = new_status.value
		self.store.update(self.project, plan_file, entry)

		logger.warning(f"Plan {self.project}/{plan_file}: status forced {previous} -> {new_status.value}")
		return new_status
