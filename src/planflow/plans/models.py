"""
Plan Models - Pydantic schemas for plan lifecycle tracking.

Defines the lifecycle statuses and events plus the persisted plan and
topic entries shared by every store backend.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PlanStatus(str, Enum):
	"""Lifecycle status of a plan."""
	READY = "ready"
	PLANNING = "planning"
	IMPLEMENTING = "implementing"
	REVIEWING = "reviewing"
	DONE = "done"
	CANCELLED = "cancelled"

	@classmethod
	def parse(cls, value: "str | PlanStatus") -> Optional["PlanStatus"]:
		"""Return the matching status, or None for an unrecognized name."""
		try:
			return cls(value)
		except ValueError:
			return None


class PlanEvent(str, Enum):
	"""Lifecycle transition trigger."""
	PLAN_START = "plan_start"
	PLANNER_FINISHED = "planner_finished"
	IMPLEMENT_START = "implement_start"
	IMPLEMENT_FINISHED = "implement_finished"
	REVIEW_APPROVED = "review_approved"
	REVIEW_CHANGES_REQUESTED = "review_changes_requested"
	START_OVER = "start_over"
	CANCEL = "cancel"
	REOPEN = "reopen"

	@property
	def is_user_only(self) -> bool:
		"""True if only the interactive control surface may trigger this event."""
		return self in USER_ONLY_EVENTS


USER_ONLY_EVENTS = frozenset({PlanEvent.START_OVER, PlanEvent.CANCEL, PlanEvent.REOPEN})

VALID_STATUSES = ", ".join(s.value for s in PlanStatus)


class PlanEntry(BaseModel):
	"""
	Persisted metadata for a single plan.

	Status is kept as a plain string so entries written by newer code
	with statuses this version does not know can still be read and shown.
	"""
	filename: str = Field(description="Plan document filename, unique within a project")
	status: str = Field(default=PlanStatus.READY.value)
	description: str = Field(default="")
	branch: str = Field(default="")
	topic: str = Field(default="")
	created_at: Optional[datetime] = Field(default=None)
	implemented: str = Field(default="", description="Implementation marker")
	content: Optional[str] = Field(default=None, description="Plan document body, only set on create")

	@field_validator("status", mode="before")
	@classmethod
	def _status_value(cls, value):
		if isinstance(value, Enum):
			return value.value
		return value

	@property
	def lifecycle_status(self) -> Optional[PlanStatus]:
		"""The status as a PlanStatus, or None if it is a foreign value."""
		return PlanStatus.parse(self.status)


class TopicEntry(BaseModel):
	"""A named, immutable grouping of plans within a project."""
	name: str
	created_at: Optional[datetime] = Field(default=None)
