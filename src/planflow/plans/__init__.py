"""Plans module - lifecycle statuses, events and persisted entries."""

from .models import PlanEntry, PlanEvent, PlanStatus, TopicEntry

__all__ = [
	"PlanEntry",
	"PlanEvent",
	"PlanStatus",
	"TopicEntry",
]
