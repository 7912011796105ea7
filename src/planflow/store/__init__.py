"""Store module - PlanStore interface and its backends."""

from .base import PlanStore
from .embedded import EmbeddedServer
from .factory import open_store
from .local import LocalStore
from .remote import RemoteStore

__all__ = [
	"PlanStore",
	"LocalStore",
	"RemoteStore",
	"EmbeddedServer",
	"open_store",
]
