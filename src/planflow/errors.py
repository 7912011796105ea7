"""Error taxonomy shared by the store backends, the state machine and migration."""

from typing import Optional


class PlanflowError(Exception):
	"""Base class for all planflow errors."""
	kind = "error"


class NotFoundError(PlanflowError):
	"""Raised when a plan or topic does not exist."""
	kind = "not_found"


class AlreadyExistsError(PlanflowError):
	"""Raised when a plan or topic key is already taken."""
	kind = "already_exists"


class InvalidTransitionError(PlanflowError):
	"""Raised when an event is not allowed from the plan's current status."""
	kind = "invalid_transition"

	def __init__(self, status: str, event: str, message: Optional[str] = None):
		self.status = status
		self.event = event
		super().__init__(message or f"invalid transition: {status!r} + {event!r}")


class InvalidInputError(PlanflowError):
	"""Raised for malformed status or event names, bad wave numbers and bad snapshots."""
	kind = "invalid_input"


class TransportError(PlanflowError):
	"""Raised by the remote client when the server cannot be reached or understood."""
	kind = "transport"


class InternalError(PlanflowError):
	"""Raised when the storage engine itself fails."""
	kind = "internal"


# Errors that travel over the remote protocol, keyed by their wire name
WIRE_ERRORS: dict[str, type[PlanflowError]] = {
	cls.kind: cls
	for cls in (NotFoundError, AlreadyExistsError, InvalidInputError, InternalError)
}
