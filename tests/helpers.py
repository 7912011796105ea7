"""Test helpers shared across planflow tests."""

from datetime import datetime, timezone

from planflow.plans.models import PlanEntry

PROJECT = "test-proj"


def make_entry(filename: str, status: str = "ready", **fields) -> PlanEntry:
	"""Build a PlanEntry with a fixed creation time."""
	fields.setdefault("created_at", datetime(2026, 1, 29, 10, 0, tzinfo=timezone.utc))
	return PlanEntry(filename=filename, status=status, **fields)
