"""
One-shot import of the legacy plan-state.json snapshot into a PlanStore.

The snapshot lives in the plans directory:

	{
		"plans": {"<filename>": {"status": ..., "description": ..., "branch": ...,
		                         "topic": ..., "created_at": ..., "implemented": ...}},
		"topics": {"<name>": {"created_at": ...}}
	}

Plan bodies are the sibling files named after each plan key. Records that
already exist in the store are skipped, so the import can be re-run (or
resumed after a failure) safely.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from .errors import AlreadyExistsError, InvalidInputError
from .plans.models import VALID_STATUSES, PlanEntry, PlanStatus, TopicEntry
from .store.base import PlanStore
from .store.local import parse_time

logger = logging.getLogger(__name__)

SNAPSHOT_FILE = "plan-state.json"


@dataclass
class MigrationResult:
	"""Counts from one migration run."""
	plans_imported: int = 0
	plans_skipped: int = 0
	topics_imported: int = 0
	topics_skipped: int = 0

	@property
	def writes(self) -> int:
		return self.plans_imported + self.topics_imported


def _load_snapshot(path: Path) -> dict:
	try:
		data = json.loads(path.read_text(encoding="utf-8"))
	except json.JSONDecodeError as e:
		raise InvalidInputError(f"parse {path}: {e}") from e
	if not isinstance(data, dict):
		raise InvalidInputError(f"parse {path}: top level must be an object")
	return data


def _mapping(data: dict, key: str, path: Path) -> dict:
	value = data.get(key) or {}
	if not isinstance(value, dict):
		raise InvalidInputError(f"parse {path}: {key!r} must be an object")
	return value


def _time(value: Any) -> Optional[datetime]:
	return parse_time(value) if isinstance(value, str) else None


def _read_body(path: Path) -> Optional[str]:
	"""The sibling plan document, or None if there is none. Undecodable bytes are replaced."""
	if not path.is_file():
		return None
	try:
		return path.read_text(encoding="utf-8", errors="replace")
	except OSError as e:
		raise InvalidInputError(f"read {path}: {e}") from e


def _plan_entry(filename: str, record: Any) -> PlanEntry:
	if not isinstance(record, dict):
		raise InvalidInputError(f"plan {filename}: record must be an object")

	raw_status = record.get("status") or PlanStatus.READY.value
	status = PlanStatus.parse(raw_status)
	if status is None:
		raise InvalidInputError(
			f"plan {filename}: invalid status {raw_status!r}: must be one of {VALID_STATUSES}"
		)

	try:
		return PlanEntry(
			filename=filename,
			status=status.value,
			description=record.get("description") or "",
			branch=record.get("branch") or "",
			topic=record.get("topic") or "",
			created_at=_time(record.get("created_at")),
			implemented=record.get("implemented") or "",
		)
	except ValidationError as e:
		raise InvalidInputError(f"plan {filename}: {e}") from e


def migrate_from_json(store: PlanStore, project: str, plans_dir: Union[Path, str]) -> MigrationResult:
	"""
	Import plan-state.json from ``plans_dir`` into ``store`` under ``project``.

	A missing snapshot is a no-op. Plans and topics that already exist are
	skipped. A sibling document file is read before its plan is written and
	stored with it in the same create.

	Returns:
		MigrationResult with per-kind imported/skipped counts

	Raises:
		InvalidInputError: If the snapshot or a record in it is malformed,
			or a plan document cannot be read
		PlanflowError: Any store failure other than AlreadyExistsError;
			records written before the failure stay written
	"""
	plans_dir = Path(plans_dir)
	snapshot = plans_dir / SNAPSHOT_FILE
	result = MigrationResult()

	if not snapshot.exists():
		logger.debug(f"No {SNAPSHOT_FILE} in {plans_dir}, nothing to migrate")
		return result

	data = _load_snapshot(snapshot)
	plans = _mapping(data, "plans", snapshot)
	topics = _mapping(data, "topics", snapshot)

	for filename in sorted(plans):
		entry = _plan_entry(filename, plans[filename])
		# Body and metadata land in one write so an aborted run can always resume
		entry.content = _read_body(plans_dir / filename)
		try:
			store.create(project, entry)
		except AlreadyExistsError:
			result.plans_skipped += 1
			continue
		result.plans_imported += 1

	for name in sorted(topics):
		record = topics[name] or {}
		if not isinstance(record, dict):
			raise InvalidInputError(f"topic {name}: record must be an object")
		entry = TopicEntry(name=name, created_at=_time(record.get("created_at")))
		try:
			store.create_topic(project, entry)
		except AlreadyExistsError:
			result.topics_skipped += 1
			continue
		result.topics_imported += 1

	logger.info(
		f"Migrated {snapshot} into {project}: "
		f"{result.plans_imported} plans ({result.plans_skipped} already present), "
		f"{result.topics_imported} topics ({result.topics_skipped} already present)"
	)
	return result
