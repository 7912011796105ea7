"""
Sentinel-file signals from agent processes.

Agents report phase completion by dropping a file into the signals
directory; the control surface polls the directory, applies each signal
as a lifecycle event and deletes the file afterwards.

Filename grammars:
	<prefix><plan-file>               e.g. planner-finished-feature.md
	implement-wave-<N>-<plan-file>    e.g. implement-wave-2-feature.md

Parsing never raises: anything that does not match is ignored, so a
misbehaving agent cannot disrupt the poller. Delivery is at-least-once;
a signal re-applied after a crash is rejected by the state machine.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..errors import (
	InternalError,
	InvalidInputError,
	InvalidTransitionError,
	NotFoundError,
	PlanflowError,
	TransportError,
)
from ..plans.models import PlanEvent, PlanStatus
from .machine import StateMachine, parse_event

logger = logging.getLogger(__name__)

# Filename prefix -> event. User-only events are recognized here so they
# can be discarded explicitly at the ingestion boundary.
SENTINEL_PREFIXES: list[tuple[str, PlanEvent]] = [
	("planner-finished-", PlanEvent.PLANNER_FINISHED),
	("implement-finished-", PlanEvent.IMPLEMENT_FINISHED),
	("review-approved-", PlanEvent.REVIEW_APPROVED),
	("review-changes-", PlanEvent.REVIEW_CHANGES_REQUESTED),
	("start-over-", PlanEvent.START_OVER),
	("cancel-", PlanEvent.CANCEL),
	("reopen-", PlanEvent.REOPEN),
]

WAVE_SIGNAL_RE = re.compile(r"^implement-wave-(\d+)-(.+\.md)$")


@dataclass(frozen=True)
class Signal:
	"""A parsed sentinel file carrying a lifecycle event."""
	event: PlanEvent
	plan_file: str
	body: str = ""
	path: Optional[Path] = field(default=None, compare=False)

	@property
	def key(self) -> str:
		"""Dedup key: event kind plus plan filename."""
		return f"{self.event.value}:{self.plan_file}"


@dataclass(frozen=True)
class WaveSignal:
	"""A parsed implement-wave sentinel. Carries no lifecycle event."""
	wave_number: int
	plan_file: str
	path: Optional[Path] = field(default=None, compare=False)

	@property
	def key(self) -> str:
		return f"implement-wave-{self.wave_number}:{self.plan_file}"


def _sentinel_names(signals_dir: Path) -> list[str]:
	"""Regular, non-hidden entries of the signals directory."""
	try:
		entries = list(os.scandir(signals_dir))
	except OSError:
		return []

	names = []
	for entry in entries:
		if entry.name.startswith("."):
			continue
		try:
			if entry.is_dir():
				continue
		except OSError:
			continue
		names.append(entry.name)
	return names


def _read_body(path: Path) -> str:
	try:
		return path.read_text(encoding="utf-8", errors="replace").strip()
	except OSError:
		return ""


def parse_signal(signals_dir: Union[Path, str], filename: str) -> Optional[Signal]:
	"""Parse one sentinel filename, reading its body. None if it does not match."""
	for prefix, event in SENTINEL_PREFIXES:
		if not filename.startswith(prefix):
			continue
		# Agents sometimes write "docs/plans/x.md"; keys are bare filenames
		plan_file = os.path.basename(filename[len(prefix):].replace("\\", "/"))
		if not plan_file:
			return None
		path = Path(signals_dir) / filename
		return Signal(event=event, plan_file=plan_file, body=_read_body(path), path=path)
	return None


def parse_wave_signal(filename: str) -> Optional[WaveSignal]:
	"""Parse an implement-wave filename. None if it does not match or N < 1."""
	match = WAVE_SIGNAL_RE.match(filename)
	if not match:
		return None
	wave_number = int(match.group(1))
	if wave_number < 1:
		return None
	plan_file = os.path.basename(match.group(2).replace("\\", "/"))
	if not plan_file:
		return None
	return WaveSignal(wave_number=wave_number, plan_file=plan_file)


def scan_signals(signals_dir: Union[Path, str]) -> list[Signal]:
	"""
	Parse every lifecycle sentinel in ``signals_dir``.

	User-only events (start_over, cancel, reopen) are discarded so an
	agent can never trigger them. A missing directory yields no signals.
	Scanning is read-only; files stay until consumed.
	"""
	signals_dir = Path(signals_dir)
	signals = []
	for name in _sentinel_names(signals_dir):
		signal = parse_signal(signals_dir, name)
		if signal is None:
			continue
		if signal.event.is_user_only:
			logger.debug(f"Ignoring user-only signal {name}")
			continue
		signals.append(signal)
	return signals


def scan_wave_signals(signals_dir: Union[Path, str]) -> list[WaveSignal]:
	"""Parse every implement-wave sentinel in ``signals_dir``."""
	signals_dir = Path(signals_dir)
	waves = []
	for name in _sentinel_names(signals_dir):
		wave = parse_wave_signal(name)
		if wave is None:
			continue
		waves.append(WaveSignal(wave.wave_number, wave.plan_file, path=signals_dir / name))
	return waves


def _remove(path: Optional[Path]) -> None:
	if path is None:
		return
	try:
		path.unlink()
	except FileNotFoundError:
		pass
	except OSError as e:
		logger.warning(f"Could not remove signal file {path}: {e}")


def consume_signal(signal: Signal) -> None:
	"""Delete the sentinel file behind ``signal``. Already-removed files are fine."""
	_remove(signal.path)


def consume_wave_signal(signal: WaveSignal) -> None:
	"""Delete the sentinel file behind a wave signal."""
	_remove(signal.path)


def _atomic_write(path: Path, body: str) -> None:
	"""Write via a dot-prefixed temp file so scanners never see a partial sentinel."""
	path.parent.mkdir(parents=True, exist_ok=True)
	fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
	try:
		with os.fdopen(fd, "w", encoding="utf-8") as handle:
			handle.write(body)
		os.replace(tmp_path, path)
	except BaseException:
		try:
			os.unlink(tmp_path)
		except OSError:
			pass
		raise


def write_signal(
	signals_dir: Union[Path, str],
	event: Union[PlanEvent, str],
	plan_file: str,
	body: str = "",
) -> Path:
	"""
	Drop a lifecycle sentinel for ``plan_file`` (agent side).

	Returns:
		Path of the written sentinel

	Raises:
		InvalidInputError: For user-only events, events agents cannot
			signal, or an empty plan filename
	"""
	event = parse_event(event)
	if event.is_user_only:
		raise InvalidInputError(f"event {event.value!r} can only be triggered by the user")
	prefix = next((p for p, e in SENTINEL_PREFIXES if e is event), None)
	if prefix is None:
		raise InvalidInputError(f"event {event.value!r} has no sentinel form")
	plan_file = os.path.basename(plan_file)
	if not plan_file:
		raise InvalidInputError("plan filename is required")

	path = Path(signals_dir) / f"{prefix}{plan_file}"
	_atomic_write(path, body)
	return path


def write_wave_signal(signals_dir: Union[Path, str], wave_number: int, plan_file: str) -> Path:
	"""
	Drop an implement-wave sentinel (control surface or agent side).

	Raises:
		InvalidInputError: If ``wave_number`` is not positive or the plan
			filename does not end in .md
	"""
	if wave_number < 1:
		raise InvalidInputError(f"wave number must be positive, got {wave_number}")
	plan_file = os.path.basename(plan_file)
	if not plan_file.endswith(".md"):
		raise InvalidInputError(f"plan filename must end in .md, got {plan_file!r}")

	path = Path(signals_dir) / f"implement-wave-{wave_number}-{plan_file}"
	_atomic_write(path, "")
	return path


def apply_signals(
	machine: StateMachine,
	signals_dir: Union[Path, str],
) -> list[tuple[Signal, Union[PlanStatus, PlanflowError]]]:
	"""
	One polling pass: apply every pending signal, then consume it.

	A signal is consumed once its transition is persisted, or once the
	state machine has rejected it (invalid transition or unknown plan),
	since retrying would fail the same way. Store outages leave the
	sentinel in place for the next pass and propagate.

	Returns:
		(signal, new status or rejection error) for each distinct signal
	"""
	results: list[tuple[Signal, Union[PlanStatus, PlanflowError]]] = []
	seen: set[str] = set()

	for signal in scan_signals(signals_dir):
		if signal.key in seen:
			consume_signal(signal)
			continue
		seen.add(signal.key)

		try:
			outcome: Union[PlanStatus, PlanflowError] = machine.transition(signal.plan_file, signal.event)
		except (InvalidTransitionError, NotFoundError) as e:
			logger.info(f"Rejected signal {signal.key}: {e}")
			outcome = e
		except (TransportError, InternalError):
			logger.warning(f"Store unavailable, keeping signal {signal.key} for the next pass")
			raise

		consume_signal(signal)
		results.append((signal, outcome))

	return results
