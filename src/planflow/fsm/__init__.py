"""FSM module - plan lifecycle transitions and agent signals."""

from .machine import TRANSITIONS, StateMachine, apply_transition
from .signals import (
	Signal,
	WaveSignal,
	apply_signals,
	consume_signal,
	consume_wave_signal,
	parse_signal,
	parse_wave_signal,
	scan_signals,
	scan_wave_signals,
	write_signal,
	write_wave_signal,
)

__all__ = [
	"TRANSITIONS",
	"StateMachine",
	"apply_transition",
	"Signal",
	"WaveSignal",
	"apply_signals",
	"consume_signal",
	"consume_wave_signal",
	"parse_signal",
	"parse_wave_signal",
	"scan_signals",
	"scan_wave_signals",
	"write_signal",
	"write_wave_signal",
]
