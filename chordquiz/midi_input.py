from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, Sequence

import mido

from .theory import NOTE_LABELS, midi_to_label, normalize_pitch

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.1


def accept_note(
	note: str,
	prev_note: Optional[str],
	prev_time: Optional[float],
	now: float,
	window: float = DEBOUNCE_SECONDS,
) -> bool:
	"""False when the same note arrives again within `window` seconds."""
	if prev_note is None or prev_time is None:
		return True
	return not (note == prev_note and (now - prev_time) < window)


def available_ports() -> List[str]:
	try:
		return list(mido.get_input_names())
	except Exception as e:
		logger.warning("MIDI input unavailable: %s", e)
		return []


class MidiNoteInput:
	"""Turns note_on messages into note labels for a toggle callback.

	The port is polled with `poll` from the UI refresh, so every callback runs
	on the caller's thread.
	"""

	def __init__(
		self,
		on_note: Callable[[str], Any],
		window: float = DEBOUNCE_SECONDS,
		keyboard: Optional[Sequence[str]] = None,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		self.on_note = on_note
		self.window = window
		self.keyboard = {normalize_pitch(n) for n in (keyboard if keyboard is not None else NOTE_LABELS)}
		self.clock = clock
		self.last_note: Optional[str] = None
		self.last_time: Optional[float] = None
		self.port: Optional[Any] = None

	def open(self, name: Optional[str] = None) -> bool:
		try:
			self.port = mido.open_input(name)
		except Exception as e:
			logger.warning("Could not open MIDI input %r: %s", name, e)
			self.port = None
			return False
		logger.info("Listening on MIDI input %s", self.port.name)
		return True

	def close(self) -> None:
		if self.port is not None:
			self.port.close()
			self.port = None

	def handle(self, msg: mido.Message) -> bool:
		if msg.type != "note_on" or msg.velocity == 0:
			return False
		label = midi_to_label(msg.note)
		now = self.clock()
		if not accept_note(label, self.last_note, self.last_time, now, self.window):
			return False
		self.last_note = label
		self.last_time = now
		if normalize_pitch(label) not in self.keyboard:
			logger.warning("No key for MIDI note %s (%d), dropped", label, msg.note)
			return False
		self.on_note(label)
		return True

	def poll(self) -> int:
		if self.port is None:
			return 0
		accepted = 0
		for msg in self.port.iter_pending():
			if self.handle(msg):
				accepted += 1
		return accepted
