SR = 44100

import io
from typing import List, Sequence, cast

import numpy as np
import numpy.typing as npt
import soundfile as sf

from .theory import chord_midi, midi_to_freq


def _oscillator(freq: float, t: npt.NDArray[np.float32], waveform: str) -> npt.NDArray[np.float32]:
	omega = 2.0 * np.pi * freq
	if waveform == "triangle":
		return ((2.0 / np.pi) * np.arcsin(np.sin(omega * t))).astype(np.float32)
	if waveform == "saw":
		phase = (freq * t).astype(np.float32)
		return (2.0 * (phase - np.floor(phase + 0.5))).astype(np.float32)
	return np.sin(omega * t).astype(np.float32)


def _envelope(n: int, attack: float = 0.01, release: float = 0.25) -> npt.NDArray[np.float32]:
	env = np.ones(n, dtype=np.float32)
	a = min(n, int(attack * SR))
	r = min(n - a, int(release * SR))
	if a > 0:
		env[:a] = np.linspace(0.0, 1.0, a, endpoint=False, dtype=np.float32)
	if r > 0:
		env[-r:] = np.linspace(1.0, 0.0, r, endpoint=False, dtype=np.float32)
	return env


def tone(freq: float, dur: float, waveform: str = "sine") -> npt.NDArray[np.float32]:
	"""One enveloped tone.

	Args:
		freq: Frequency in Hz
		dur: Duration in seconds
		waveform: One of {"sine","triangle","saw"}
	"""
	t = np.linspace(0.0, dur, int(SR * dur), endpoint=False, dtype=np.float32)
	return cast(npt.NDArray[np.float32], (_oscillator(freq, t, waveform) * _envelope(len(t))).astype(np.float32))


def chord_wave(notes: Sequence[str], dur: float = 1.2, waveform: str = "sine", volume: float = 0.8) -> npt.NDArray[np.float32]:
	"""All notes of a chord at once, voiced upwards from C4 and peak-normalized."""
	n = int(SR * dur)
	if not notes:
		return np.zeros(n, dtype=np.float32)
	freqs: List[float] = [midi_to_freq(m) for m in chord_midi(list(notes))]
	x = np.sum([tone(f, dur, waveform) for f in freqs], axis=0).astype(np.float32)
	peak = float(np.max(np.abs(x))) if x.size else 0.0
	if peak > 0.0:
		x = (x / peak).astype(np.float32)
	return cast(npt.NDArray[np.float32], (x * volume).astype(np.float32))


def note_wave(note: str, dur: float = 0.5, waveform: str = "sine", volume: float = 0.8) -> npt.NDArray[np.float32]:
	return chord_wave([note], dur=dur, waveform=waveform, volume=volume)


def wav_bytes(x: npt.NDArray[np.float32]) -> bytes:
	buf = io.BytesIO()
	sf.write(buf, x, SR, format="WAV")
	return buf.getvalue()
