from typing import Dict, List, Optional

from .models import ChordType, RootNote

A4_MIDI = 69
A4_FREQ = 440.0
C4_MIDI = 60

# Display spelling for every pitch class, also used for each root's display
NOTE_LABELS = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]

FLAT_TO_SHARP = {
	"Db": "C#",
	"Eb": "D#",
	"Gb": "F#",
	"Ab": "G#",
	"Bb": "A#",
}

PITCH_CLASSES = {
	"C": 0, "C#": 1, "Db": 1,
	"D": 2, "D#": 3, "Eb": 3,
	"E": 4,
	"F": 5, "F#": 6, "Gb": 6,
	"G": 7, "G#": 8, "Ab": 8,
	"A": 9, "A#": 10, "Bb": 10,
	"B": 11,
}

ROOT_NOTES: List[RootNote] = [
	RootNote(label=label, pitch_class=pc, display=NOTE_LABELS[pc])
	for pc, label in enumerate([
		"C", "C#/Db", "D", "Eb/D#", "E", "F",
		"F#/Gb", "G", "Ab/G#", "A", "Bb/A#", "B",
	])
]

CHORD_TYPES: Dict[str, ChordType] = {
	t.key: t
	for t in [
		ChordType(key="major", name="Major", degree_notation="(1,3,5)", suffix="", intervals=(0, 4, 7)),
		ChordType(key="minor", name="Minor", degree_notation="(1,b3,5)", suffix="m", intervals=(0, 3, 7)),
		ChordType(key="seventh", name="Seventh", degree_notation="(1,3,5,b7)", suffix="7", intervals=(0, 4, 7, 10)),
		ChordType(key="major7", name="Major 7th", degree_notation="(1,3,5,7)", suffix="M7", intervals=(0, 4, 7, 11)),
		ChordType(key="minor7", name="Minor 7th", degree_notation="(1,b3,5,b7)", suffix="m7", intervals=(0, 3, 7, 10)),
		ChordType(key="sus4", name="Suspended 4th", degree_notation="(1,4,5)", suffix="sus4", intervals=(0, 5, 7)),
		ChordType(key="dim", name="Diminished", degree_notation="(1,b3,b5)", suffix="dim", intervals=(0, 3, 6)),
		ChordType(key="aug", name="Augmented", degree_notation="(1,3,#5)", suffix="aug", intervals=(0, 4, 8)),
	]
}

_ROOTS_BY_NAME: Dict[str, RootNote] = {}
for _root in ROOT_NOTES:
	_ROOTS_BY_NAME[_root.label] = _root
	for _spelling in _root.label.split("/"):
		_ROOTS_BY_NAME[_spelling] = _root


def root_labels() -> List[str]:
	return [r.label for r in ROOT_NOTES]


def type_keys() -> List[str]:
	return list(CHORD_TYPES.keys())


def find_root(root: str) -> Optional[RootNote]:
	"""Look a root up by its full label ("C#/Db") or by one of its spellings."""
	return _ROOTS_BY_NAME.get(root)


def find_type(type_key: str) -> Optional[ChordType]:
	return CHORD_TYPES.get(type_key)


def notes_of(root: str, type_key: str) -> List[str]:
	"""Resolve a chord to its note labels, root first, in interval order.

	Returns an empty list for an unknown root or chord type.
	"""
	r = find_root(root)
	t = find_type(type_key)
	if r is None or t is None:
		return []
	return [NOTE_LABELS[(r.pitch_class + offset) % 12] for offset in t.intervals]


def name_of(root: str, type_key: str) -> Optional[str]:
	r = find_root(root)
	t = find_type(type_key)
	if r is None or t is None:
		return None
	return r.display + t.suffix


def normalize_pitch(note: str) -> str:
	"""Sharp spelling of a note, for comparisons only (never for display)."""
	return FLAT_TO_SHARP.get(note, note)


def is_note(note: str) -> bool:
	return note in PITCH_CLASSES


def pitch_class(note: str) -> int:
	return PITCH_CLASSES[note]


def root_index(root: str) -> int:
	r = find_root(root)
	return r.pitch_class if r is not None else 0


def type_order(type_key: str) -> int:
	keys = type_keys()
	return keys.index(type_key) if type_key in keys else len(keys)


def type_label(type_key: str) -> str:
	t = find_type(type_key)
	if t is None:
		return type_key
	return f"{t.name} {t.degree_notation}"


def midi_to_label(m: int) -> str:
	return NOTE_LABELS[m % 12]


def midi_to_freq(m: int) -> float:
	return float(A4_FREQ * (2.0 ** ((m - A4_MIDI) / 12.0)))


def chord_midi(notes: List[str], base: int = C4_MIDI) -> List[int]:
	"""Stack the notes upwards from the octave of `base` (close voicing)."""
	out: List[int] = []
	for note in notes:
		m = base + pitch_class(note)
		while out and m <= out[-1]:
			m += 12
		out.append(m)
	return out
