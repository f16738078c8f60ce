from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

from .models import AnswerRecord, QuizItem
from .theory import find_root, name_of, normalize_pitch, notes_of


def chord_pool(roots: Iterable[str], types: Iterable[str]) -> List[QuizItem]:
	"""Every resolvable (root, type) pair of the selection, each chord once.

	Roots that are spellings of the same pitch class count as one root.
	"""
	types = list(types)
	pool = []
	seen: Set[Tuple[int, str]] = set()
	for root in roots:
		r = find_root(root)
		for type_key in types:
			name = name_of(root, type_key)
			notes = notes_of(root, type_key)
			if r is None or not name or not notes or (r.pitch_class, type_key) in seen:
				continue
			seen.add((r.pitch_class, type_key))
			pool.append(QuizItem(root=root, type=type_key, name=name, notes=tuple(notes)))
	return pool


def generate_quiz(
	roots: Sequence[str],
	types: Sequence[str],
	count: int,
	rng: Optional[np.random.Generator] = None,
) -> List[QuizItem]:
	if not roots or not types:
		return []
	pool = chord_pool(roots, types)
	if not pool:
		return []
	rng = rng if rng is not None else np.random.default_rng()
	# Independent draws with replacement: repeats are expected
	picks = rng.integers(0, len(pool), size=count)
	return [pool[int(i)] for i in picks]


def names_match(candidate: str, item: QuizItem) -> bool:
	return candidate == item.name


def canonical_notes(notes: Iterable[str]) -> List[str]:
	return sorted(normalize_pitch(n) for n in notes)


def notes_match(selected: Sequence[str], item: QuizItem) -> bool:
	if len(selected) != len(item.notes):
		return False
	return canonical_notes(selected) == canonical_notes(item.notes)


def accuracy_percent(correct: int, total: int) -> int:
	if total <= 0:
		return 0
	# Half-up rounding
	return int(math.floor(correct * 100.0 / total + 0.5))


def format_elapsed(seconds: int) -> str:
	minutes, secs = divmod(max(0, int(seconds)), 60)
	return f"{minutes}:{secs:02d}"


def chord_breakdown(records: Iterable[AnswerRecord]) -> List[Dict[str, object]]:
	"""Per-chord attempts, correct answers and accuracy, in first-seen order."""
	seen: Dict[str, int] = {}
	correct: Dict[str, int] = {}
	for rec in records:
		seen[rec.target] = seen.get(rec.target, 0) + 1
		if rec.correct:
			correct[rec.target] = correct.get(rec.target, 0) + 1
	rows: List[Dict[str, object]] = []
	for name, n in seen.items():
		k = correct.get(name, 0)
		rows.append({"chord": name, "attempts": n, "correct": k, "accuracy": round(k / n, 3)})
	return rows
