"""Quiz session state machine.

A session owns one run of a chord quiz: the generated items, the current
position, the score and the timer. The two quiz variants differ only in how an
answer is given and compared:

* ``name`` mode: the notes are the prompt, the learner picks a root and a chord
  type, and the resulting chord name must match the target exactly. A wrong
  answer locks the question until `advance` is called.
* ``notes`` mode: the name is the prompt, the learner toggles notes and the
  selection is checked as a set (order and sharp/flat spelling ignored) as soon
  as it has as many notes as the target. A wrong answer clears the selection
  after a short delay and the same question stays open.

Deferred work (auto-advance, selection clear) goes through a `Scheduler` and is
tagged with the session generation, so callbacks left over from a previous run
do nothing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from .models import AnswerRecord, Feedback, Mode, QuestionView, QuizItem, QuizSummary, Selection, Settings
from .presenter import Presenter
from .scheduler import Scheduler, Task
from .theory import is_note, name_of, normalize_pitch
from .trainer import accuracy_percent, generate_quiz, names_match, notes_match

logger = logging.getLogger(__name__)

CORRECT_PREFIX = "Correct!"
INCORRECT_PREFIX = "Incorrect"
EMPTY_SELECTION = "Select at least one root and one chord type"
NO_VALID_CHORDS = "No valid chords in the selection"


class Phase(str, Enum):
	IDLE = "idle"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"


class QuestionState(str, Enum):
	AWAITING = "awaiting"
	LOCKED = "locked"


class QuizSession:
	def __init__(
		self,
		mode: Mode,
		settings: Optional[Settings] = None,
		presenter: Optional[Presenter] = None,
		scheduler: Optional[Scheduler] = None,
		clock: Optional[Callable[[], float]] = None,
		rng: Optional[np.random.Generator] = None,
	) -> None:
		self.mode = mode
		self.settings = settings if settings is not None else Settings()
		self.presenter = presenter if presenter is not None else Presenter()
		self.scheduler = scheduler if scheduler is not None else Scheduler()
		self.clock = clock if clock is not None else self.scheduler.clock
		self.rng = rng
		self.phase = Phase.IDLE
		self.question_state = QuestionState.AWAITING
		self.items: List[QuizItem] = []
		self.index = 0
		self.correct_count = 0
		self.started_at: Optional[float] = None
		self.finished_at: Optional[float] = None
		self.generation = 0
		self.history: List[AnswerRecord] = []
		self.selected_notes: List[str] = []
		self.chosen_root: Optional[str] = None
		self.chosen_type: Optional[str] = None
		self._tasks: List[Task] = []

	@property
	def total(self) -> int:
		return len(self.items)

	@property
	def current(self) -> Optional[QuizItem]:
		if self.phase is not Phase.IN_PROGRESS:
			return None
		return self.items[self.index]

	def start(self, selection: Selection) -> bool:
		if selection.is_empty():
			self.presenter.error(EMPTY_SELECTION)
			return False
		items = generate_quiz(selection.roots, selection.types, self.settings.quiz_total, self.rng)
		if not items:
			self.presenter.error(NO_VALID_CHORDS)
			return False
		self._cancel_tasks()
		self.generation += 1
		self.items = items
		self.index = 0
		self.correct_count = 0
		self.history = []
		self.started_at = self.clock()
		self.finished_at = None
		self.phase = Phase.IN_PROGRESS
		self._reset_question()
		logger.debug("Started %s quiz #%d with %d questions", self.mode, self.generation, self.total)
		self._show_question()
		return True

	# Name mode

	def choose_root(self, root: Optional[str]) -> Optional[bool]:
		if not self._accepting():
			return None
		self.chosen_root = root or None
		return self._check_candidate()

	def choose_type(self, type_key: Optional[str]) -> Optional[bool]:
		if not self._accepting():
			return None
		self.chosen_type = type_key or None
		return self._check_candidate()

	def submit_name(self, root: str, type_key: str) -> Optional[bool]:
		if not self._accepting():
			return None
		self.chosen_root = root
		self.chosen_type = type_key
		return self._check_candidate()

	def _check_candidate(self) -> Optional[bool]:
		if self.mode != "name" or not self.chosen_root or not self.chosen_type:
			return None
		candidate = name_of(self.chosen_root, self.chosen_type)
		if candidate is None:
			self.presenter.error(f"Unknown chord: {self.chosen_root} {self.chosen_type}")
			return None
		item = self.items[self.index]
		correct = names_match(candidate, item)
		self._lock()
		self._record(item, candidate, correct)
		if correct:
			self.correct_count += 1
			self._feedback(item, True)
			self.presenter.play(item.notes)
			self._defer(self.advance)
		else:
			# Stays locked until an explicit advance
			self._feedback(item, False)
		return correct

	# Notes mode

	def toggle_note(self, note: str) -> Optional[bool]:
		if self.mode != "notes" or not self._accepting():
			return None
		if not is_note(note):
			self.presenter.error(f"Unknown note: {note}")
			return None
		self.presenter.play([note])
		key = normalize_pitch(note)
		if key in self.selected_notes:
			self.selected_notes.remove(key)
		else:
			self.selected_notes.append(key)
		self.presenter.selection(self.selected_notes)
		return self._check_notes()

	def reset_selection(self) -> None:
		if not self._accepting():
			return
		self.selected_notes = []
		self.presenter.clear_feedback()
		self.presenter.selection(self.selected_notes)

	def _check_notes(self) -> Optional[bool]:
		item = self.items[self.index]
		if len(self.selected_notes) != len(item.notes):
			return None
		correct = notes_match(self.selected_notes, item)
		self._lock()
		self._record(item, ", ".join(self.selected_notes), correct)
		if correct:
			self.correct_count += 1
			self._feedback(item, True)
			self._defer(self.advance)
		else:
			self._feedback(item, False)
			self._defer(self._retry)
		return correct

	def _retry(self) -> None:
		self.selected_notes = []
		self.question_state = QuestionState.AWAITING
		self.presenter.clear_feedback()
		self.presenter.selection(self.selected_notes)

	# Progression

	def advance(self) -> None:
		if self.phase is not Phase.IN_PROGRESS:
			return
		self._cancel_tasks()
		self.index += 1
		if self.index >= self.total:
			self._finish()
			return
		self._reset_question()
		self._show_question()

	def replay(self) -> List[str]:
		item = self.current
		if item is None:
			return []
		self.presenter.play(item.notes)
		return list(item.notes)

	def tick(self) -> Optional[int]:
		if self.phase is not Phase.IN_PROGRESS:
			return None
		elapsed = self.elapsed_seconds()
		self.presenter.tick(elapsed)
		return elapsed

	def elapsed_seconds(self) -> int:
		if self.started_at is None:
			return 0
		end = self.finished_at if self.finished_at is not None else self.clock()
		return max(0, int(end - self.started_at))

	def summary(self) -> QuizSummary:
		return QuizSummary(
			correct_count=self.correct_count,
			total=self.total,
			elapsed_seconds=self.elapsed_seconds(),
			accuracy_percent=accuracy_percent(self.correct_count, self.total),
		)

	def _finish(self) -> None:
		self.phase = Phase.COMPLETED
		self.finished_at = self.clock()
		self._reset_question()
		result = self.summary()
		logger.debug("Quiz #%d complete: %d/%d", self.generation, result.correct_count, result.total)
		self.presenter.summary(result)

	# Helpers

	def _accepting(self) -> bool:
		return self.phase is Phase.IN_PROGRESS and self.question_state is QuestionState.AWAITING

	def _lock(self) -> None:
		self.question_state = QuestionState.LOCKED

	def _reset_question(self) -> None:
		self.question_state = QuestionState.AWAITING
		self.selected_notes = []
		self.chosen_root = None
		self.chosen_type = None

	def _show_question(self) -> None:
		item = self.items[self.index]
		if self.mode == "name":
			view = QuestionView(number=self.index + 1, total=self.total, notes=item.notes)
		else:
			view = QuestionView(number=self.index + 1, total=self.total, name=item.name)
		self.presenter.question(view)
		if self.mode == "name" and self.settings.autoplay:
			self.presenter.play(item.notes)

	def _feedback(self, item: QuizItem, correct: bool) -> None:
		prefix = CORRECT_PREFIX if correct else INCORRECT_PREFIX
		self.presenter.feedback(Feedback(
			correct=correct,
			name=item.name,
			notes=item.notes,
			message=f"{prefix} [{item.name}: {', '.join(item.notes)}]",
		))

	def _record(self, item: QuizItem, answer: str, correct: bool) -> None:
		self.history.append(AnswerRecord(number=self.index + 1, target=item.name, answer=answer, correct=correct))

	def _defer(self, action: Callable[[], None]) -> None:
		generation = self.generation

		def fire() -> None:
			if generation != self.generation:
				logger.debug("Ignoring callback from quiz #%d (now #%d)", generation, self.generation)
				return
			action()

		self._tasks = [t for t in self._tasks if not t.cancelled]
		self._tasks.append(self.scheduler.call_later(self.settings.feedback_delay, fire))

	def _cancel_tasks(self) -> None:
		for task in self._tasks:
			task.cancel()
		self._tasks = []
