from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from .models import Feedback, QuestionView, QuizSummary


class Presenter:
	"""Everything a quiz session shows or plays goes through here.

	The default implementation ignores every event; sinks override what they
	render.
	"""

	def question(self, view: QuestionView) -> None:
		pass

	def selection(self, notes: Sequence[str]) -> None:
		pass

	def feedback(self, feedback: Feedback) -> None:
		pass

	def play(self, notes: Sequence[str]) -> None:
		pass

	def tick(self, elapsed_seconds: int) -> None:
		pass

	def summary(self, summary: QuizSummary) -> None:
		pass

	def error(self, message: str) -> None:
		pass

	def clear_feedback(self) -> None:
		pass


class EventLog(Presenter):
	"""Records every event and keeps the latest one of each kind."""

	def __init__(self) -> None:
		self.events: List[Tuple[str, Any]] = []
		self.view: Optional[QuestionView] = None
		self.selected: Tuple[str, ...] = ()
		self.last_feedback: Optional[Feedback] = None
		self.last_play: Tuple[str, ...] = ()
		self.play_count = 0
		self.elapsed = 0
		self.last_summary: Optional[QuizSummary] = None
		self.last_error: Optional[str] = None

	def kinds(self) -> List[str]:
		return [kind for kind, _ in self.events]

	def question(self, view: QuestionView) -> None:
		self.events.append(("question", view))
		self.view = view
		self.selected = ()
		self.last_feedback = None
		self.last_error = None

	def selection(self, notes: Sequence[str]) -> None:
		self.events.append(("selection", tuple(notes)))
		self.selected = tuple(notes)

	def feedback(self, feedback: Feedback) -> None:
		self.events.append(("feedback", feedback))
		self.last_feedback = feedback

	def play(self, notes: Sequence[str]) -> None:
		self.events.append(("play", tuple(notes)))
		self.last_play = tuple(notes)
		self.play_count += 1

	def tick(self, elapsed_seconds: int) -> None:
		self.events.append(("tick", elapsed_seconds))
		self.elapsed = elapsed_seconds

	def summary(self, summary: QuizSummary) -> None:
		self.events.append(("summary", summary))
		self.last_summary = summary
		self.view = None

	def error(self, message: str) -> None:
		self.events.append(("error", message))
		self.last_error = message

	def clear_feedback(self) -> None:
		self.events.append(("clear_feedback", None))
		self.last_feedback = None
