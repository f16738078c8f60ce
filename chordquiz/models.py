from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


Mode = Literal["name", "notes"]
Waveform = Literal["sine", "triangle", "saw"]


class Settings(BaseModel):
	quiz_total: int = Field(default=15, ge=1, le=200)
	feedback_delay: float = Field(default=1.0, ge=0.0, le=10.0)
	debounce_ms: int = Field(default=100, ge=0, le=2000)
	autoplay: bool = Field(default=True)
	waveform: Waveform = Field(default="sine")
	volume: float = Field(default=0.8, ge=0.0, le=1.0)


class RootNote(BaseModel):
	model_config = ConfigDict(frozen=True)

	label: str
	pitch_class: int = Field(ge=0, le=11)
	display: str


class ChordType(BaseModel):
	model_config = ConfigDict(frozen=True)

	key: str
	name: str
	degree_notation: str
	suffix: str
	intervals: Tuple[int, ...]


class Selection(BaseModel):
	roots: List[str] = Field(default_factory=list)
	types: List[str] = Field(default_factory=list)

	def is_empty(self) -> bool:
		return not self.roots or not self.types

	def chord_count(self) -> int:
		return len(self.roots) * len(self.types)


class QuizItem(BaseModel):
	model_config = ConfigDict(frozen=True)

	root: str
	type: str
	name: str
	notes: Tuple[str, ...]


class QuestionView(BaseModel):
	number: int
	total: int
	# Hidden parts are None / empty depending on the quiz mode
	name: Optional[str] = None
	notes: Tuple[str, ...] = ()

	@property
	def progress(self) -> float:
		return self.number / float(self.total) if self.total else 0.0


class Feedback(BaseModel):
	correct: bool
	name: str
	notes: Tuple[str, ...]
	message: str


class AnswerRecord(BaseModel):
	number: int
	target: str
	answer: str
	correct: bool


class QuizSummary(BaseModel):
	correct_count: int
	total: int
	elapsed_seconds: int
	accuracy_percent: int
