from __future__ import annotations

import time
from typing import Callable, List, Optional


class Task:
	def __init__(self, due: float, callback: Callable[[], None]) -> None:
		self.due = due
		self.callback = callback
		self.cancelled = False

	def cancel(self) -> None:
		self.cancelled = True


class Scheduler:
	"""Deferred callbacks that run only when the owner calls `run_due`.

	Nothing runs on another thread: the page polls `run_due` from its
	periodic refresh, tests drive it with a fake clock.
	"""

	def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
		self.clock = clock
		self._tasks: List[Task] = []

	def call_later(self, delay: float, callback: Callable[[], None]) -> Task:
		task = Task(self.clock() + max(0.0, delay), callback)
		self._tasks.append(task)
		return task

	def pending(self) -> List[Task]:
		return [t for t in self._tasks if not t.cancelled]

	def run_due(self, now: Optional[float] = None) -> int:
		now = self.clock() if now is None else now
		due = sorted((t for t in self._tasks if not t.cancelled and t.due <= now), key=lambda t: t.due)
		self._tasks = [t for t in self._tasks if not t.cancelled and t not in due]
		ran = 0
		for task in due:
			# An earlier callback in this batch may have cancelled it
			if task.cancelled:
				continue
			task.cancelled = True
			task.callback()
			ran += 1
		return ran

	def cancel_all(self) -> None:
		for task in self._tasks:
			task.cancel()
		self._tasks = []
