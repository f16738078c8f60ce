import numpy as np

from chordquiz.models import Feedback, Selection, Settings
from chordquiz.presenter import EventLog
from chordquiz.scheduler import Scheduler
from chordquiz.session import EMPTY_SELECTION, NO_VALID_CHORDS, Phase, QuestionState, QuizSession


class FakeClock:
	def __init__(self) -> None:
		self.now = 1000.0

	def __call__(self) -> float:
		return self.now


def make_session(mode, settings=None):
	clock = FakeClock()
	log = EventLog()
	sched = Scheduler(clock)
	session = QuizSession(mode, settings=settings, presenter=log, scheduler=sched, rng=np.random.default_rng(7))
	return session, log, sched, clock


def wait(sched, clock, seconds=1.0):
	clock.now += seconds
	sched.run_due()


C_MAJOR = Selection(roots=["C"], types=["major"])


def test_start_rejects_empty_selection():
	session, log, _, _ = make_session("name")
	assert not session.start(Selection(roots=[], types=["major"]))
	assert not session.start(Selection(roots=["C"], types=[]))
	assert log.last_error == EMPTY_SELECTION
	assert session.phase is Phase.IDLE
	assert session.generation == 0


def test_start_rejects_selection_without_valid_chords():
	session, log, _, _ = make_session("notes")
	assert not session.start(Selection(roots=["H"], types=["major"]))
	assert log.last_error == NO_VALID_CHORDS
	assert session.phase is Phase.IDLE


def test_start_emits_first_question_name_mode():
	session, log, _, _ = make_session("name")
	assert session.start(C_MAJOR)
	assert session.phase is Phase.IN_PROGRESS
	assert session.total == 15
	assert session.index == 0 and session.correct_count == 0
	assert log.view.number == 1 and log.view.total == 15
	# Name is the answer: only the notes are shown and played
	assert log.view.name is None
	assert log.view.notes == ("C", "E", "G")
	assert log.last_play == ("C", "E", "G")


def test_start_emits_first_question_notes_mode():
	session, log, _, _ = make_session("notes")
	session.start(C_MAJOR)
	assert log.view.name == "C"
	assert log.view.notes == ()
	assert log.play_count == 0


def test_scenario_a_all_correct():
	session, log, sched, clock = make_session("name")
	session.start(C_MAJOR)
	assert all(item.name == "C" and item.notes == ("C", "E", "G") for item in session.items)
	for _ in range(15):
		assert session.submit_name("C", "major") is True
		assert session.question_state is QuestionState.LOCKED
		clock.now += 2.0
		sched.run_due()
	assert session.phase is Phase.COMPLETED
	s = log.last_summary
	assert s.correct_count == 15
	assert s.total == 15
	assert s.accuracy_percent == 100
	assert s.elapsed_seconds == 30


def test_name_mode_is_strict_and_waits_for_next():
	session, log, sched, clock = make_session("name")
	session.start(C_MAJOR)
	assert session.choose_root("C") is None
	assert session.choose_type("minor") is False
	assert log.last_feedback.correct is False
	assert log.last_feedback.message == "Incorrect [C: C, E, G]"
	wait(sched, clock, 5.0)
	assert session.index == 0
	# Locked: a second answer is ignored
	assert session.submit_name("C", "major") is None
	assert session.correct_count == 0
	session.advance()
	assert session.index == 1
	assert session.question_state is QuestionState.AWAITING
	assert session.chosen_root is None and session.chosen_type is None


def test_name_mode_success_auto_advances_after_delay():
	session, log, sched, clock = make_session("name")
	session.start(C_MAJOR)
	assert session.submit_name("C", "major") is True
	assert log.last_feedback.message == "Correct! [C: C, E, G]"
	wait(sched, clock, 0.5)
	assert session.index == 0
	wait(sched, clock, 0.5)
	assert session.index == 1
	assert log.view.number == 2


def test_name_mode_unknown_candidate_reports_error():
	session, log, _, _ = make_session("name")
	session.start(C_MAJOR)
	assert session.submit_name("C", "ninth") is None
	assert log.last_error == "Unknown chord: C ninth"
	assert session.question_state is QuestionState.AWAITING


def test_manual_next_cancels_pending_auto_advance():
	session, _, sched, clock = make_session("name")
	session.start(C_MAJOR)
	session.submit_name("C", "major")
	session.advance()
	assert session.index == 1
	wait(sched, clock, 2.0)
	assert session.index == 1


def test_scenario_b_wrong_notes_clear_after_delay():
	session, log, sched, clock = make_session("notes")
	session.start(C_MAJOR)
	assert session.toggle_note("C") is None
	assert session.toggle_note("D") is None
	assert session.correct_count == 0
	assert session.toggle_note("E") is False
	assert log.last_feedback.correct is False
	assert session.question_state is QuestionState.LOCKED
	assert session.toggle_note("G") is None
	wait(sched, clock, 1.0)
	assert session.selected_notes == []
	assert log.selected == ()
	assert session.index == 0
	assert session.question_state is QuestionState.AWAITING
	# Unlimited retries on the same question
	for note in ("G", "E", "C"):
		session.toggle_note(note)
	assert session.correct_count == 1
	wait(sched, clock, 1.0)
	assert session.index == 1


def test_notes_toggle_removes_selected_note():
	session, log, _, _ = make_session("notes")
	session.start(C_MAJOR)
	session.toggle_note("C")
	session.toggle_note("E")
	session.toggle_note("C")
	assert session.selected_notes == ["E"]
	assert log.selected == ("E",)
	assert log.last_play == ("C",)


def test_notes_match_enharmonic_selection():
	session, log, _, _ = make_session("notes")
	session.start(Selection(roots=["Ab/G#"], types=["major"]))
	assert session.current.notes == ("Ab", "C", "Eb")
	session.toggle_note("G#")
	session.toggle_note("C")
	assert session.toggle_note("D#") is True
	assert log.last_feedback.correct is True


def test_notes_unknown_label_and_reset():
	session, log, _, _ = make_session("notes")
	session.start(C_MAJOR)
	assert session.toggle_note("H") is None
	assert log.last_error == "Unknown note: H"
	session.toggle_note("C")
	session.reset_selection()
	assert session.selected_notes == []


def test_mode_specific_inputs_are_ignored():
	session, _, _, _ = make_session("name")
	session.start(C_MAJOR)
	assert session.toggle_note("C") is None
	assert session.selected_notes == []
	notes_session, _, _, _ = make_session("notes")
	notes_session.start(C_MAJOR)
	assert notes_session.submit_name("C", "major") is None
	assert notes_session.correct_count == 0


def test_scenario_c_restart_discards_run():
	session, log, sched, clock = make_session("name")
	session.start(C_MAJOR)
	session.advance()
	session.advance()
	session.submit_name("C", "major")
	stale = sched.pending()[0]
	first_generation = session.generation

	assert session.start(Selection(roots=["D"], types=["minor"]))
	assert session.generation == first_generation + 1
	assert session.index == 0
	assert session.correct_count == 0
	assert session.history == []
	assert log.view.number == 1 and log.view.total == 15

	wait(sched, clock, 2.0)
	assert session.index == 0
	# Even if the old callback fires anyway it does nothing
	stale.callback()
	assert session.index == 0


def test_replay_does_not_mutate():
	session, log, _, _ = make_session("name")
	assert session.replay() == []
	session.start(C_MAJOR)
	count = log.play_count
	assert session.replay() == ["C", "E", "G"]
	assert session.replay() == ["C", "E", "G"]
	assert log.play_count == count + 2
	assert session.index == 0
	assert session.question_state is QuestionState.AWAITING


def test_timer_and_summary_mixed_score():
	settings = Settings(quiz_total=4)
	session, log, sched, clock = make_session("name", settings)
	session.start(C_MAJOR)
	clock.now += 65.0
	assert session.tick() == 65
	assert log.elapsed == 65
	session.submit_name("C", "major")
	wait(sched, clock, 1.0)
	for _ in range(3):
		session.submit_name("C", "minor")
		session.advance()
	assert session.phase is Phase.COMPLETED
	assert session.index == session.total
	s = log.last_summary
	assert (s.correct_count, s.total, s.accuracy_percent, s.elapsed_seconds) == (1, 4, 25, 66)
	clock.now += 100.0
	assert session.elapsed_seconds() == 66
	assert session.tick() is None
	assert session.replay() == []
	session.advance()
	assert session.index == 4


def test_score_never_exceeds_questions_seen():
	session, _, sched, clock = make_session("notes", Settings(quiz_total=3))
	session.start(C_MAJOR)
	while session.phase is Phase.IN_PROGRESS:
		for note in ("C", "E", "G"):
			session.toggle_note(note)
		assert session.correct_count <= session.index + 1
		wait(sched, clock, 1.0)
	assert session.correct_count == 3
	assert [r.correct for r in session.history] == [True, True, True]


def test_wrong_notes_feedback_cleared_on_retry():
	session, log, sched, clock = make_session("notes")
	session.start(C_MAJOR)
	for note in ("C", "D", "E"):
		session.toggle_note(note)
	assert log.last_feedback.correct is False
	wait(sched, clock, 1.0)
	assert session.question_state is QuestionState.AWAITING
	assert log.last_feedback is None
	assert log.kinds()[-2:] == ["clear_feedback", "selection"]


def test_manual_reset_clears_feedback():
	session, log, _, _ = make_session("notes")
	session.start(C_MAJOR)
	session.toggle_note("C")
	log.feedback(Feedback(correct=False, name="C", notes=("C", "E", "G"), message="Incorrect [C: C, E, G]"))
	session.reset_selection()
	assert log.last_feedback is None


def test_repeated_retries_do_not_accumulate_tasks():
	session, _, sched, clock = make_session("notes")
	session.start(C_MAJOR)
	for _ in range(5):
		for note in ("C", "D", "E"):
			session.toggle_note(note)
		wait(sched, clock, 1.0)
	assert session.index == 0
	assert len(session._tasks) <= 1
	assert len(sched.pending()) == 0
