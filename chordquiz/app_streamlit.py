import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

import altair as alt
import pandas as pd
import streamlit as st

from chordquiz.audio import chord_wave, note_wave, wav_bytes
from chordquiz.midi_input import MidiNoteInput, available_ports
from chordquiz.models import Mode, Selection, Settings, Waveform
from chordquiz.presenter import EventLog
from chordquiz.scheduler import Scheduler
from chordquiz.session import Phase, QuestionState, QuizSession
from chordquiz.storage import load_selection, load_settings, save_selection, save_settings
from chordquiz.theory import NOTE_LABELS, name_of, normalize_pitch, notes_of, root_index, root_labels, type_keys, type_label, type_order
from chordquiz.trainer import chord_breakdown, format_elapsed


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Chord Quiz", page_icon=None, layout="centered")

PAGES = ["Learn", "Name quiz", "Notes quiz"]


def get_state() -> Any:
	if "settings" not in st.session_state:
		st.session_state.settings = load_settings()
	if "selection" not in st.session_state:
		st.session_state.selection = load_selection()
		st.session_state.roots_select = list(st.session_state.selection.roots)
		st.session_state.types_select = list(st.session_state.selection.types)
	if "log" not in st.session_state:
		st.session_state.log = EventLog()
	if "scheduler" not in st.session_state:
		st.session_state.scheduler = Scheduler()
	if "session" not in st.session_state:
		st.session_state.session = None
	if "midi" not in st.session_state:
		st.session_state.midi = None
	if "played" not in st.session_state:
		st.session_state.played = 0
	if "learn_played" not in st.session_state:
		st.session_state.learn_played = None
	return st.session_state


def sidebar_controls(s: Settings) -> Settings:
	st.sidebar.header("Settings")
	quiz_total = st.sidebar.slider("Questions per quiz", min_value=5, max_value=50, value=s.quiz_total, step=1)
	autoplay = st.sidebar.checkbox("Play each new chord", value=s.autoplay)
	waveform_str = st.sidebar.selectbox("Waveform", ["sine", "triangle", "saw"], index=["sine", "triangle", "saw"].index(s.waveform))
	volume = st.sidebar.slider("Volume", min_value=0.0, max_value=1.0, value=s.volume, step=0.05)

	waveform: Waveform = waveform_str  # type: ignore[assignment]
	new_s = s.model_copy(update={"quiz_total": quiz_total, "autoplay": autoplay, "waveform": waveform, "volume": volume})
	if new_s != s:
		save_settings(new_s)
	return new_s


def ensure_session(state: Any, mode: Mode) -> QuizSession:
	session = state.session
	if session is None or session.mode != mode:
		# One live session: switching quiz type discards the old one
		state.scheduler.cancel_all()
		state.log = EventLog()
		session = QuizSession(mode, settings=state.settings, presenter=state.log, scheduler=state.scheduler)
		state.session = session
	session.settings = state.settings
	return session


def _select_all(key: str, values: List[str]) -> None:
	st.session_state[key] = list(values)


def selection_form() -> Selection:
	roots_all = sorted(root_labels(), key=root_index)
	types_all = sorted(type_keys(), key=type_order)
	st.subheader("Chords to practise")
	c1, c2, c3, c4 = st.columns(4)
	c1.button("All roots", on_click=_select_all, args=("roots_select", roots_all))
	c2.button("No roots", on_click=_select_all, args=("roots_select", []))
	c3.button("All types", on_click=_select_all, args=("types_select", types_all))
	c4.button("No types", on_click=_select_all, args=("types_select", []))
	roots = st.multiselect("Roots", options=roots_all, key="roots_select")
	types = st.multiselect("Chord types", options=types_all, format_func=type_label, key="types_select")
	selection = Selection(roots=roots, types=types)
	st.caption(f"{selection.chord_count()} chords selected")
	return selection


def render_audio(state: Any) -> None:
	log: EventLog = state.log
	if log.play_count == state.played or not log.last_play:
		return
	state.played = log.play_count
	s: Settings = state.settings
	notes = list(log.last_play)
	if len(notes) == 1:
		x = note_wave(notes[0], waveform=s.waveform, volume=s.volume)
	else:
		x = chord_wave(notes, waveform=s.waveform, volume=s.volume)
	st.audio(wav_bytes(x), format="audio/wav", autoplay=True)


def _snapshot(session: QuizSession) -> Tuple[Any, ...]:
	return (session.generation, session.phase, session.index, session.question_state, tuple(session.selected_notes))


@st.fragment(run_every=0.25)
def pump(state: Any) -> None:
	session: Optional[QuizSession] = state.session
	if session is None or session.phase is not Phase.IN_PROGRESS:
		return
	before = _snapshot(session)
	if state.midi is not None and session.mode == "notes":
		state.midi.poll()
	state.scheduler.run_due()
	session.tick()
	st.markdown(f"**Time** {format_elapsed(session.elapsed_seconds())}")
	if _snapshot(session) != before:
		st.rerun()


def midi_controls(state: Any) -> None:
	st.sidebar.header("MIDI keyboard")
	ports = available_ports()
	if not ports:
		st.sidebar.caption("No MIDI inputs found")
		return
	port = st.sidebar.selectbox("Input", ports)
	if state.midi is None:
		if st.sidebar.button("Connect"):
			midi = MidiNoteInput(
				on_note=lambda note: state.session.toggle_note(note) if state.session is not None else None,
				window=state.settings.debounce_ms / 1000.0,
			)
			if midi.open(port):
				state.midi = midi
			else:
				st.sidebar.error(f"Could not open {port}")
	elif st.sidebar.button("Disconnect"):
		state.midi.close()
		state.midi = None


def _on_pick(session: QuizSession, which: str, key: str) -> None:
	value = st.session_state.get(key)
	if which == "root":
		session.choose_root(value)
	else:
		session.choose_type(value)


def name_controls(state: Any, session: QuizSession) -> None:
	locked = session.question_state is QuestionState.LOCKED
	roots = sorted(state.selection.roots, key=root_index)
	types = sorted(state.selection.types, key=type_order)
	tag = f"{session.generation}-{session.index}"
	c1, c2 = st.columns(2)
	c1.selectbox(
		"Root", roots, index=None, placeholder="Choose a root", key=f"root-{tag}",
		format_func=lambda r: r.split("/")[0], disabled=locked,
		on_change=_on_pick, args=(session, "root", f"root-{tag}"),
	)
	c2.selectbox(
		"Chord type", types, index=None, placeholder="Choose a chord type", key=f"type-{tag}",
		format_func=type_label, disabled=locked,
		on_change=_on_pick, args=(session, "type", f"type-{tag}"),
	)
	b1, b2 = st.columns(2)
	b1.button("Replay", on_click=session.replay, use_container_width=True)
	b2.button("Next", on_click=session.advance, use_container_width=True)


def keyboard(highlight: Sequence[str], prefix: str, on_press: Optional[Callable[[str], Any]] = None, disabled: bool = False) -> None:
	picked = {normalize_pitch(n) for n in highlight}
	for row in (NOTE_LABELS[:6], NOTE_LABELS[6:]):
		cols = st.columns(6)
		for col, note in zip(cols, row):
			col.button(
				note, key=f"{prefix}-{note}", type="primary" if normalize_pitch(note) in picked else "secondary",
				on_click=on_press, args=(note,) if on_press is not None else None,
				disabled=disabled, use_container_width=True,
			)


def notes_controls(session: QuizSession) -> None:
	locked = session.question_state is QuestionState.LOCKED
	st.caption(f"Selected notes: {len(session.selected_notes)}")
	keyboard(session.selected_notes, "key", on_press=session.toggle_note, disabled=locked)
	b1, b2 = st.columns(2)
	b1.button("Reset selection", on_click=session.reset_selection, use_container_width=True)
	b2.button("Next", on_click=session.advance, use_container_width=True)


def results_section(session: QuizSession) -> None:
	rows = chord_breakdown(session.history)
	if not rows:
		return
	st.subheader("Results by chord")
	df = pd.DataFrame(rows)
	st.dataframe(df, hide_index=True)
	chart = alt.Chart(df).mark_bar().encode(
		x=alt.X("chord:N", sort=None),
		y=alt.Y("accuracy:Q", scale=alt.Scale(domain=[0, 1])),
		color=alt.Color("accuracy:Q", scale=alt.Scale(scheme="redyellowgreen", domain=[0, 1]), legend=None),
		tooltip=["chord", "attempts", "correct", "accuracy"],
	).properties(width=400, height=250)
	st.altair_chart(chart, use_container_width=True)


def quiz_page(state: Any, mode: Mode) -> None:
	session = ensure_session(state, mode)
	log: EventLog = state.log
	st.title("Name the chord" if mode == "name" else "Play the chord")

	if mode == "notes":
		midi_controls(state)

	if session.phase is not Phase.IN_PROGRESS:
		if log.last_summary is not None:
			s = log.last_summary
			st.success(
				f"Quiz complete! Correct: {s.correct_count} / {s.total} | "
				f"Accuracy: {s.accuracy_percent}% | Time: {format_elapsed(s.elapsed_seconds)}"
			)
			results_section(session)
		selection = selection_form()
		if st.button(f"Start quiz ({state.settings.quiz_total} questions)", type="primary", use_container_width=True):
			if session.start(selection):
				state.selection = selection
				save_selection(selection)
				st.rerun()
		if log.last_error:
			st.error(log.last_error)
		return

	view = log.view
	if view is not None:
		st.progress(view.progress, text=f"Question {view.number} / {view.total}")
		if view.name is not None:
			st.header(view.name)
		else:
			st.caption("Listen and name the chord")
			keyboard(view.notes, f"prompt-{view.number}", disabled=True)
	pump(state)

	if mode == "name":
		name_controls(state, session)
	else:
		notes_controls(session)

	fb = log.last_feedback
	if fb is not None:
		if fb.correct:
			st.success(fb.message)
		else:
			st.error(fb.message)
	if log.last_error:
		st.warning(log.last_error)

	if st.button("Restart with new chords"):
		state.scheduler.cancel_all()
		state.session = None
		st.rerun()
	render_audio(state)
	results_section(session)


def learn_page(state: Any) -> None:
	st.title("Chord explorer")
	c1, c2 = st.columns(2)
	root = c1.selectbox("Root", sorted(root_labels(), key=root_index), index=None, placeholder="Choose a root",
		format_func=lambda r: r.split("/")[0])
	type_key = c2.selectbox("Chord type", sorted(type_keys(), key=type_order), index=None,
		placeholder="Choose a chord type", format_func=type_label)
	if root and type_key:
		notes = notes_of(root, type_key)
		st.subheader(f"Chord: {name_of(root, type_key)}")
		st.write(f"Notes: {', '.join(notes)}")
		s: Settings = state.settings
		# Autoplay only when the chord changes, not on every rerun
		autoplay = state.learn_played != (root, type_key)
		state.learn_played = (root, type_key)
		st.audio(wav_bytes(chord_wave(notes, waveform=s.waveform, volume=s.volume)), format="audio/wav", autoplay=autoplay)
		return
	state.learn_played = None
	if root:
		st.subheader("Chord: choose a chord type")
	elif type_key:
		st.subheader("Chord: choose a root")
	else:
		st.subheader("Chord: -")


def main() -> None:
	state = get_state()
	state.settings = sidebar_controls(state.settings)
	page = st.sidebar.radio("Mode", PAGES, index=1)
	if page == "Learn":
		learn_page(state)
	elif page == "Name quiz":
		quiz_page(state, "name")
	else:
		quiz_page(state, "notes")


if __name__ == "__main__":
	main()
