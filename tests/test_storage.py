import json

import pytest

from chordquiz import storage
from chordquiz.models import Selection, Settings


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
	monkeypatch.setenv(storage.ENV_HOME, str(tmp_path))
	return tmp_path


def test_defaults_without_file(data_dir):
	assert storage.load_selection() == Selection()
	assert storage.load_settings() == Settings()


def test_selection_round_trip_keeps_order(data_dir):
	sel = Selection(roots=["G", "C", "F#/Gb"], types=["minor7", "major"])
	assert storage.save_selection(sel)
	assert storage.load_selection() == sel
	raw = json.loads((data_dir / "data.json").read_text())
	assert raw["selection"] == {"roots": ["G", "C", "F#/Gb"], "types": ["minor7", "major"]}


def test_settings_and_selection_share_the_file(data_dir):
	storage.save_settings(Settings(quiz_total=20))
	storage.save_selection(Selection(roots=["C"], types=["major"]))
	assert storage.load_settings().quiz_total == 20
	assert storage.load_selection().roots == ["C"]


def test_unknown_labels_are_dropped(data_dir):
	(data_dir / "data.json").write_text(json.dumps({"selection": {"roots": ["C", "H"], "types": ["ninth", "dim"]}}))
	assert storage.load_selection() == Selection(roots=["C"], types=["dim"])


def test_corrupt_file_falls_back_with_warning(data_dir, caplog):
	(data_dir / "data.json").write_text("{not json")
	assert storage.load_selection() == Selection()
	assert "Could not read saved data" in caplog.text


def test_invalid_settings_fall_back(data_dir, caplog):
	(data_dir / "data.json").write_text(json.dumps({"settings": {"quiz_total": 0}}))
	assert storage.load_settings() == Settings()
	assert "Ignoring invalid saved settings" in caplog.text
