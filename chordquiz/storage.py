from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from .models import Selection, Settings
from .theory import find_root, find_type

logger = logging.getLogger(__name__)

ENV_HOME = "CHORDQUIZ_HOME"


def _data_path() -> Path:
	override = os.environ.get(ENV_HOME)
	dir_ = Path(override) if override else Path.home() / ".chordquiz"
	dir_.mkdir(parents=True, exist_ok=True)
	return dir_ / "data.json"


def _load_raw() -> Dict[str, Any]:
	try:
		p = _data_path()
		if not p.exists():
			return {}
		data = json.loads(p.read_text())
	except (OSError, ValueError) as e:
		logger.warning("Could not read saved data: %s", e)
		return {}
	return data if isinstance(data, dict) else {}


def _save_raw(data: Dict[str, Any]) -> bool:
	try:
		_data_path().write_text(json.dumps(data, indent=2))
	except OSError as e:
		logger.warning("Could not save data: %s", e)
		return False
	return True


def load_settings() -> Settings:
	obj = _load_raw().get("settings", {})
	if isinstance(obj, dict):
		try:
			return Settings.model_validate(obj)
		except ValidationError as e:
			logger.warning("Ignoring invalid saved settings: %s", e)
	return Settings()


def save_settings(s: Settings) -> bool:
	raw = _load_raw()
	raw["settings"] = s.model_dump()
	return _save_raw(raw)


def load_selection() -> Selection:
	"""Last chosen roots and types; labels no longer known are dropped."""
	obj = _load_raw().get("selection", {})
	if not isinstance(obj, dict):
		return Selection()
	try:
		sel = Selection.model_validate(obj)
	except ValidationError as e:
		logger.warning("Ignoring invalid saved selection: %s", e)
		return Selection()
	return Selection(
		roots=[r for r in sel.roots if find_root(r) is not None],
		types=[t for t in sel.types if find_type(t) is not None],
	)


def save_selection(sel: Selection) -> bool:
	raw = _load_raw()
	raw["selection"] = sel.model_dump()
	return _save_raw(raw)
