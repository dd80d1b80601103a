from __future__ import annotations

"""Preferenze di visualizzazione (documento separato, puramente estetico)."""

import json
import logging
from dataclasses import asdict, dataclass, fields

from .store import KeyValueStore


logger = logging.getLogger(__name__)


PREFERENCES_KEY = "labPlannerUI"


@dataclass(frozen=True)
class Preferences:
    last_date: str = ""
    view: str = "dashboard"
    dashboard_tab: str = "instruments"
    data_tab: str = "instruments"
    personnel_filter: str = ""


def load_preferences(store: KeyValueStore, key: str = PREFERENCES_KEY) -> Preferences:
    try:
        raw = store.get(key)
        doc = json.loads(raw) if raw else {}
    except (OSError, ValueError) as exc:
        logger.warning("preferenze illeggibili (%s): uso i default", exc)
        return Preferences()
    if not isinstance(doc, dict):
        return Preferences()
    known = {f.name for f in fields(Preferences)}
    return Preferences(**{k: str(v) for k, v in doc.items() if k in known and v is not None})


def save_preferences(store: KeyValueStore, prefs: Preferences, key: str = PREFERENCES_KEY) -> None:
    store.set(key, json.dumps(asdict(prefs)))
