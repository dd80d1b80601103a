from __future__ import annotations

from dataclasses import dataclass

try:  # pragma: no cover - dipendenza runtime
    import pandas as pd  # noqa: F401
except ModuleNotFoundError as exc:  # pragma: no cover - messaggio esplicativo
    raise ModuleNotFoundError(
        "Il pacchetto 'pandas' è richiesto per il pianificatore. "
        "Installarlo con `pip install -e .`."
    ) from exc

from .calendar import (
    add_days,
    add_working_days,
    build_calendar,
    count_working_days,
    format_date,
    iso_week,
    iso_week_year,
    week_dates,
    week_key,
    week_start_date,
)
from .config import load_config
from .migrations import SCHEMA_VERSION, upgrade_document
from .models import Snapshot
from .preferences import Preferences, load_preferences
from .snapshot import (
    SnapshotImportError,
    export_document,
    import_document,
    load_snapshot,
    save_snapshot,
    seed_snapshot,
)
from .store import JsonFileStore, KeyValueStore, MemoryStore
from .utils import LoaderError


@dataclass
class LoadedData:
    cfg: dict
    store: KeyValueStore
    snapshot: Snapshot
    preferences: Preferences


def load_all(config_path: str | None) -> LoadedData:
    """Carica configurazione, archivio, snapshot e preferenze."""
    cfg = load_config(config_path)
    storage = cfg["storage"]
    store = JsonFileStore(storage["path"])
    return LoadedData(
        cfg=cfg,
        store=store,
        snapshot=load_snapshot(store, storage["data_key"]),
        preferences=load_preferences(store, storage["preferences_key"]),
    )


__all__ = [
    "JsonFileStore",
    "LoadedData",
    "LoaderError",
    "MemoryStore",
    "SCHEMA_VERSION",
    "Snapshot",
    "SnapshotImportError",
    "add_days",
    "add_working_days",
    "build_calendar",
    "count_working_days",
    "export_document",
    "format_date",
    "import_document",
    "iso_week",
    "iso_week_year",
    "load_all",
    "load_config",
    "load_snapshot",
    "save_snapshot",
    "seed_snapshot",
    "upgrade_document",
    "week_dates",
    "week_key",
    "week_start_date",
]
