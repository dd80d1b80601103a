from __future__ import annotations

"""Contenitore dello snapshot corrente.

Tutte le sostituzioni passano da ``update`` e sono serializzate da un lock:
l'ultima scrittura vince senza perdere aggiornamenti concorrenti.
"""

import logging
import threading
from typing import Callable

from labdata.models import Snapshot
from labdata.share import decode_share_link
from labdata.snapshot import (
    DATA_KEY,
    SnapshotImportError,
    export_document,
    import_document,
    load_snapshot,
    save_snapshot,
)
from labdata.store import KeyValueStore, MemoryStore


logger = logging.getLogger(__name__)


class PlannerState:
    def __init__(
        self,
        store: KeyValueStore,
        snapshot: Snapshot,
        *,
        key: str = DATA_KEY,
        readonly: bool = False,
    ) -> None:
        self._store = store
        self._key = key
        self._snapshot = snapshot
        self._lock = threading.Lock()
        self.readonly = readonly

    @classmethod
    def from_store(cls, store: KeyValueStore, key: str = DATA_KEY) -> "PlannerState":
        return cls(store, load_snapshot(store, key), key=key)

    @classmethod
    def from_share_link(cls, url: str) -> "PlannerState":
        """Stato in sola lettura: mai persistito sull'archivio locale."""
        return cls(MemoryStore(), decode_share_link(url), readonly=True)

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _persist(self, snapshot: Snapshot) -> None:
        if self.readonly:
            return
        try:
            save_snapshot(self._store, snapshot, self._key)
        except OSError as exc:
            logger.error("salvataggio dello snapshot fallito: %s", exc)

    def update(self, change: Callable[[Snapshot], Snapshot]) -> Snapshot:
        """Applica ``change`` allo snapshot corrente e lo rende il nuovo stato."""
        with self._lock:
            new_snapshot = change(self._snapshot)
            self._snapshot = new_snapshot
            self._persist(new_snapshot)
            return new_snapshot

    def replace_from_document(self, text: str) -> bool:
        """Sostituisce l'intero stato con un documento esportato; False se non valido."""
        try:
            imported = import_document(text)
        except SnapshotImportError as exc:
            logger.warning("documento di import rifiutato: %s", exc)
            return False
        self.update(lambda _current: imported)
        return True

    def export(self) -> str:
        return export_document(self._snapshot)
