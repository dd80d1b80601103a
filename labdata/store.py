from __future__ import annotations

"""Archivio chiave-valore opaco su cui vengono persistiti snapshot e preferenze."""

import json
import os
import tempfile
from typing import Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Archivio in memoria (modalità sola lettura e test)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStore:
    """Archivio persistito come un unico file JSON ``{chiave: valore testuale}``.

    Il contenuto di ogni chiave resta opaco: chi legge decide come
    decodificarlo. Un file illeggibile solleva ``ValueError`` in lettura.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _read_all(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return {}
        items = json.loads(content)
        if not isinstance(items, dict):
            raise ValueError(f"{self.path}: il file dell'archivio deve contenere un oggetto JSON")
        return {str(k): v for k, v in items.items() if isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".store_", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            items = self._read_all()
        except ValueError:
            items = {}
        items[key] = value
        self._write_all(items)

    def delete(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)
