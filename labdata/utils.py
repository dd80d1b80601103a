from __future__ import annotations

from datetime import date, datetime

import pandas as pd


SLOTS: tuple[str, ...] = ("M", "P")


class LoaderError(Exception):
    """Errore di caricamento dati."""


def _parse_date(s: str) -> date:
    """Converte stringa ISO (YYYY-MM-DD) in oggetto date."""
    return datetime.strptime(str(s).strip(), "%Y-%m-%d").date()


def _ensure_date(value: date | pd.Timestamp | str) -> date:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _parse_date(value)


def _split_keywords(raw: object) -> tuple[str, ...]:
    """Normalizza una lista di parole chiave (stringa separata da virgole o lista).

    Valori di altro tipo (numeri, dizionari, ...) valgono come nessuna parola chiave.
    """
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(x) for x in raw if isinstance(x, (str, int, float))]
    else:
        return ()

    seen = set()
    deduped: list[str] = []
    for item in items:
        keyword = item.strip().lower()
        if keyword and keyword not in seen:
            seen.add(keyword)
            deduped.append(keyword)
    return tuple(deduped)
