from __future__ import annotations

from datetime import date, timedelta

import numpy as np
import pandas as pd

from .utils import _ensure_date


def iso_week(value: date | str) -> int:
    """Numero di settimana ISO-8601 (il giovedì della settimana decide l'anno)."""
    d = _ensure_date(value)
    thursday = d + timedelta(days=4 - d.isoweekday())
    year_start = date(thursday.year, 1, 1)
    return ((thursday - year_start).days + 1 + 6) // 7


def iso_week_year(value: date | str) -> int:
    """Anno ISO della settimana: il 31 dicembre può appartenere alla settimana 1."""
    d = _ensure_date(value)
    thursday = d + timedelta(days=4 - d.isoweekday())
    return thursday.year


def week_start_date(year: int, week: int) -> date:
    """Lunedì della settimana ISO ``week`` di ``year``.

    Il 4 gennaio cade sempre nella settimana 1, quindi si parte dal suo lunedì.
    """
    jan4 = date(year, 1, 4)
    monday = jan4 - timedelta(days=jan4.isoweekday() - 1)
    return monday + timedelta(days=(week - 1) * 7)


def format_date(value: date | str) -> str:
    return _ensure_date(value).isoformat()


def add_days(value: date | str, days: int) -> date:
    return _ensure_date(value) + timedelta(days=days)


def week_key(value: date | str) -> str:
    """Chiave delle note settimanali: ``{anno ISO}-W{settimana}``."""
    return f"{iso_week_year(value)}-W{iso_week(value)}"


def week_dates(value: date | str) -> list[date]:
    """I cinque giorni lavorativi (lun-ven) della settimana ISO di ``value``."""
    d = _ensure_date(value)
    monday = week_start_date(iso_week_year(d), iso_week(d))
    return [monday + timedelta(days=i) for i in range(5)]


def add_working_days(value: date | str, n: int) -> str:
    """Aggiunge ``n`` giorni lavorativi (solo in avanti, sabato e domenica esclusi)."""
    d = _ensure_date(value)
    added = 0
    while added < n:
        d += timedelta(days=1)
        if d.weekday() < 5:
            added += 1
    return d.isoformat()


def count_working_days(start: date | str, end: date | str) -> int:
    """Giorni feriali nell'intervallo chiuso [start, end]; 0 se start > end."""
    start_d = _ensure_date(start)
    end_d = _ensure_date(end)
    if start_d > end_d:
        return 0
    return int(np.busday_count(start_d, end_d + timedelta(days=1)))


def build_calendar(start_date: date | str, end_date: date | str) -> pd.DataFrame:
    """Calendario giornaliero con informazioni ISO per il periodo [start, end]."""
    start_d = _ensure_date(start_date)
    end_d = _ensure_date(end_date)
    rows = []
    d = start_d
    while d <= end_d:
        dow_iso = d.isoweekday()
        monday = d - timedelta(days=dow_iso - 1)
        rows.append(
            {
                "data": d.isoformat(),
                "dow_iso": dow_iso,
                "weekday_idx": d.weekday(),
                "iso_year": iso_week_year(d),
                "iso_week": iso_week(d),
                "week_start_date": monday.isoformat(),
                "week_key": week_key(d),
            }
        )
        d += timedelta(days=1)
    cal = pd.DataFrame(
        rows,
        columns=[
            "data",
            "dow_iso",
            "weekday_idx",
            "iso_year",
            "iso_week",
            "week_start_date",
            "week_key",
        ],
    )
    cal["data_dt"] = pd.to_datetime(cal["data"], format="%Y-%m-%d")
    cal["is_weekend"] = cal["dow_iso"].isin([6, 7])
    return cal
