from __future__ import annotations

"""Parser tollerante di calendari ICS (sottoinsieme RFC 5545, solo import).

Blocchi malformati o incompleti vengono scartati senza sollevare eccezioni.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta

import pandas as pd


_FOLDED_LINE = re.compile(r"\r?\n[ \t]")
_DATE_TOKEN = re.compile(r"\d{8}")


@dataclass(frozen=True)
class CalendarEvent:
    summary: str
    start_date: str
    end_date: str


def _find_property(lines: list[str], name: str) -> tuple[str, str] | None:
    """Restituisce (parametri, valore) della prima riga della proprietà ``name``."""
    for line in lines:
        if not line.startswith(name):
            continue
        rest = line[len(name):]
        if rest.startswith(":"):
            return "", rest[1:]
        if rest.startswith(";") and ":" in rest:
            params, value = rest[1:].split(":", 1)
            return params, value
    return None


def _parse_date_token(value: str) -> date | None:
    # TZID con i due punti: la data sta dopo l'ultimo ':'
    tokens = _DATE_TOKEN.findall(value.rsplit(":", 1)[-1])
    if not tokens:
        return None
    raw = tokens[-1]
    try:
        return date(int(raw[:4]), int(raw[4:6]), int(raw[6:8]))
    except ValueError:
        return None


def _is_date_only(params: str, value: str) -> bool:
    param_values = {p.strip().upper() for p in params.split(";")}
    if "VALUE=DATE" in param_values:
        return True
    return "VALUE=DATE-TIME" not in param_values and re.fullmatch(r"\s*\d{8}\s*", value) is not None


def _unescape_text(value: str) -> str:
    return (
        value.replace("\\n", " ")
        .replace("\\N", " ")
        .replace("\\,", ",")
        .replace("\\;", ";")
        .replace("\\\\", "\\")
        .strip()
    )


def _parse_block(block: str) -> CalendarEvent | None:
    end_idx = block.find("END:VEVENT")
    if end_idx != -1:
        block = block[:end_idx]
    if "STATUS:CANCELLED" in block:
        return None

    lines = block.splitlines()
    summary_prop = _find_property(lines, "SUMMARY")
    start_prop = _find_property(lines, "DTSTART")
    end_prop = _find_property(lines, "DTEND")

    summary = _unescape_text(summary_prop[1]) if summary_prop else ""
    start = _parse_date_token(start_prop[1]) if start_prop else None
    if not summary or start is None:
        return None

    end = _parse_date_token(end_prop[1]) if end_prop else None
    if end is None:
        end = start
    elif end > start and _is_date_only(*start_prop):
        # fine esclusiva degli eventi "tutto il giorno" -> fine inclusiva
        end = end - timedelta(days=1)

    return CalendarEvent(summary, start.isoformat(), end.isoformat())


def parse_calendar_text(text: str) -> list[CalendarEvent]:
    unfolded = _FOLDED_LINE.sub("", text or "")
    blocks = unfolded.split("BEGIN:VEVENT")[1:]
    events = []
    for block in blocks:
        event = _parse_block(block)
        if event is not None:
            events.append(event)
    return events


def events_to_frame(events: list[CalendarEvent]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"summary": e.summary, "start_date": e.start_date, "end_date": e.end_date} for e in events],
        columns=["summary", "start_date", "end_date"],
    )
