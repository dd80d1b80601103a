from __future__ import annotations

"""Griglie settimanali (vista strumenti e vista personale) e riepiloghi della settimana."""

from datetime import date

import pandas as pd

from labdata.calendar import add_days, format_date
from labdata.models import Booking, Campaign, Instrument, InstrumentCategory, Snapshot
from labdata.utils import SLOTS, _ensure_date

from .bookings import find_booking, find_bookings_for_person
from .status import ABSENCE, resolve_status


CELL_EMPTY = "empty"
CELL_BOOKED = "booked"
CELL_ABSENT = "absent"


def _week_days(week_start: date | str) -> list[str]:
    start = _ensure_date(week_start)
    if start.weekday() != 0:
        raise ValueError(f"la settimana deve iniziare di lunedì (trovato {start.isoformat()})")
    return [format_date(add_days(start, i)) for i in range(5)]


def instrument_week_grid(snapshot: Snapshot, week_start: date | str) -> pd.DataFrame:
    """Una riga per strumento x giorno x slot.

    Se la persona prenotata risulta assente nello slot, la cella è ``absent``:
    l'assenza ha la precedenza sulla prenotazione.
    """
    days = _week_days(week_start)
    rows = []
    for instrument in snapshot.instruments:
        for day in days:
            for slot in SLOTS:
                booking = find_booking(snapshot.bookings, instrument.id, day, slot)
                row = {
                    "instrument_id": instrument.id,
                    "instrument_name": instrument.name,
                    "date": day,
                    "slot": slot,
                    "booking_id": None,
                    "personnel_id": None,
                    "personnel_name": None,
                    "note": "",
                    "absence_type_id": None,
                    "cell_state": CELL_EMPTY,
                }
                if booking is not None:
                    person = snapshot.find_personnel(booking.personnel_id)
                    status = resolve_status(snapshot, booking.personnel_id, day, slot)
                    row.update(
                        booking_id=booking.id,
                        personnel_id=booking.personnel_id,
                        personnel_name=person.name if person is not None else None,
                        note=booking.note,
                        absence_type_id=status.absence_type.id if status.is_absent else None,
                        cell_state=CELL_ABSENT if status.is_absent else CELL_BOOKED,
                    )
                rows.append(row)
    return pd.DataFrame(
        rows,
        columns=[
            "instrument_id",
            "instrument_name",
            "date",
            "slot",
            "booking_id",
            "personnel_id",
            "personnel_name",
            "note",
            "absence_type_id",
            "cell_state",
        ],
    )


def personnel_week_grid(snapshot: Snapshot, week_start: date | str) -> pd.DataFrame:
    """Una riga per persona x giorno x slot; le doppie prenotazioni sono segnalate."""
    days = _week_days(week_start)
    rows = []
    for person in snapshot.personnel:
        for day in days:
            for slot in SLOTS:
                status = resolve_status(snapshot, person.id, day, slot)
                bookings = find_bookings_for_person(snapshot.bookings, person.id, day, slot)
                if status.kind == ABSENCE:
                    cell_state = CELL_ABSENT
                elif bookings:
                    cell_state = CELL_BOOKED
                else:
                    cell_state = CELL_EMPTY
                rows.append(
                    {
                        "personnel_id": person.id,
                        "name": person.name,
                        "date": day,
                        "slot": slot,
                        "status": status.kind,
                        "absence_type_id": status.absence_type.id if status.is_absent else None,
                        "instrument_ids": [b.instrument_id for b in bookings],
                        "double_booked": len(bookings) > 1,
                        "cell_state": cell_state,
                    }
                )
    return pd.DataFrame(
        rows,
        columns=[
            "personnel_id",
            "name",
            "date",
            "slot",
            "status",
            "absence_type_id",
            "instrument_ids",
            "double_booked",
            "cell_state",
        ],
    )


def active_campaigns(snapshot: Snapshot, week_start: date | str) -> list[Campaign]:
    days = _week_days(week_start)
    return [c for c in snapshot.campaigns if c.start_date <= days[-1] and c.end_date >= days[0]]


def booking_notes_by_person(snapshot: Snapshot, week_start: date | str) -> dict[str, list[Booking]]:
    days = _week_days(week_start)
    grouped: dict[str, list[Booking]] = {}
    for booking in snapshot.bookings:
        if not booking.note or not days[0] <= booking.date <= days[-1]:
            continue
        if snapshot.find_personnel(booking.personnel_id) is None:
            continue
        grouped.setdefault(booking.personnel_id, []).append(booking)
    return grouped


def instruments_by_category(
    snapshot: Snapshot,
) -> list[tuple[InstrumentCategory | None, list[Instrument]]]:
    """Strumenti raggruppati per categoria; quelli senza categoria valida in coda."""
    known = {c.id: c for c in snapshot.instrument_categories}
    grouped: dict[str, list[Instrument]] = {}
    uncategorized: list[Instrument] = []
    for instrument in snapshot.instruments:
        if instrument.category_id in known:
            grouped.setdefault(instrument.category_id, []).append(instrument)
        else:
            uncategorized.append(instrument)
    result: list[tuple[InstrumentCategory | None, list[Instrument]]] = [
        (known[cid], items) for cid, items in grouped.items()
    ]
    if uncategorized:
        result.append((None, uncategorized))
    return result
