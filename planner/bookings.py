from __future__ import annotations

"""Operazioni sulla collezione di prenotazioni strumento.

Invariante: al più una prenotazione per (strumento, data, slot). ``upsert_booking``
la garantisce sostituendo sia la prenotazione con lo stesso id sia quella che
occupa già lo stesso slot dello strumento.
"""

import logging
import uuid
from typing import Iterable

from labdata.models import Booking


logger = logging.getLogger(__name__)


def new_booking_id() -> str:
    return uuid.uuid4().hex


def _same_slot(a: Booking, b: Booking) -> bool:
    return a.instrument_id == b.instrument_id and a.date == b.date and a.slot == b.slot


def upsert_booking(bookings: Iterable[Booking], booking: Booking) -> tuple[Booking, ...]:
    kept = []
    for existing in bookings:
        if existing.id == booking.id:
            continue
        if _same_slot(existing, booking):
            logger.debug(
                "slot %s/%s/%s già occupato da %s: sostituito da %s",
                booking.instrument_id,
                booking.date,
                booking.slot,
                existing.id,
                booking.id,
            )
            continue
        kept.append(existing)
    kept.append(booking)
    return tuple(kept)


def delete_booking(bookings: Iterable[Booking], booking_id: str) -> tuple[Booking, ...]:
    return tuple(b for b in bookings if b.id != booking_id)


def find_booking(
    bookings: Iterable[Booking], instrument_id: str, date: str, slot: str
) -> Booking | None:
    return next(
        (
            b
            for b in bookings
            if b.instrument_id == instrument_id and b.date == date and b.slot == slot
        ),
        None,
    )


def find_bookings_for_person(
    bookings: Iterable[Booking], personnel_id: str, date: str, slot: str
) -> list[Booking]:
    """Tutte le prenotazioni della persona nello slot (può essere su più strumenti)."""
    return [
        b
        for b in bookings
        if b.personnel_id == personnel_id and b.date == date and b.slot == slot
    ]


def bookings_in_range(bookings: Iterable[Booking], start: str, end: str) -> list[Booking]:
    return [b for b in bookings if start <= b.date <= end]
