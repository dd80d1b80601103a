from __future__ import annotations

"""Controlli di coerenza su uno snapshot: riferimenti orfani e prenotazioni in conflitto."""

from collections import Counter
from dataclasses import dataclass

from labdata.models import Snapshot, serialize_status_key


@dataclass(frozen=True)
class Issue:
    kind: str
    ref: str
    detail: str


def check_snapshot(snapshot: Snapshot) -> list[Issue]:
    instrument_ids = {i.id for i in snapshot.instruments}
    personnel_ids = {p.id for p in snapshot.personnel}
    type_ids = {t.id for t in snapshot.absence_types}
    issues: list[Issue] = []

    for b in snapshot.bookings:
        if b.instrument_id not in instrument_ids:
            issues.append(Issue("orphan_booking", b.id, f"strumento {b.instrument_id} mancante"))
        if b.personnel_id not in personnel_ids:
            issues.append(Issue("orphan_booking", b.id, f"persona {b.personnel_id} mancante"))

    for a in snapshot.absences:
        if a.type_id not in type_ids:
            issues.append(Issue("stale_absence_type", a.id, f"tipo {a.type_id} sconosciuto"))

    for key, value in snapshot.status_overrides.items():
        if value != "present" and value not in type_ids:
            issues.append(
                Issue("stale_absence_type", serialize_status_key(key), f"tipo {value} sconosciuto")
            )

    for p in snapshot.personnel:
        for day, slots in sorted(p.fixed_absences.items()):
            for slot, type_id in slots.items():
                if type_id not in type_ids:
                    issues.append(
                        Issue("stale_absence_type", f"{p.id}:{day}{slot}", f"tipo {type_id} sconosciuto")
                    )

    slot_counts = Counter((b.instrument_id, b.date, b.slot) for b in snapshot.bookings)
    for (instrument_id, day, slot), count in sorted(slot_counts.items()):
        if count > 1:
            issues.append(
                Issue("slot_collision", f"{instrument_id}/{day}/{slot}", f"{count} prenotazioni")
            )

    person_counts = Counter((b.personnel_id, b.date, b.slot) for b in snapshot.bookings)
    for (personnel_id, day, slot), count in sorted(person_counts.items()):
        if count > 1:
            issues.append(
                Issue("double_booked", f"{personnel_id}/{day}/{slot}", f"{count} strumenti")
            )

    return issues
