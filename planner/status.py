from __future__ import annotations

"""Risoluzione dello stato di occupazione di una persona in un (giorno, slot).

Ordine di precedenza, vince la prima corrispondenza:

1. override di stato sullo slot esatto (``present`` forza la presenza);
2. assenze puntuali che coprono la data;
3. assenze fisse settimanali (lunedì=0 .. venerdì=4);
4. libero.

Riferimenti a tipi di assenza non più esistenti valgono come nessuna assenza.
Un id assente da ``personnel`` non ha assenze fisse, ma override e assenze
puntuali registrati con quell'id si applicano comunque.
"""

from dataclasses import dataclass, replace
from datetime import date

from labdata.calendar import format_date
from labdata.models import (
    FIXED_ABSENCE_TYPE_ID,
    PRESENT,
    RESET,
    Absence,
    AbsenceType,
    Snapshot,
    StatusKey,
)
from labdata.utils import _ensure_date


OVERRIDE_PRESENT = "override-present"
ABSENCE = "absence"
FREE = "free"


@dataclass(frozen=True)
class SlotStatus:
    kind: str
    absence_type: AbsenceType | None = None

    @property
    def is_absent(self) -> bool:
        return self.kind == ABSENCE


def _find_absence(snapshot: Snapshot, personnel_id: str, date_str: str) -> Absence | None:
    return next(
        (
            a
            for a in snapshot.absences
            if a.personnel_id == personnel_id and a.start_date <= date_str <= a.end_date
        ),
        None,
    )


def _fixed_absence_type_id(snapshot: Snapshot, personnel_id: str, day: date, slot: str) -> str | None:
    person = snapshot.find_personnel(personnel_id)
    if person is None:
        return None
    day_index = day.weekday()
    if day_index > 4:
        return None
    return person.fixed_absences.get(day_index, {}).get(slot)


def _absence_status(snapshot: Snapshot, type_id: str | None) -> SlotStatus:
    if not type_id:
        return SlotStatus(FREE)
    absence_type = snapshot.find_absence_type(type_id)
    if absence_type is None:
        return SlotStatus(FREE)
    return SlotStatus(ABSENCE, absence_type)


def resolve_status(
    snapshot: Snapshot, personnel_id: str, day: date | str, slot: str
) -> SlotStatus:
    day_d = _ensure_date(day)
    date_str = format_date(day_d)

    override = snapshot.status_overrides.get(StatusKey(personnel_id, date_str, slot))
    if override is not None:
        if override == PRESENT:
            return SlotStatus(OVERRIDE_PRESENT)
        return _absence_status(snapshot, override)

    absence = _find_absence(snapshot, personnel_id, date_str)
    if absence is not None:
        return _absence_status(snapshot, absence.type_id)

    return _absence_status(
        snapshot, _fixed_absence_type_id(snapshot, personnel_id, day_d, slot)
    )


def get_absence_details(
    snapshot: Snapshot, personnel_id: str, day: date | str, slot: str
) -> AbsenceType | None:
    """Tipo di assenza effettivo per lo slot, ``None`` se la persona è disponibile."""
    return resolve_status(snapshot, personnel_id, day, slot).absence_type


def set_status_override(snapshot: Snapshot, key: StatusKey, value: str) -> Snapshot:
    """Imposta (o con ``reset`` rimuove) l'override di uno slot."""
    overrides = dict(snapshot.status_overrides)
    if value == RESET:
        overrides.pop(key, None)
    else:
        overrides[key] = value
    return replace(snapshot, status_overrides=overrides)


def selectable_absence_types(snapshot: Snapshot) -> list[AbsenceType]:
    """Tipi proponibili per assenze puntuali e override (esclude le assenze fisse)."""
    return [t for t in snapshot.absence_types if t.id != FIXED_ABSENCE_TYPE_ID]


def upsert_absence(snapshot: Snapshot, absence: Absence) -> Snapshot:
    if absence.start_date > absence.end_date:
        raise ValueError(
            f"assenza {absence.id}: startDate {absence.start_date} successiva a endDate {absence.end_date}"
        )
    # la modifica mantiene la posizione: con assenze sovrapposte vince la prima
    if any(a.id == absence.id for a in snapshot.absences):
        absences = tuple(absence if a.id == absence.id else a for a in snapshot.absences)
    else:
        absences = snapshot.absences + (absence,)
    return replace(snapshot, absences=absences)


def delete_absence(snapshot: Snapshot, absence_id: str) -> Snapshot:
    return replace(snapshot, absences=tuple(a for a in snapshot.absences if a.id != absence_id))


def set_weekly_note(snapshot: Snapshot, week: str, note: str) -> Snapshot:
    return replace(snapshot, weekly_notes={**snapshot.weekly_notes, week: note})


def weekly_note(snapshot: Snapshot, week: str) -> str:
    return snapshot.weekly_notes.get(week, "")
