from __future__ import annotations

"""Entità del pianificatore di laboratorio e chiavi composite tipizzate."""

from dataclasses import dataclass, field
from typing import NamedTuple

from .utils import SLOTS, LoaderError


PRESENT = "present"
RESET = "reset"
FIXED_ABSENCE_TYPE_ID = "fisse"
VACATION_TYPE_ID = "ferie"


@dataclass(frozen=True)
class InstrumentCategory:
    id: str
    name: str
    icon: str = "science"
    color: str = ""


@dataclass(frozen=True)
class CampaignCategory:
    id: str
    name: str
    icon: str = ""
    color: str = ""
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class Instrument:
    id: str
    name: str
    category_id: str = ""
    location: str = ""
    inventory_number: str = ""
    weight: float = 1.0


@dataclass(frozen=True)
class Personnel:
    """Persona in anagrafica.

    ``fixed_absences`` mappa l'indice del giorno (0=lunedì..4=venerdì) su
    ``{"M": type_id, "P": type_id}`` (chiavi facoltative).
    """

    id: str
    name: str
    initials: str = ""
    work_percentage: float = 100.0
    color: str = "#cccccc"
    keywords: tuple[str, ...] = ()
    fixed_absences: dict[int, dict[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class AbsenceType:
    id: str
    name: str
    color: str = ""


@dataclass(frozen=True)
class Absence:
    id: str
    personnel_id: str
    start_date: str
    end_date: str
    type_id: str
    note: str = ""


@dataclass(frozen=True)
class UnprocessedAbsence:
    id: str
    summary: str
    start_date: str
    end_date: str
    failure_reason: str


@dataclass(frozen=True)
class Campaign:
    id: str
    name: str
    start_date: str
    end_date: str
    category_id: str = ""
    manager_id: str = ""
    delivery_date: str = ""
    delivery_met: bool | None = None


@dataclass(frozen=True)
class Booking:
    id: str
    instrument_id: str
    personnel_id: str
    date: str
    slot: str
    note: str = ""


class PositionKey(NamedTuple):
    instrument_id: str
    day_of_week: int
    slot: str


class StatusKey(NamedTuple):
    personnel_id: str
    date: str
    slot: str


@dataclass(frozen=True)
class TemplateEntry:
    personnel_id: str
    note: str = ""


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    positional_bookings: dict[PositionKey, TemplateEntry] = field(default_factory=dict)


@dataclass(frozen=True)
class Snapshot:
    """Stato completo dell'applicazione; ogni modifica produce un nuovo Snapshot."""

    instruments: tuple[Instrument, ...] = ()
    instrument_categories: tuple[InstrumentCategory, ...] = ()
    personnel: tuple[Personnel, ...] = ()
    absence_types: tuple[AbsenceType, ...] = ()
    absences: tuple[Absence, ...] = ()
    unprocessed_absences: tuple[UnprocessedAbsence, ...] = ()
    campaigns: tuple[Campaign, ...] = ()
    campaign_categories: tuple[CampaignCategory, ...] = ()
    bookings: tuple[Booking, ...] = ()
    weekly_notes: dict[str, str] = field(default_factory=dict)
    status_overrides: dict[StatusKey, str] = field(default_factory=dict)
    templates: tuple[Template, ...] = ()
    app_logo: str | None = None

    def find_personnel(self, personnel_id: str) -> Personnel | None:
        return next((p for p in self.personnel if p.id == personnel_id), None)

    def find_instrument(self, instrument_id: str) -> Instrument | None:
        return next((i for i in self.instruments if i.id == instrument_id), None)

    def find_absence_type(self, type_id: str) -> AbsenceType | None:
        return next((t for t in self.absence_types if t.id == type_id), None)

    def find_template(self, template_id: str) -> Template | None:
        return next((t for t in self.templates if t.id == template_id), None)


# Le chiavi composite esistono come stringhe solo nel documento persistito.

def serialize_status_key(key: StatusKey) -> str:
    return f"{key.personnel_id}-{key.date}-{key.slot}"


def parse_status_key(raw: str) -> StatusKey:
    """``{personnelId}-{YYYY-MM-DD}-{slot}``; l'id può contenere trattini."""
    text = str(raw)
    if len(text) < 14 or text[-2] != "-" or text[-13] != "-":
        raise LoaderError(f"statusOverrides: chiave non valida {raw!r}")
    slot = text[-1]
    if slot not in SLOTS:
        raise LoaderError(f"statusOverrides: slot non valido nella chiave {raw!r}")
    return StatusKey(text[:-13], text[-12:-2], slot)


def serialize_position_key(key: PositionKey) -> str:
    return f"{key.instrument_id}-{key.day_of_week}-{key.slot}"


def parse_position_key(raw: str) -> PositionKey:
    """``{instrumentId}-{dayOfWeek}-{slot}``; l'id può contenere trattini."""
    parts = str(raw).rsplit("-", 2)
    if len(parts) != 3 or not parts[0]:
        raise LoaderError(f"positionalBookings: chiave non valida {raw!r}")
    instrument_id, raw_day, slot = parts
    try:
        day_of_week = int(raw_day)
    except ValueError as exc:
        raise LoaderError(f"positionalBookings: giorno non valido nella chiave {raw!r}") from exc
    if not 0 <= day_of_week <= 4 or slot not in SLOTS:
        raise LoaderError(f"positionalBookings: chiave fuori intervallo {raw!r}")
    return PositionKey(instrument_id, day_of_week, slot)


__all__ = [
    "Absence",
    "AbsenceType",
    "Booking",
    "Campaign",
    "CampaignCategory",
    "FIXED_ABSENCE_TYPE_ID",
    "Instrument",
    "InstrumentCategory",
    "PRESENT",
    "Personnel",
    "PositionKey",
    "RESET",
    "Snapshot",
    "StatusKey",
    "Template",
    "TemplateEntry",
    "UnprocessedAbsence",
    "VACATION_TYPE_ID",
    "parse_position_key",
    "parse_status_key",
    "serialize_position_key",
    "serialize_status_key",
]
