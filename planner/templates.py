from __future__ import annotations

"""Template settimanali posizionali: cattura di una settimana e riapplicazione.

Un template indirizza le prenotazioni per (strumento, giorno 0-4, slot), così
può essere riapplicato a qualsiasi settimana.
"""

import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Iterable, Sequence

from labdata.calendar import add_days, format_date
from labdata.migrations import convert_legacy_template
from labdata.models import Booking, PositionKey, Snapshot, Template, TemplateEntry
from labdata.snapshot import _template_from_doc
from labdata.utils import _ensure_date

from .bookings import new_booking_id


logger = logging.getLogger(__name__)


class TemplateError(ValueError):
    """Template o settimana di destinazione non validi."""


def capture_template(
    bookings: Iterable[Booking],
    week_dates: Sequence[date | str],
    name: str,
    template_id: str | None = None,
) -> Template:
    """Cattura le prenotazioni dei cinque giorni ``week_dates`` in un template."""
    day_strings = [format_date(d) for d in week_dates]
    if len(day_strings) != 5:
        raise TemplateError(f"attesi 5 giorni lavorativi, trovati {len(day_strings)}")
    day_index = {d: i for i, d in enumerate(day_strings)}

    positional: dict[PositionKey, TemplateEntry] = {}
    for b in bookings:
        if b.date not in day_index:
            continue
        key = PositionKey(b.instrument_id, day_index[b.date], b.slot)
        positional[key] = TemplateEntry(b.personnel_id, b.note)

    return Template(
        id=template_id or uuid.uuid4().hex,
        name=name,
        positional_bookings=positional,
    )


def apply_template(
    snapshot: Snapshot,
    template: Template,
    week_start: date | str,
    id_factory: Callable[[], str] = new_booking_id,
) -> tuple[Booking, ...]:
    """Sostituisce tutte le prenotazioni della settimana con quelle del template.

    Operazione distruttiva: la conferma spetta al chiamante.
    """
    start = _ensure_date(week_start)
    if start.weekday() != 0:
        raise TemplateError(f"la settimana deve iniziare di lunedì (trovato {start.isoformat()})")
    week = {format_date(add_days(start, i)) for i in range(5)}

    kept = tuple(b for b in snapshot.bookings if b.date not in week)
    generated = []
    for key, entry in template.positional_bookings.items():
        if not 0 <= key.day_of_week <= 4:
            raise TemplateError(f"template {template.name!r}: giorno fuori intervallo {key}")
        generated.append(
            Booking(
                id=id_factory(),
                instrument_id=key.instrument_id,
                personnel_id=entry.personnel_id,
                date=format_date(add_days(start, key.day_of_week)),
                slot=key.slot,
                note=entry.note,
            )
        )

    logger.info(
        "template %r applicato alla settimana del %s: %d prenotazioni sostituite da %d",
        template.name,
        start.isoformat(),
        len(snapshot.bookings) - len(kept),
        len(generated),
    )
    return kept + tuple(generated)


def upgrade_legacy_template(raw: dict[str, Any]) -> Template:
    """Converte un template storico (lista ``bookings`` con ``dayOfWeek``) in forma posizionale."""
    return _template_from_doc(convert_legacy_template(raw))


def upsert_template(snapshot: Snapshot, template: Template) -> Snapshot:
    others = tuple(t for t in snapshot.templates if t.id != template.id)
    return replace(snapshot, templates=others + (template,))


def delete_template(snapshot: Snapshot, template_id: str) -> Snapshot:
    return replace(snapshot, templates=tuple(t for t in snapshot.templates if t.id != template_id))
