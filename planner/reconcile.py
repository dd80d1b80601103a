from __future__ import annotations

"""Riconciliazione degli eventi ICS con anagrafica e categorie.

Gli eventi abbinati diventano record definitivi; quelli non abbinati finiscono
nella coda delle assenze non elaborate, rielaborabile dopo aver corretto le
sigle del personale.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from labdata.calendar import add_working_days
from labdata.models import VACATION_TYPE_ID, Absence, Campaign, Snapshot, UnprocessedAbsence

from .ics import CalendarEvent
from .matching import match_entity_by_initials, match_entity_by_keywords


logger = logging.getLogger(__name__)


DEFAULT_FAILURE_REASON = "Nessuna sigla trovata nel testo."
DEFAULT_REPROCESS_FAILURE_REASON = "Sigla non trovata nel testo."
DEFAULT_DELIVERY_OFFSET_WORKING_DAYS = 10


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class AbsenceImportResult:
    committed: tuple[Absence, ...]
    unprocessed: tuple[UnprocessedAbsence, ...]


@dataclass(frozen=True)
class ReprocessResult:
    newly_committed: tuple[Absence, ...]
    still_unprocessed: tuple[UnprocessedAbsence, ...]


def import_absences(
    snapshot: Snapshot,
    events: Iterable[CalendarEvent],
    *,
    type_id: str = VACATION_TYPE_ID,
    failure_reason: str = DEFAULT_FAILURE_REASON,
    id_factory: Callable[[], str] = _new_id,
) -> AbsenceImportResult:
    """Abbina ogni evento a una persona tramite sigla.

    Solleva ``LookupError`` se il tipo di assenza ``type_id`` non esiste:
    in quel caso nulla viene importato.
    """
    if snapshot.find_absence_type(type_id) is None:
        raise LookupError(f"Tipo di assenza {type_id!r} non trovato. Impossibile importare.")

    committed = []
    unprocessed = []
    for event in events:
        person = match_entity_by_initials(event.summary, snapshot.personnel)
        if person is not None:
            committed.append(
                Absence(
                    id=id_factory(),
                    personnel_id=person.id,
                    start_date=event.start_date,
                    end_date=event.end_date,
                    type_id=type_id,
                    note=event.summary,
                )
            )
        else:
            unprocessed.append(
                UnprocessedAbsence(
                    id=id_factory(),
                    summary=event.summary,
                    start_date=event.start_date,
                    end_date=event.end_date,
                    failure_reason=failure_reason,
                )
            )

    logger.info(
        "import assenze: %d importate, %d non elaborate", len(committed), len(unprocessed)
    )
    return AbsenceImportResult(tuple(committed), tuple(unprocessed))


def apply_absence_import(snapshot: Snapshot, result: AbsenceImportResult) -> Snapshot:
    return replace(
        snapshot,
        absences=snapshot.absences + result.committed,
        unprocessed_absences=snapshot.unprocessed_absences + result.unprocessed,
    )


def reprocess_unprocessed(
    snapshot: Snapshot,
    *,
    type_id: str = VACATION_TYPE_ID,
    failure_reason: str = DEFAULT_REPROCESS_FAILURE_REASON,
    id_factory: Callable[[], str] = _new_id,
) -> ReprocessResult:
    """Riesegue l'abbinamento della coda sull'anagrafica corrente."""
    queue = snapshot.unprocessed_absences
    if snapshot.find_absence_type(type_id) is None:
        logger.warning("rielaborazione: tipo di assenza %r non trovato, coda invariata", type_id)
        return ReprocessResult((), queue)

    newly_committed = []
    still_unprocessed = []
    for item in queue:
        person = match_entity_by_initials(item.summary, snapshot.personnel)
        if person is None:
            still_unprocessed.append(replace(item, failure_reason=failure_reason))
            continue
        newly_committed.append(
            Absence(
                id=id_factory(),
                personnel_id=person.id,
                start_date=item.start_date,
                end_date=item.end_date,
                type_id=type_id,
                note=item.summary,
            )
        )

    logger.info(
        "rielaborazione: %d assenze importate, %d ancora non elaborate",
        len(newly_committed),
        len(still_unprocessed),
    )
    return ReprocessResult(tuple(newly_committed), tuple(still_unprocessed))


def apply_reprocess(snapshot: Snapshot, result: ReprocessResult) -> Snapshot:
    return replace(
        snapshot,
        absences=snapshot.absences + result.newly_committed,
        unprocessed_absences=result.still_unprocessed,
    )


def discard_unprocessed(snapshot: Snapshot, unprocessed_id: str) -> Snapshot:
    return replace(
        snapshot,
        unprocessed_absences=tuple(
            u for u in snapshot.unprocessed_absences if u.id != unprocessed_id
        ),
    )


def import_campaigns(
    snapshot: Snapshot,
    events: Iterable[CalendarEvent],
    *,
    delivery_offset_working_days: int = DEFAULT_DELIVERY_OFFSET_WORKING_DAYS,
    id_factory: Callable[[], str] = _new_id,
) -> tuple[Campaign, ...]:
    """Una campagna per evento; categoria e responsabile restano vuoti se non abbinati."""
    campaigns = []
    for event in events:
        category = match_entity_by_keywords(event.summary, snapshot.campaign_categories)
        manager = match_entity_by_keywords(event.summary, snapshot.personnel)
        campaigns.append(
            Campaign(
                id=id_factory(),
                name=event.summary,
                start_date=event.start_date,
                end_date=event.end_date,
                category_id=category.id if category is not None else "",
                manager_id=manager.id if manager is not None else "",
                delivery_date=add_working_days(event.end_date, delivery_offset_working_days),
            )
        )

    unassigned = sum(1 for c in campaigns if not c.category_id)
    logger.info(
        "import campagne: %d importate, %d senza categoria", len(campaigns), unassigned
    )
    return tuple(campaigns)


def add_campaigns(snapshot: Snapshot, campaigns: Iterable[Campaign]) -> Snapshot:
    return replace(snapshot, campaigns=snapshot.campaigns + tuple(campaigns))
