from __future__ import annotations

"""Conversione Snapshot <-> documento JSON, dataset iniziale ed export/import."""

import json
import logging
from typing import Any, Iterable

from .migrations import SCHEMA_VERSION, upgrade_document
from .models import (
    Absence,
    AbsenceType,
    Booking,
    Campaign,
    CampaignCategory,
    Instrument,
    InstrumentCategory,
    Personnel,
    Snapshot,
    Template,
    TemplateEntry,
    UnprocessedAbsence,
    parse_position_key,
    parse_status_key,
    serialize_position_key,
    serialize_status_key,
)
from .store import KeyValueStore
from .utils import SLOTS, LoaderError, _split_keywords


logger = logging.getLogger(__name__)


DATA_KEY = "labPlannerData"

SEED_ABSENCE_TYPES: tuple[AbsenceType, ...] = (
    AbsenceType("fuori_sede", "Fuori sede", "#ff9800"),
    AbsenceType("ferie", "Ferie", "#4caf50"),
    AbsenceType("malattia", "Malattia", "#f44336"),
    AbsenceType("telelavoro", "Telelavoro", "#2196f3"),
    AbsenceType("fisse", "Assenza Fissa", "#9e9e9e"),
)

_REQUIRED_DOCUMENT_KEYS = ("instruments", "personnel", "bookings")


class SnapshotImportError(LoaderError):
    """Documento esportato non valido."""


def seed_snapshot() -> Snapshot:
    """Dataset vuoto con i tipi di assenza predefiniti."""
    return Snapshot(absence_types=SEED_ABSENCE_TYPES)


def _records(doc: dict[str, Any], key: str) -> Iterable[dict[str, Any]]:
    raw = doc.get(key) or []
    if not isinstance(raw, list):
        raise LoaderError(f"{key}: attesa una lista di record")
    return (r for r in raw if isinstance(r, dict))


def _text(record: dict[str, Any], key: str, default: str = "") -> str:
    value = record.get(key)
    if value is None:
        return default
    return str(value)


def _number(record: dict[str, Any], key: str, default: float) -> float:
    value = record.get(key)
    if value in (None, "") or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _fixed_absences_from_doc(raw: Any) -> dict[int, dict[str, str]]:
    if not isinstance(raw, dict):
        return {}
    result: dict[int, dict[str, str]] = {}
    for key, slots in raw.items():
        try:
            day_idx = int(key)
        except (TypeError, ValueError):
            continue
        if not 0 <= day_idx <= 4 or not isinstance(slots, dict):
            continue
        cleaned = {s: str(t) for s, t in slots.items() if s in SLOTS and t}
        if cleaned:
            result[day_idx] = cleaned
    return result


def _delivery_met_from_doc(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    return None


def _template_from_doc(record: dict[str, Any]) -> Template:
    positional = {}
    raw_positional = record.get("positionalBookings") or {}
    if not isinstance(raw_positional, dict):
        logger.warning(
            "template %r: positionalBookings non è un dizionario, voci scartate", record.get("name")
        )
        raw_positional = {}
    for raw_key, value in raw_positional.items():
        if not isinstance(value, dict) or not value.get("personnelId"):
            logger.warning("template %r: voce %r senza personale scartata", record.get("name"), raw_key)
            continue
        try:
            key = parse_position_key(raw_key)
        except LoaderError as exc:
            logger.warning("template %r: %s", record.get("name"), exc)
            continue
        positional[key] = TemplateEntry(str(value["personnelId"]), _text(value, "note"))
    return Template(_text(record, "id"), _text(record, "name"), positional)


def snapshot_from_dict(doc: dict[str, Any]) -> Snapshot:
    """Costruisce uno Snapshot da un documento JSON (aggiornandone lo schema).

    Campi con un tipo inatteso sollevano ``LoaderError``, mai ``TypeError``.
    """
    if not isinstance(doc, dict):
        raise LoaderError("documento: atteso un oggetto JSON")
    try:
        return _snapshot_from_doc(upgrade_document(doc))
    except (TypeError, AttributeError) as exc:
        raise LoaderError(f"documento: campo con tipo non valido ({exc})") from exc


def _snapshot_from_doc(doc: dict[str, Any]) -> Snapshot:
    bookings = []
    for r in _records(doc, "bookings"):
        slot = _text(r, "slot")
        if slot not in SLOTS:
            logger.warning("prenotazione %r con slot non valido %r scartata", r.get("id"), slot)
            continue
        bookings.append(
            Booking(
                id=_text(r, "id"),
                instrument_id=_text(r, "instrumentId"),
                personnel_id=_text(r, "personnelId"),
                date=_text(r, "date"),
                slot=slot,
                note=_text(r, "note"),
            )
        )

    overrides = {}
    raw_overrides = doc.get("statusOverrides") or {}
    if not isinstance(raw_overrides, dict):
        raise LoaderError("statusOverrides: atteso un dizionario")
    for raw_key, value in raw_overrides.items():
        try:
            overrides[parse_status_key(raw_key)] = str(value)
        except LoaderError as exc:
            logger.warning("%s", exc)

    raw_notes = doc.get("weeklyNotes") or {}
    if not isinstance(raw_notes, dict):
        raise LoaderError("weeklyNotes: atteso un dizionario")

    absence_types = tuple(
        AbsenceType(_text(r, "id"), _text(r, "name"), _text(r, "color"))
        for r in _records(doc, "absenceTypes")
    )
    if len(absence_types) < len(SEED_ABSENCE_TYPES):
        absence_types = SEED_ABSENCE_TYPES

    return Snapshot(
        instruments=tuple(
            Instrument(
                id=_text(r, "id"),
                name=_text(r, "name"),
                category_id=_text(r, "categoryId"),
                location=_text(r, "location"),
                inventory_number=_text(r, "inventoryNumber") or _text(r, "saNumber"),
                weight=_number(r, "weight", 1.0),
            )
            for r in _records(doc, "instruments")
        ),
        instrument_categories=tuple(
            InstrumentCategory(
                _text(r, "id"), _text(r, "name"), _text(r, "icon", "science"), _text(r, "color")
            )
            for r in _records(doc, "instrumentCategories")
        ),
        personnel=tuple(
            Personnel(
                id=_text(r, "id"),
                name=_text(r, "name"),
                initials=_text(r, "initials"),
                work_percentage=_number(r, "workPercentage", 100.0),
                color=_text(r, "color", "#cccccc") or "#cccccc",
                keywords=_split_keywords(r.get("keywords")),
                fixed_absences=_fixed_absences_from_doc(r.get("fixedAbsences")),
            )
            for r in _records(doc, "personnel")
        ),
        absence_types=absence_types,
        absences=tuple(
            Absence(
                id=_text(r, "id"),
                personnel_id=_text(r, "personnelId"),
                start_date=_text(r, "startDate"),
                end_date=_text(r, "endDate"),
                type_id=_text(r, "typeId"),
                note=_text(r, "note"),
            )
            for r in _records(doc, "absences")
        ),
        unprocessed_absences=tuple(
            UnprocessedAbsence(
                id=_text(r, "id"),
                summary=_text(r, "summary"),
                start_date=_text(r, "startDate"),
                end_date=_text(r, "endDate"),
                failure_reason=_text(r, "failureReason"),
            )
            for r in _records(doc, "unprocessedAbsences")
        ),
        campaigns=tuple(
            Campaign(
                id=_text(r, "id"),
                name=_text(r, "name"),
                start_date=_text(r, "startDate"),
                end_date=_text(r, "endDate"),
                category_id=_text(r, "categoryId"),
                manager_id=_text(r, "managerId"),
                delivery_date=_text(r, "deliveryDate"),
                delivery_met=_delivery_met_from_doc(r.get("deliveryMet")),
            )
            for r in _records(doc, "campaigns")
        ),
        campaign_categories=tuple(
            CampaignCategory(
                id=_text(r, "id"),
                name=_text(r, "name"),
                icon=_text(r, "icon"),
                color=_text(r, "color"),
                keywords=_split_keywords(r.get("keywords")),
            )
            for r in _records(doc, "campaignCategories")
        ),
        bookings=tuple(bookings),
        weekly_notes={str(k): str(v) for k, v in raw_notes.items()},
        status_overrides=overrides,
        templates=tuple(_template_from_doc(r) for r in _records(doc, "templates")),
        app_logo=doc.get("appLogo") or None,
    )


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Documento JSON dello Snapshot (schema corrente, chiavi composite testuali)."""
    doc: dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "instruments": [
            {
                "id": i.id,
                "name": i.name,
                "categoryId": i.category_id,
                "location": i.location,
                "inventoryNumber": i.inventory_number,
                "weight": i.weight,
            }
            for i in snapshot.instruments
        ],
        "instrumentCategories": [
            {"id": c.id, "name": c.name, "icon": c.icon, "color": c.color}
            for c in snapshot.instrument_categories
        ],
        "personnel": [
            {
                "id": p.id,
                "name": p.name,
                "initials": p.initials,
                "workPercentage": p.work_percentage,
                "color": p.color,
                "keywords": ", ".join(p.keywords),
                "fixedAbsences": {str(day): dict(slots) for day, slots in p.fixed_absences.items()},
            }
            for p in snapshot.personnel
        ],
        "absenceTypes": [
            {"id": t.id, "name": t.name, "color": t.color} for t in snapshot.absence_types
        ],
        "absences": [
            {
                "id": a.id,
                "personnelId": a.personnel_id,
                "startDate": a.start_date,
                "endDate": a.end_date,
                "typeId": a.type_id,
                "note": a.note,
            }
            for a in snapshot.absences
        ],
        "unprocessedAbsences": [
            {
                "id": u.id,
                "summary": u.summary,
                "startDate": u.start_date,
                "endDate": u.end_date,
                "failureReason": u.failure_reason,
            }
            for u in snapshot.unprocessed_absences
        ],
        "campaigns": [],
        "campaignCategories": [
            {
                "id": c.id,
                "name": c.name,
                "icon": c.icon,
                "color": c.color,
                "keywords": ", ".join(c.keywords),
            }
            for c in snapshot.campaign_categories
        ],
        "bookings": [
            {
                "id": b.id,
                "instrumentId": b.instrument_id,
                "personnelId": b.personnel_id,
                "date": b.date,
                "slot": b.slot,
                "note": b.note,
            }
            for b in snapshot.bookings
        ],
        "weeklyNotes": dict(snapshot.weekly_notes),
        "statusOverrides": {
            serialize_status_key(key): value for key, value in snapshot.status_overrides.items()
        },
        "templates": [
            {
                "id": t.id,
                "name": t.name,
                "positionalBookings": {
                    serialize_position_key(key): {"personnelId": e.personnel_id, "note": e.note}
                    for key, e in t.positional_bookings.items()
                },
            }
            for t in snapshot.templates
        ],
    }
    for c in snapshot.campaigns:
        record: dict[str, Any] = {
            "id": c.id,
            "name": c.name,
            "startDate": c.start_date,
            "endDate": c.end_date,
            "categoryId": c.category_id,
            "managerId": c.manager_id,
            "deliveryDate": c.delivery_date,
        }
        # deliveryMet assente = non ancora valutata
        if c.delivery_met is not None:
            record["deliveryMet"] = c.delivery_met
        doc["campaigns"].append(record)
    if snapshot.app_logo:
        doc["appLogo"] = snapshot.app_logo
    return doc


def load_snapshot(store: KeyValueStore, key: str = DATA_KEY) -> Snapshot:
    """Legge lo snapshot dall'archivio; dati assenti o corrotti producono il dataset iniziale."""
    try:
        raw = store.get(key)
    except (OSError, ValueError) as exc:
        logger.warning("archivio illeggibile (%s): uso il dataset iniziale", exc)
        return seed_snapshot()
    if raw is None:
        return seed_snapshot()
    try:
        return snapshot_from_dict(json.loads(raw))
    except (ValueError, LoaderError) as exc:
        logger.warning("dati persistiti corrotti in %r (%s): uso il dataset iniziale", key, exc)
        return seed_snapshot()


def save_snapshot(store: KeyValueStore, snapshot: Snapshot, key: str = DATA_KEY) -> None:
    store.set(key, json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False))


def export_document(snapshot: Snapshot) -> str:
    """Documento autonomo con l'intero snapshot."""
    return json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False, indent=2)


def import_document(text: str) -> Snapshot:
    """Valida un documento esportato e lo converte nello Snapshot che lo sostituirà."""
    try:
        doc = json.loads(text)
    except ValueError as exc:
        raise SnapshotImportError(f"documento non è JSON valido: {exc}") from exc
    if not isinstance(doc, dict):
        raise SnapshotImportError("documento: atteso un oggetto JSON")
    missing = [k for k in _REQUIRED_DOCUMENT_KEYS if not isinstance(doc.get(k), list)]
    if missing:
        raise SnapshotImportError(f"documento: collezioni mancanti {missing}")
    try:
        return snapshot_from_dict(doc)
    except LoaderError as exc:
        raise SnapshotImportError(str(exc)) from exc
