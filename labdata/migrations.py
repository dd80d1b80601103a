from __future__ import annotations

"""Catena lineare di aggiornamenti dello schema del documento persistito.

Ogni passo è una funzione pura ``dict -> dict`` che porta il documento dalla
versione N alla N+1. I documenti privi di ``schemaVersion`` sono versione 0.
"""

import copy
import logging
from typing import Any, Callable

from .utils import LoaderError


logger = logging.getLogger(__name__)


SCHEMA_VERSION = 2

_EMOJI_TO_MATERIAL = {
    "\U0001f9ea": "science",
    "\U0001f52c": "biotech",
    "\U0001f4bb": "computer",
    "\U0001f321\ufe0f": "thermometer",
    "\u2696\ufe0f": "scale",
    "\U0001f4c8": "monitoring",
    "\U0001f4e6": "package",
}

_UNCATEGORIZED_NAME = "Senza Categoria"


def detect_schema_version(doc: dict[str, Any]) -> int:
    raw = doc.get("schemaVersion", 0)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise LoaderError(f"schemaVersion non valido: {raw!r}")
    return raw


def _migrate_instrument_categories(doc: dict[str, Any]) -> None:
    instruments = doc.get("instruments") or []
    if not any(isinstance(i, dict) and "category" in i for i in instruments):
        return

    categories: dict[str, dict[str, Any]] = {}
    for cat in doc.get("instrumentCategories") or []:
        if isinstance(cat, dict) and cat.get("name"):
            categories.setdefault(cat["name"], cat)
    used_ids = {str(cat.get("id")) for cat in categories.values()}

    for inst in instruments:
        if not isinstance(inst, dict) or "category" not in inst:
            continue
        name = str(inst.get("category") or "").strip() or _UNCATEGORIZED_NAME
        if name not in categories:
            n = len(categories)
            new_id = f"cat-legacy-{n}"
            while new_id in used_ids:
                n += 1
                new_id = f"cat-legacy-{n}"
            used_ids.add(new_id)
            raw_icon = inst.get("icon") or ""
            categories[name] = {
                "id": new_id,
                "name": name,
                "icon": _EMOJI_TO_MATERIAL.get(raw_icon, raw_icon or "science"),
            }
        inst["categoryId"] = categories[name]["id"]
        inst.pop("category", None)
        inst.pop("icon", None)

    doc["instrumentCategories"] = list(categories.values())
    logger.warning(
        "schema v0: categorie strumento testuali convertite in %d categorie",
        len(categories),
    )


def _migrate_fixed_absences(raw: Any) -> dict[str, dict[str, str]]:
    if isinstance(raw, list):
        migrated: dict[str, dict[str, str]] = {}
        for day in raw:
            try:
                day_idx = int(day)
            except (TypeError, ValueError):
                continue
            if 0 <= day_idx <= 4:
                migrated[str(day_idx)] = {"M": "fisse", "P": "fisse"}
        return migrated
    if not isinstance(raw, dict):
        return {}
    cleaned: dict[str, dict[str, str]] = {}
    for key, slots in raw.items():
        try:
            day_idx = int(key)
        except (TypeError, ValueError):
            continue
        if not 0 <= day_idx <= 4 or not isinstance(slots, dict):
            continue
        cleaned[str(day_idx)] = {
            slot: str(type_id) for slot, type_id in slots.items() if slot in ("M", "P") and type_id
        }
    return cleaned


def _upgrade_v0_to_v1(doc: dict[str, Any]) -> dict[str, Any]:
    """Normalizza le forme storiche di strumenti, personale e assenze."""
    out = copy.deepcopy(doc)

    _migrate_instrument_categories(out)

    personnel = []
    for p in out.get("personnel") or []:
        if not isinstance(p, dict):
            continue
        person = dict(p)
        person["initials"] = person.get("initials") or ""
        person["color"] = person.get("color") or "#cccccc"
        if person.get("workPercentage") in (None, ""):
            person["workPercentage"] = 100
        person["keywords"] = person.get("keywords") or ""
        person["fixedAbsences"] = _migrate_fixed_absences(person.get("fixedAbsences"))
        personnel.append(person)
    out["personnel"] = personnel

    absences = []
    for a in out.get("absences") or []:
        if not isinstance(a, dict):
            continue
        absence = dict(a)
        reason = absence.pop("reason", None)
        if not absence.get("typeId"):
            absence["typeId"] = "malattia" if reason else "ferie"
        absence["note"] = absence.get("note") or reason or ""
        absences.append(absence)
    out["absences"] = absences

    out["instruments"] = [
        {**i, "categoryId": i.get("categoryId") or ""}
        for i in out.get("instruments") or []
        if isinstance(i, dict)
    ]
    out["campaigns"] = [
        {**c, "categoryId": c.get("categoryId") or ""}
        for c in out.get("campaigns") or []
        if isinstance(c, dict)
    ]
    for key in ("unprocessedAbsences", "templates", "bookings", "campaignCategories", "instrumentCategories"):
        if not isinstance(out.get(key), list):
            out[key] = []
    for key in ("statusOverrides", "weeklyNotes"):
        if not isinstance(out.get(key), dict):
            out[key] = {}

    out["schemaVersion"] = 1
    return out


def _legacy_template_entry(entry: Any) -> tuple[str, dict[str, str]] | None:
    if not isinstance(entry, dict):
        return None
    instrument_id = entry.get("instrumentId")
    personnel_id = entry.get("personnelId")
    day = entry.get("dayOfWeek")
    slot = entry.get("slot")
    if not instrument_id or not personnel_id or slot not in ("M", "P"):
        return None
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 4:
        return None
    key = f"{instrument_id}-{day}-{slot}"
    return key, {"personnelId": str(personnel_id), "note": entry.get("note") or ""}


def convert_legacy_template(template: dict[str, Any]) -> dict[str, Any]:
    """Converte un template ``bookings: [...]`` nella forma ``positionalBookings``."""
    if "positionalBookings" in template and "bookings" not in template:
        return dict(template)

    raw_positional = template.get("positionalBookings") or {}
    if not isinstance(raw_positional, dict):
        logger.warning(
            "template %r: positionalBookings non è un dizionario, voci scartate", template.get("name")
        )
        raw_positional = {}
    positional: dict[str, dict[str, str]] = dict(raw_positional)
    legacy = template.get("bookings") or []
    if not isinstance(legacy, list):
        logger.warning("template %r: bookings non è una lista, voci scartate", template.get("name"))
        legacy = []
    dropped = 0
    for entry in legacy:
        converted = _legacy_template_entry(entry)
        if converted is None:
            dropped += 1
            continue
        key, value = converted
        positional[key] = value

    if dropped:
        logger.warning(
            "template %r: %d prenotazioni storiche scartate per campi mancanti",
            template.get("name"),
            dropped,
        )

    out = {k: v for k, v in template.items() if k != "bookings"}
    out["positionalBookings"] = positional
    return out


def _upgrade_v1_to_v2(doc: dict[str, Any]) -> dict[str, Any]:
    """Porta i template nella forma posizionale."""
    out = copy.deepcopy(doc)
    out["templates"] = [
        convert_legacy_template(t) for t in out.get("templates") or [] if isinstance(t, dict)
    ]
    out["schemaVersion"] = 2
    return out


UPGRADES: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    0: _upgrade_v0_to_v1,
    1: _upgrade_v1_to_v2,
}


def upgrade_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Applica in sequenza gli aggiornamenti fino a ``SCHEMA_VERSION``."""
    version = detect_schema_version(doc)
    if version > SCHEMA_VERSION:
        raise LoaderError(
            f"schemaVersion {version} più recente di quella supportata ({SCHEMA_VERSION})"
        )
    out = doc
    while version < SCHEMA_VERSION:
        out = UPGRADES[version](out)
        logger.info("documento aggiornato dallo schema v%d a v%d", version, version + 1)
        version += 1
    return out
