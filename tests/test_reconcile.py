from __future__ import annotations

import itertools
from dataclasses import replace

import pytest

from labdata.models import CampaignCategory, Personnel, Snapshot, UnprocessedAbsence
from labdata.snapshot import SEED_ABSENCE_TYPES
from planner.ics import CalendarEvent
from planner.reconcile import (
    apply_absence_import,
    apply_reprocess,
    discard_unprocessed,
    import_absences,
    import_campaigns,
    add_campaigns,
    reprocess_unprocessed,
)


def _ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def _make_snapshot(**overrides) -> Snapshot:
    base = Snapshot(
        personnel=(
            Personnel("p-mr", "Mario Rossi", initials="MR", keywords=("rossi",)),
            Personnel("p-gb", "Giulia Bianchi", initials="GB", keywords=("bianchi",)),
        ),
        absence_types=SEED_ABSENCE_TYPES,
        campaign_categories=(
            CampaignCategory("c-acq", "Acque", keywords=("acque", "potabili")),
        ),
    )
    return replace(base, **overrides)


def test_import_splits_committed_and_unprocessed() -> None:
    events = [
        CalendarEvent("[MR] Ferie", "2024-01-01", "2024-01-02"),
        CalendarEvent("Riunione generale", "2024-01-03", "2024-01-03"),
    ]
    result = import_absences(_make_snapshot(), events, id_factory=_ids())

    assert len(result.committed) == 1
    absence = result.committed[0]
    assert (absence.personnel_id, absence.type_id, absence.note) == ("p-mr", "ferie", "[MR] Ferie")
    assert (absence.start_date, absence.end_date) == ("2024-01-01", "2024-01-02")

    assert result.unprocessed == (
        UnprocessedAbsence(
            "id-2", "Riunione generale", "2024-01-03", "2024-01-03", "Nessuna sigla trovata nel testo."
        ),
    )

    snap = apply_absence_import(_make_snapshot(), result)
    assert len(snap.absences) == 1
    assert len(snap.unprocessed_absences) == 1


def test_import_requires_default_type() -> None:
    snap = _make_snapshot(absence_types=tuple(t for t in SEED_ABSENCE_TYPES if t.id != "ferie"))
    with pytest.raises(LookupError):
        import_absences(snap, [CalendarEvent("[MR] Ferie", "2024-01-01", "2024-01-01")])


def test_reprocess_after_fixing_initials() -> None:
    queue = (UnprocessedAbsence("u1", "Ferie ZZ", "2024-02-01", "2024-02-02", "vecchio motivo"),)
    snap = _make_snapshot(unprocessed_absences=queue)

    result = reprocess_unprocessed(snap, id_factory=_ids())
    assert result.newly_committed == ()
    assert result.still_unprocessed[0].failure_reason == "Sigla non trovata nel testo."

    fixed = replace(snap, personnel=snap.personnel + (Personnel("p-zz", "Zeno Zeta", initials="ZZ"),))
    result = reprocess_unprocessed(fixed, id_factory=_ids())
    assert [a.personnel_id for a in result.newly_committed] == ["p-zz"]
    assert result.still_unprocessed == ()

    fixed = apply_reprocess(fixed, result)
    assert fixed.unprocessed_absences == ()
    assert fixed.absences[-1].note == "Ferie ZZ"


def test_reprocess_is_idempotent() -> None:
    queue = (
        UnprocessedAbsence("u1", "Ferie GB", "2024-02-01", "2024-02-01", "x"),
        UnprocessedAbsence("u2", "Sconosciuto", "2024-02-01", "2024-02-01", "x"),
    )
    snap = _make_snapshot(unprocessed_absences=queue)
    first = reprocess_unprocessed(snap)
    snap = apply_reprocess(snap, first)
    second = reprocess_unprocessed(snap)
    assert len(first.newly_committed) == 1
    assert second.newly_committed == ()
    assert [u.id for u in apply_reprocess(snap, second).unprocessed_absences] == ["u2"]


def test_reprocess_without_default_type_leaves_queue() -> None:
    queue = (UnprocessedAbsence("u1", "Ferie GB", "2024-02-01", "2024-02-01", "x"),)
    snap = _make_snapshot(absence_types=(), unprocessed_absences=queue)
    result = reprocess_unprocessed(snap)
    assert result.newly_committed == ()
    assert result.still_unprocessed == queue


def test_discard_unprocessed() -> None:
    queue = (
        UnprocessedAbsence("u1", "a", "2024-02-01", "2024-02-01", "x"),
        UnprocessedAbsence("u2", "b", "2024-02-01", "2024-02-01", "x"),
    )
    snap = discard_unprocessed(_make_snapshot(unprocessed_absences=queue), "u1")
    assert [u.id for u in snap.unprocessed_absences] == ["u2"]


def test_import_campaigns_matches_keywords_and_delivery_date() -> None:
    events = [
        CalendarEvent("Campionamento acque Rossi", "2024-01-01", "2024-01-05"),
        CalendarEvent("Audit interno", "2024-03-01", "2024-03-01"),
    ]
    campaigns = import_campaigns(_make_snapshot(), events, id_factory=_ids())

    first, second = campaigns
    assert (first.category_id, first.manager_id) == ("c-acq", "p-mr")
    assert first.delivery_date == "2024-01-19"
    assert first.delivery_met is None
    assert (second.category_id, second.manager_id) == ("", "")
    # 2024-03-01 è venerdì
    assert second.delivery_date == "2024-03-15"

    snap = add_campaigns(_make_snapshot(), campaigns)
    assert [c.name for c in snap.campaigns] == ["Campionamento acque Rossi", "Audit interno"]


def test_import_campaigns_custom_offset() -> None:
    events = [CalendarEvent("Acque", "2024-01-05", "2024-01-05")]
    (campaign,) = import_campaigns(_make_snapshot(), events, delivery_offset_working_days=1)
    assert campaign.delivery_date == "2024-01-08"
