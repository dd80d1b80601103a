from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from labdata.models import (
    Absence,
    Booking,
    Campaign,
    CampaignCategory,
    Instrument,
    InstrumentCategory,
    Personnel,
    PositionKey,
    Snapshot,
    StatusKey,
    Template,
    TemplateEntry,
    UnprocessedAbsence,
    parse_position_key,
    parse_status_key,
)
from labdata.snapshot import (
    SEED_ABSENCE_TYPES,
    SnapshotImportError,
    export_document,
    import_document,
    load_snapshot,
    save_snapshot,
    seed_snapshot,
    snapshot_from_dict,
    snapshot_to_dict,
)
from labdata.store import JsonFileStore, MemoryStore
from labdata.utils import LoaderError


def _make_full_snapshot() -> Snapshot:
    return Snapshot(
        instruments=(Instrument("hplc-1", "HPLC", "cat-1", "Lab 2", "SA-001", 2.5),),
        instrument_categories=(InstrumentCategory("cat-1", "Cromatografia", "science", "#123456"),),
        personnel=(
            Personnel(
                "p-1",
                "Mario Rossi",
                "MR",
                80.0,
                "#ff0000",
                ("rossi", "mario"),
                {0: {"M": "fisse"}, 3: {"M": "fisse", "P": "telelavoro"}},
            ),
        ),
        absence_types=SEED_ABSENCE_TYPES,
        absences=(Absence("a1", "p-1", "2024-01-02", "2024-01-03", "ferie", "montagna"),),
        unprocessed_absences=(UnprocessedAbsence("u1", "Ferie ZZ", "2024-01-04", "2024-01-04", "motivo"),),
        campaigns=(
            Campaign("c1", "Acque", "2024-01-01", "2024-01-05", "cc-1", "p-1", "2024-01-19", True),
            Campaign("c2", "Suoli", "2024-01-01", "2024-01-05", "", "", "2024-01-19"),
        ),
        campaign_categories=(CampaignCategory("cc-1", "Ambiente", "water", "#00f", ("acque",)),),
        bookings=(Booking("b1", "hplc-1", "p-1", "2024-01-01", "M", "nota"),),
        weekly_notes={"2024-W1": "Inventario"},
        status_overrides={
            StatusKey("p-1", "2024-01-01", "M"): "present",
            StatusKey("p-1", "2024-01-05", "P"): "malattia",
        },
        templates=(
            Template("t1", "Tipo", {PositionKey("hplc-1", 2, "P"): TemplateEntry("p-1", "x")}),
        ),
        app_logo="data:image/png;base64,AAAA",
    )


def test_round_trip_through_document() -> None:
    snap = _make_full_snapshot()
    doc = json.loads(json.dumps(snapshot_to_dict(snap)))
    assert doc["schemaVersion"] == 2
    assert "deliveryMet" not in doc["campaigns"][1]
    assert doc["statusOverrides"]["p-1-2024-01-01-M"] == "present"
    assert "hplc-1-2-P" in doc["templates"][0]["positionalBookings"]
    assert snapshot_from_dict(doc) == snap


def test_export_import_round_trip() -> None:
    snap = _make_full_snapshot()
    assert import_document(export_document(snap)) == snap


@pytest.mark.parametrize(
    "text",
    [
        "non json",
        "[1, 2]",
        json.dumps({"instruments": [], "personnel": []}),
        json.dumps({"instruments": [], "personnel": {}, "bookings": []}),
        json.dumps({"instruments": [], "personnel": [], "bookings": [], "schemaVersion": 99}),
    ],
)
def test_import_document_rejects_invalid(text: str) -> None:
    with pytest.raises(SnapshotImportError):
        import_document(text)


def test_minimal_import_gets_seed_types() -> None:
    snap = import_document(json.dumps({"instruments": [], "personnel": [], "bookings": []}))
    assert snap.absence_types == SEED_ABSENCE_TYPES
    assert snap.templates == ()


def test_load_missing_key_returns_seed() -> None:
    assert load_snapshot(MemoryStore()) == seed_snapshot()


def test_load_corrupt_data_returns_seed(caplog: pytest.LogCaptureFixture) -> None:
    store = MemoryStore({"labPlannerData": "{rotto"})
    with caplog.at_level(logging.WARNING, logger="labdata.snapshot"):
        snap = load_snapshot(store)
    assert snap == seed_snapshot()
    assert "corrotti" in caplog.text


def test_load_corrupt_file_store_returns_seed(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "store.json"
    path.write_text("{non valido", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="labdata.snapshot"):
        snap = load_snapshot(JsonFileStore(str(path)))
    assert snap == seed_snapshot()
    assert "illeggibile" in caplog.text


def test_save_and_load_with_file_store(tmp_path: Path) -> None:
    store = JsonFileStore(str(tmp_path / "nested" / "store.json"))
    snap = _make_full_snapshot()
    save_snapshot(store, snap)
    assert load_snapshot(JsonFileStore(str(tmp_path / "nested" / "store.json"))) == snap


def test_invalid_records_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    doc = snapshot_to_dict(_make_full_snapshot())
    doc["bookings"].append({"id": "bad", "instrumentId": "hplc-1", "personnelId": "p-1", "date": "2024-01-01", "slot": "X"})
    doc["statusOverrides"]["chiave-rotta"] = "present"
    with caplog.at_level(logging.WARNING, logger="labdata.snapshot"):
        snap = snapshot_from_dict(doc)
    assert [b.id for b in snap.bookings] == ["b1"]
    assert len(snap.status_overrides) == 2
    assert "bad" in caplog.text


def test_status_key_with_hyphenated_personnel_id() -> None:
    key = parse_status_key("lab-tech-07-2024-03-05-P")
    assert key == StatusKey("lab-tech-07", "2024-03-05", "P")
    with pytest.raises(LoaderError):
        parse_status_key("p1-2024-03-05-X")
    with pytest.raises(LoaderError):
        parse_status_key("corta")


def test_position_key_parsing() -> None:
    assert parse_position_key("gc-ms-2-4-M") == PositionKey("gc-ms-2", 4, "M")
    for raw in ("gc-5-M", "gc-x-M", "-1-M", "gc"):
        with pytest.raises(LoaderError):
            parse_position_key(raw)


def test_legacy_sa_number_and_string_keywords() -> None:
    doc = {
        "schemaVersion": 2,
        "instruments": [{"id": "i1", "name": "Bilancia", "saNumber": "SA-9"}],
        "personnel": [{"id": "p1", "name": "Ada", "keywords": " Ada, LOVELACE ,ada,"}],
        "bookings": [],
    }
    snap = snapshot_from_dict(doc)
    assert snap.instruments[0].inventory_number == "SA-9"
    assert snap.instruments[0].weight == 1.0
    assert snap.personnel[0].keywords == ("ada", "lovelace")


def test_wrong_typed_keywords_are_ignored() -> None:
    store = MemoryStore(
        {"labPlannerData": json.dumps({"schemaVersion": 2, "personnel": [{"id": "p", "keywords": 5}]})}
    )
    snap = load_snapshot(store)
    assert snap.personnel[0].id == "p"
    assert snap.personnel[0].keywords == ()


def test_positional_bookings_list_is_discarded(caplog: pytest.LogCaptureFixture) -> None:
    doc = {
        "schemaVersion": 2,
        "instruments": [],
        "personnel": [],
        "bookings": [],
        "templates": [{"id": "t1", "name": "Tipo", "positionalBookings": [1, 2]}],
    }
    with caplog.at_level(logging.WARNING, logger="labdata.snapshot"):
        snap = snapshot_from_dict(doc)
    assert snap.templates == (Template("t1", "Tipo", {}),)
    assert "positionalBookings" in caplog.text


def test_legacy_template_with_list_positional_bookings(caplog: pytest.LogCaptureFixture) -> None:
    doc = {
        "schemaVersion": 1,
        "instruments": [],
        "personnel": [],
        "bookings": [],
        "templates": [{"id": "t1", "name": "Tipo", "positionalBookings": ["x"], "bookings": "x"}],
    }
    with caplog.at_level(logging.WARNING, logger="labdata.migrations"):
        snap = snapshot_from_dict(doc)
    assert snap.templates == (Template("t1", "Tipo", {}),)
    assert "non è una lista" in caplog.text


def test_wrong_typed_collection_raises_loader_error() -> None:
    doc = {
        "schemaVersion": 0,
        "instruments": [{"id": "i1", "name": "Bilancia", "category": "Pesate"}],
        "instrumentCategories": 5,
        "personnel": [],
        "bookings": [],
    }
    with pytest.raises(LoaderError):
        snapshot_from_dict(doc)
    with pytest.raises(SnapshotImportError):
        import_document(json.dumps(doc))


def test_load_wrong_typed_collection_returns_seed(caplog: pytest.LogCaptureFixture) -> None:
    doc = {
        "schemaVersion": 0,
        "instruments": [{"id": "i1", "name": "Bilancia", "category": "Pesate"}],
        "instrumentCategories": 5,
    }
    store = MemoryStore({"labPlannerData": json.dumps(doc)})
    with caplog.at_level(logging.WARNING, logger="labdata.snapshot"):
        snap = load_snapshot(store)
    assert snap == seed_snapshot()
    assert "corrotti" in caplog.text
