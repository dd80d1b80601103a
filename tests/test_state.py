from __future__ import annotations

import json
import threading
from dataclasses import replace

from labdata.models import Booking, Instrument, Personnel
from labdata.share import encode_share_link
from labdata.snapshot import export_document, load_snapshot, seed_snapshot
from labdata.store import MemoryStore
from planner.bookings import upsert_booking
from planner.state import PlannerState


def _add_booking(booking: Booking):
    return lambda s: replace(s, bookings=upsert_booking(s.bookings, booking))


def test_update_persists_to_store() -> None:
    store = MemoryStore()
    state = PlannerState.from_store(store)
    assert state.snapshot == seed_snapshot()

    state.update(_add_booking(Booking("b1", "i1", "p1", "2024-01-01", "M")))
    assert [b.id for b in load_snapshot(store).bookings] == ["b1"]
    assert [b.id for b in PlannerState.from_store(store).snapshot.bookings] == ["b1"]


def test_readonly_state_is_never_persisted() -> None:
    store = MemoryStore()
    state = PlannerState(store, seed_snapshot(), readonly=True)
    state.update(_add_booking(Booking("b1", "i1", "p1", "2024-01-01", "M")))
    assert len(state.snapshot.bookings) == 1
    assert store.get("labPlannerData") is None


def test_from_share_link_is_readonly() -> None:
    snap = replace(seed_snapshot(), instruments=(Instrument("i1", "HPLC"),))
    state = PlannerState.from_share_link(encode_share_link(snap, "http://h/"))
    assert state.readonly
    assert state.snapshot == snap


def test_replace_from_document() -> None:
    store = MemoryStore()
    state = PlannerState.from_store(store)
    assert not state.replace_from_document('{"instruments": []}')
    assert state.snapshot == seed_snapshot()

    incoming = replace(seed_snapshot(), personnel=(Personnel("p1", "Ada"),))
    assert state.replace_from_document(export_document(incoming))
    assert state.snapshot == incoming
    assert load_snapshot(store) == incoming
    assert state.export() == export_document(incoming)


def test_replace_from_document_with_wrong_typed_fields() -> None:
    store = MemoryStore()
    state = PlannerState.from_store(store)
    broken = {
        "schemaVersion": 0,
        "instruments": [{"id": "i1", "name": "Bilancia", "category": "Pesate"}],
        "instrumentCategories": 5,
        "personnel": [],
        "bookings": [],
    }
    assert not state.replace_from_document(json.dumps(broken))
    assert state.snapshot == seed_snapshot()

    odd = {
        "schemaVersion": 2,
        "instruments": [],
        "personnel": [{"id": "p1", "name": "Ada", "keywords": 5}],
        "bookings": [],
    }
    assert state.replace_from_document(json.dumps(odd))
    assert state.snapshot.personnel[0].keywords == ()


def test_concurrent_updates_are_not_lost() -> None:
    state = PlannerState(MemoryStore(), seed_snapshot())

    def _worker(worker: int) -> None:
        for i in range(25):
            booking = Booking(f"b{worker}-{i}", f"i{worker}", "p1", f"2024-02-{i + 1:02d}", "M")
            state.update(_add_booking(booking))

    threads = [threading.Thread(target=_worker, args=(w,)) for w in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(state.snapshot.bookings) == 100
