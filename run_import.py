"""Importa un calendario ICS (assenze o campagne) nello snapshot persistito."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from labdata import load_all, save_snapshot
from planner.ics import events_to_frame, parse_calendar_text
from planner.reconcile import (
    add_campaigns,
    apply_absence_import,
    apply_reprocess,
    import_absences,
    import_campaigns,
    reprocess_unprocessed,
)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Importa eventi ICS come assenze o campagne, oppure rielabora la coda."
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Percorso al file di configurazione YAML (default: config.yaml).",
    )
    parser.add_argument(
        "kind",
        choices=["absences", "campaigns", "reprocess"],
        help="Tipo di import (reprocess rielabora le assenze non elaborate).",
    )
    parser.add_argument("ics", nargs="?", help="File .ics da importare.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Mostra gli eventi letti senza modificare i dati.",
    )
    args = parser.parse_args()

    data = load_all(args.config)
    logging.basicConfig(level=data.cfg["logging"]["level"])
    import_cfg = data.cfg["import"]
    snapshot = data.snapshot

    if args.kind == "reprocess":
        result = reprocess_unprocessed(
            snapshot,
            type_id=import_cfg["default_absence_type"],
            failure_reason=import_cfg["reprocess_failure_reason"],
        )
        print(f"Assenze importate: {len(result.newly_committed)}")
        print(f"Ancora non elaborate: {len(result.still_unprocessed)}")
        if not args.dry_run and result.newly_committed:
            save_snapshot(data.store, apply_reprocess(snapshot, result), data.cfg["storage"]["data_key"])
        return

    if not args.ics:
        parser.error("specificare il file .ics da importare")
    ics_path = Path(args.ics)
    events = parse_calendar_text(ics_path.read_text(encoding="utf-8", errors="replace"))
    if not events:
        print("Nessun evento valido trovato nel file ICS.")
        return

    if args.dry_run:
        print(events_to_frame(events).to_string(index=False))
        return

    if args.kind == "absences":
        try:
            result = import_absences(
                snapshot,
                events,
                type_id=import_cfg["default_absence_type"],
                failure_reason=import_cfg["failure_reason"],
            )
        except LookupError as exc:
            sys.exit(f"Errore: {exc}")
        snapshot = apply_absence_import(snapshot, result)
        print(f"{len(result.committed)} assenze importate con successo.")
        if result.unprocessed:
            print(
                f"{len(result.unprocessed)} assenze non importate: "
                "eseguire `reprocess` dopo aver corretto le sigle."
            )
    else:
        campaigns = import_campaigns(
            snapshot,
            events,
            delivery_offset_working_days=data.cfg["campaigns"]["delivery_offset_working_days"],
        )
        snapshot = add_campaigns(snapshot, campaigns)
        unassigned = sum(1 for c in campaigns if not c.category_id)
        print(f"{len(campaigns)} campagne importate con successo.")
        if unassigned:
            print(f"Ricorda di assegnare la categoria a {unassigned} campagne.")

    save_snapshot(data.store, snapshot, data.cfg["storage"]["data_key"])


if __name__ == "__main__":
    main()
