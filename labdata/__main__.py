from __future__ import annotations

import argparse
import logging
import os


def main() -> None:
    ap = argparse.ArgumentParser(description="Pianificatore laboratorio - riepilogo dati")
    ap.add_argument("--config", type=str, default="config.yaml")
    ap.add_argument(
        "--export", type=str, default=None, help="Scrive l'intero snapshot in un documento JSON"
    )
    ap.add_argument(
        "--share-link", action="store_true", help="Stampa un link di condivisione in sola lettura"
    )
    args = ap.parse_args()

    try:
        from . import load_all
        from .share import encode_share_link
    except ModuleNotFoundError as exc:  # pragma: no cover - dipendenza runtime
        if getattr(exc, "name", None) == "pandas":
            raise SystemExit(
                "Errore: il modulo 'pandas' non è installato. "
                "Eseguire `pip install -e .` prima di lanciare il riepilogo."
            ) from exc
        raise

    data = load_all(args.config)
    logging.basicConfig(level=data.cfg["logging"]["level"])
    snapshot = data.snapshot

    print(f"OK: dati caricati da {data.cfg['storage']['path']}.")
    print(f"- strumenti: {len(snapshot.instruments)}")
    print(f"- categorie strumento: {len(snapshot.instrument_categories)}")
    print(f"- personale: {len(snapshot.personnel)}")
    print(f"- tipi assenza: {len(snapshot.absence_types)}")
    print(f"- assenze: {len(snapshot.absences)}")
    print(f"- assenze non elaborate: {len(snapshot.unprocessed_absences)}")
    print(f"- campagne: {len(snapshot.campaigns)}")
    print(f"- prenotazioni: {len(snapshot.bookings)}")
    print(f"- template: {len(snapshot.templates)}")
    print(f"- override di stato: {len(snapshot.status_overrides)}")

    if args.export:
        from .snapshot import export_document

        outdir = os.path.dirname(os.path.abspath(args.export))
        os.makedirs(outdir, exist_ok=True)
        with open(args.export, "w", encoding="utf-8") as f:
            f.write(export_document(snapshot))
        print(f"Esportato documento in: {args.export}")

    if args.share_link:
        print(encode_share_link(snapshot, data.cfg["share"]["base_url"]))


if __name__ == "__main__":  # pragma: no cover - entry point
    main()
