"""Quick consistency checks on the persisted planner snapshot."""
from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from labdata import load_all
from planner.consistency import check_snapshot


def main() -> int:
    parser = argparse.ArgumentParser(description="Controlla la coerenza dei dati del pianificatore")
    parser.add_argument("--config", default="config.yaml")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Esce con codice 1 anche per le sole doppie prenotazioni di una persona",
    )
    args = parser.parse_args()

    data = load_all(args.config)
    logging.basicConfig(level=data.cfg["logging"]["level"])
    issues = check_snapshot(data.snapshot)

    if not issues:
        print("OK: nessuna incoerenza trovata.")
        return 0

    for issue in issues:
        print(f"[{issue.kind}] {issue.ref}: {issue.detail}")
    counts = Counter(issue.kind for issue in issues)
    print("Riepilogo: " + ", ".join(f"{kind}={n}" for kind, n in sorted(counts.items())))

    blocking = [i for i in issues if args.strict or i.kind != "double_booked"]
    return 1 if blocking else 0


if __name__ == "__main__":
    raise SystemExit(main())
