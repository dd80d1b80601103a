from __future__ import annotations

"""Indicatori per persona e periodo: carico di lavoro, consegne, assenze."""

from dataclasses import dataclass, replace
from datetime import date

import pandas as pd

from labdata.calendar import count_working_days, format_date
from labdata.models import Snapshot
from labdata.utils import _ensure_date


OVERLOADED = "overloaded"
AT_RISK = "at-risk"
BALANCED = "balanced"
UNDERUTILIZED = "underutilized"

DEFAULT_BANDS = {"overloaded": 105.0, "at_risk": 90.0, "balanced": 40.0}
DEFAULT_HOURS_PER_DAY = 8.0


@dataclass(frozen=True)
class WorkloadSummary:
    actual: float
    capacity: float
    percentage: float
    status: str


@dataclass(frozen=True)
class DeliverySummary:
    evaluated: int
    met: int
    rate: float


def _period(start: date | str, end: date | str) -> tuple[str, str]:
    start_s = format_date(start)
    end_s = format_date(end)
    if start_s > end_s:
        raise ValueError("start deve precedere o coincidere con end")
    return start_s, end_s


def bookings_frame(snapshot: Snapshot) -> pd.DataFrame:
    """Prenotazioni con il peso dello strumento (1 se assente o strumento mancante)."""
    columns = ["booking_id", "instrument_id", "personnel_id", "date", "slot", "weight"]
    bookings = pd.DataFrame(
        [
            {
                "booking_id": b.id,
                "instrument_id": b.instrument_id,
                "personnel_id": b.personnel_id,
                "date": b.date,
                "slot": b.slot,
            }
            for b in snapshot.bookings
        ],
        columns=columns[:-1],
    )
    weights = pd.DataFrame(
        [{"instrument_id": i.id, "weight": i.weight} for i in snapshot.instruments],
        columns=["instrument_id", "weight"],
    ).drop_duplicates(subset=["instrument_id"], keep="first")
    merged = bookings.merge(weights, on="instrument_id", how="left")
    merged["weight"] = pd.to_numeric(merged["weight"], errors="coerce").fillna(1.0)
    return merged[columns]


def workload_status(percentage: float, bands: dict[str, float] | None = None) -> str:
    bands = bands or DEFAULT_BANDS
    if percentage > bands["overloaded"]:
        return OVERLOADED
    if percentage > bands["at_risk"]:
        return AT_RISK
    if percentage >= bands["balanced"]:
        return BALANCED
    return UNDERUTILIZED


def compute_workload(
    snapshot: Snapshot,
    personnel_id: str,
    start: date | str,
    end: date | str,
    *,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    bands: dict[str, float] | None = None,
) -> WorkloadSummary:
    """Carico effettivo (somma dei pesi) rispetto alla capacità del periodo.

    capacity = giorni lavorativi * ore/giorno * percentuale lavorativa; una
    capacità nulla vale 1.
    """
    start_s, end_s = _period(start, end)
    frame = bookings_frame(snapshot)
    mask = (
        frame["personnel_id"].eq(personnel_id)
        & frame["date"].ge(start_s)
        & frame["date"].le(end_s)
    )
    actual = float(frame.loc[mask, "weight"].sum())

    person = snapshot.find_personnel(personnel_id)
    work_percentage = person.work_percentage if person is not None else 0.0
    capacity = count_working_days(start_s, end_s) * hours_per_day * (work_percentage / 100.0)
    if capacity <= 0:
        capacity = 1.0

    percentage = actual / capacity * 100.0
    return WorkloadSummary(actual, capacity, percentage, workload_status(percentage, bands))


def compute_delivery_rate(
    snapshot: Snapshot, personnel_id: str, start: date | str, end: date | str
) -> DeliverySummary:
    """Percentuale di consegne rispettate tra le campagne valutate; 100 se nessuna."""
    start_s, end_s = _period(start, end)
    evaluated = [
        c
        for c in snapshot.campaigns
        if c.manager_id == personnel_id
        and start_s <= c.end_date <= end_s
        and c.delivery_met is not None
    ]
    met = sum(1 for c in evaluated if c.delivery_met)
    rate = met / len(evaluated) * 100.0 if evaluated else 100.0
    return DeliverySummary(len(evaluated), met, rate)


def compute_absence_summary(
    snapshot: Snapshot, personnel_id: str, start: date | str, end: date | str
) -> dict[str, int]:
    """Giorni feriali di assenza per tipo, limitati al periodo."""
    start_s, end_s = _period(start, end)
    counts: dict[str, int] = {}
    for absence in snapshot.absences:
        if absence.personnel_id != personnel_id:
            continue
        if absence.end_date < start_s or absence.start_date > end_s:
            continue
        clipped_start = max(absence.start_date, start_s)
        clipped_end = min(absence.end_date, end_s)
        days = count_working_days(clipped_start, clipped_end)
        if days:
            counts[absence.type_id] = counts.get(absence.type_id, 0) + days
    return counts


def team_report(
    snapshot: Snapshot,
    start: date | str,
    end: date | str,
    *,
    hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    bands: dict[str, float] | None = None,
) -> pd.DataFrame:
    """Una riga per persona con carico, consegne e giorni di assenza per tipo."""
    start_d = _ensure_date(start)
    end_d = _ensure_date(end)
    type_ids = [t.id for t in snapshot.absence_types]
    base_columns = [
        "personnel_id",
        "name",
        "initials",
        "workload_actual",
        "workload_capacity",
        "workload_pct",
        "workload_status",
        "deliveries_evaluated",
        "delivery_rate",
    ]

    rows = []
    for person in snapshot.personnel:
        workload = compute_workload(
            snapshot, person.id, start_d, end_d, hours_per_day=hours_per_day, bands=bands
        )
        delivery = compute_delivery_rate(snapshot, person.id, start_d, end_d)
        absences = compute_absence_summary(snapshot, person.id, start_d, end_d)
        row = {
            "personnel_id": person.id,
            "name": person.name,
            "initials": person.initials,
            "workload_actual": workload.actual,
            "workload_capacity": workload.capacity,
            "workload_pct": round(workload.percentage, 1),
            "workload_status": workload.status,
            "deliveries_evaluated": delivery.evaluated,
            "delivery_rate": round(delivery.rate, 1),
        }
        for type_id in type_ids:
            row[f"absence_{type_id}"] = absences.get(type_id, 0)
        rows.append(row)

    return pd.DataFrame(rows, columns=base_columns + [f"absence_{t}" for t in type_ids])


def set_delivery_met(snapshot: Snapshot, campaign_id: str, value: bool | None) -> Snapshot:
    """Registra l'esito della consegna (``None`` = non ancora valutata)."""
    return replace(
        snapshot,
        campaigns=tuple(
            replace(c, delivery_met=value) if c.id == campaign_id else c
            for c in snapshot.campaigns
        ),
    )
