from __future__ import annotations

from .analytics import (
    compute_absence_summary,
    compute_delivery_rate,
    compute_workload,
    set_delivery_met,
    team_report,
)
from .bookings import delete_booking, find_booking, find_bookings_for_person, upsert_booking
from .ics import CalendarEvent, parse_calendar_text
from .matching import match_entity_by_initials, match_entity_by_keywords
from .reconcile import (
    apply_absence_import,
    apply_reprocess,
    import_absences,
    import_campaigns,
    reprocess_unprocessed,
)
from .state import PlannerState
from .status import SlotStatus, get_absence_details, resolve_status, set_status_override
from .templates import TemplateError, apply_template, capture_template, upgrade_legacy_template


__all__ = [
    "CalendarEvent",
    "PlannerState",
    "SlotStatus",
    "TemplateError",
    "apply_absence_import",
    "apply_reprocess",
    "apply_template",
    "capture_template",
    "compute_absence_summary",
    "compute_delivery_rate",
    "compute_workload",
    "delete_booking",
    "find_booking",
    "find_bookings_for_person",
    "get_absence_details",
    "import_absences",
    "import_campaigns",
    "match_entity_by_initials",
    "match_entity_by_keywords",
    "parse_calendar_text",
    "reprocess_unprocessed",
    "resolve_status",
    "set_delivery_met",
    "set_status_override",
    "team_report",
    "upgrade_legacy_template",
    "upsert_booking",
]
