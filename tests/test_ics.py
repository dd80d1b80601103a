from __future__ import annotations

from planner.ics import CalendarEvent, events_to_frame, parse_calendar_text


def _calendar(*events: str) -> str:
    body = "".join(f"BEGIN:VEVENT\r\n{e}\r\nEND:VEVENT\r\n" for e in events)
    return f"BEGIN:VCALENDAR\r\nVERSION:2.0\r\n{body}END:VCALENDAR\r\n"


def test_all_day_end_is_made_inclusive() -> None:
    text = _calendar(
        "SUMMARY:[MR] Ferie\r\nDTSTART;VALUE=DATE:20240101\r\nDTEND;VALUE=DATE:20240103"
    )
    assert parse_calendar_text(text) == [CalendarEvent("[MR] Ferie", "2024-01-01", "2024-01-02")]


def test_single_all_day_event() -> None:
    text = _calendar("SUMMARY:Ferie GB\r\nDTSTART:20240105\r\nDTEND:20240106")
    assert parse_calendar_text(text) == [CalendarEvent("Ferie GB", "2024-01-05", "2024-01-05")]


def test_timed_events_keep_their_end_date() -> None:
    text = _calendar(
        "SUMMARY:Riunione\r\nDTSTART:20240101T090000\r\nDTEND:20240101T100000",
        "SUMMARY:Trasferta\r\nDTSTART:20240101T090000Z\r\nDTEND:20240103T100000Z",
        "SUMMARY:Corso\r\nDTSTART;TZID=Europe/Rome:20240105T080000\r\n"
        "DTEND;TZID=Europe/Rome:20240105T170000",
    )
    events = parse_calendar_text(text)
    assert [(e.start_date, e.end_date) for e in events] == [
        ("2024-01-01", "2024-01-01"),
        ("2024-01-01", "2024-01-03"),
        ("2024-01-05", "2024-01-05"),
    ]


def test_missing_end_defaults_to_start() -> None:
    text = _calendar("SUMMARY:Congresso\r\nDTSTART;VALUE=DATE:20240110")
    assert parse_calendar_text(text) == [CalendarEvent("Congresso", "2024-01-10", "2024-01-10")]


def test_cancelled_and_incomplete_events_are_dropped() -> None:
    text = _calendar(
        "SUMMARY:Annullato\r\nSTATUS:CANCELLED\r\nDTSTART:20240101\r\nDTEND:20240102",
        "DTSTART:20240101\r\nDTEND:20240102",
        "SUMMARY:Senza data",
        "SUMMARY:Data rotta\r\nDTSTART:20241301",
        "SUMMARY:Valido\r\nDTSTART:20240102\r\nDTEND:20240103",
    )
    assert [e.summary for e in parse_calendar_text(text)] == ["Valido"]


def test_folded_lines_and_escapes() -> None:
    text = _calendar(
        "SUMMARY:[MR] Ferie lun\r\n ghe\\, al mare\r\nDTSTART:20240101\r\nDTEND:20240102"
    )
    assert parse_calendar_text(text)[0].summary == "[MR] Ferie lunghe, al mare"


def test_unix_newlines_are_accepted() -> None:
    text = "BEGIN:VEVENT\nSUMMARY:Ferie\nDTSTART:20240101\nDTEND:20240102\nEND:VEVENT\n"
    assert parse_calendar_text(text) == [CalendarEvent("Ferie", "2024-01-01", "2024-01-01")]


def test_garbage_input_yields_no_events() -> None:
    assert parse_calendar_text("") == []
    assert parse_calendar_text("non è un calendario") == []
    assert parse_calendar_text("BEGIN:VEVENT\r\nSUMMARY") == []


def test_events_to_frame() -> None:
    df = events_to_frame([CalendarEvent("Ferie", "2024-01-01", "2024-01-02")])
    assert list(df.columns) == ["summary", "start_date", "end_date"]
    assert df.iloc[0]["end_date"] == "2024-01-02"
    assert events_to_frame([]).empty
