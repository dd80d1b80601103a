# app.py
# Streamlit UI: settimana strumenti/personale, template, import ICS, analisi
import sys
from dataclasses import asdict, replace
from datetime import date, timedelta
from pathlib import Path

import pandas as pd
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from labdata import JsonFileStore, load_config
from labdata.calendar import iso_week, iso_week_year, week_key, week_start_date
from labdata.share import ShareLinkError, encode_share_link
from planner.analytics import team_report
from planner.ics import parse_calendar_text
from planner.reconcile import (
    add_campaigns,
    apply_absence_import,
    apply_reprocess,
    import_absences,
    import_campaigns,
    reprocess_unprocessed,
)
from planner.state import PlannerState
from planner.status import set_weekly_note, weekly_note
from planner.templates import apply_template, capture_template, upsert_template
from planner.weekview import (
    active_campaigns,
    booking_notes_by_person,
    instrument_week_grid,
    personnel_week_grid,
)

st.set_page_config(page_title="Lab Planner", layout="wide")
st.title("Pianificazione laboratorio")

# Sidebar
with st.sidebar:
    cfg_path = st.text_input("Config YAML", "config.yaml")
    cfg = load_config(cfg_path)
    shared_url = st.text_input("Apri link condiviso (sola lettura)", "")
    picked = st.date_input("Settimana", st.session_state.get("current_date", date.today()))

# ===== Stato =====
if "planner_state" not in st.session_state or st.session_state.get("cfg_path") != cfg_path:
    store = JsonFileStore(cfg["storage"]["path"])
    st.session_state.planner_state = PlannerState.from_store(store, cfg["storage"]["data_key"])
    st.session_state.cfg_path = cfg_path

state: PlannerState = st.session_state.planner_state
if shared_url:
    try:
        state = PlannerState.from_share_link(shared_url)
        st.info("Modalità sola lettura: le modifiche non vengono salvate.")
    except ShareLinkError as e:
        st.error(str(e))

monday = week_start_date(iso_week_year(picked), iso_week(picked))
week_end = monday + timedelta(days=4)
st.session_state.current_date = picked

# ===== Utils =====
def _pivot_grid(df: pd.DataFrame, index_col: str, value_col: str) -> pd.DataFrame:
    if df.empty:
        return df
    df = df.assign(cell=df["date"].str[5:] + " " + df["slot"])
    return df.pivot_table(index=index_col, columns="cell", values=value_col, aggfunc="first")

def _show(df: pd.DataFrame):
    try:
        st.dataframe(df, use_container_width=True)
    except ModuleNotFoundError:
        st.warning("⚠️ PyArrow non installato: impossibile mostrare la tabella.\nInstalla con: pip install pyarrow")
        st.text(df.head().to_string())

# ===== Intestazione settimana =====
snapshot = state.snapshot
st.subheader(f"SETTIMANA {iso_week(monday)}")
st.caption(f"{monday.strftime('%d/%m/%Y')} - {week_end.strftime('%d/%m/%Y')}")

note = st.text_area("Note della settimana", weekly_note(snapshot, week_key(monday)), disabled=state.readonly)
if not state.readonly and note != weekly_note(snapshot, week_key(monday)):
    state.update(lambda s: set_weekly_note(s, week_key(monday), note))

tab_instr, tab_pers, tab_tpl, tab_import, tab_stats = st.tabs(
    ["Strumenti", "Personale", "Template", "Import ICS", "Analisi"]
)

with tab_instr:
    grid = instrument_week_grid(state.snapshot, monday)
    if grid.empty:
        st.info("Nessuno strumento in anagrafica.")
    else:
        labels = grid["personnel_name"].fillna("").where(grid["cell_state"] != "absent", "ASSENTE")
        _show(_pivot_grid(grid.assign(label=labels), "instrument_name", "label"))
    campaigns = active_campaigns(state.snapshot, monday)
    if campaigns:
        st.markdown("**Campagne attive:** " + ", ".join(c.name for c in campaigns))

with tab_pers:
    grid = personnel_week_grid(state.snapshot, monday)
    if grid.empty:
        st.info("Nessuna persona in anagrafica.")
    else:
        labels = grid["absence_type_id"].fillna("")
        labels = labels.where(~grid["double_booked"], "DOPPIA")
        _show(_pivot_grid(grid.assign(label=labels), "name", "label"))
    for pid, bookings in booking_notes_by_person(state.snapshot, monday).items():
        person = state.snapshot.find_personnel(pid)
        st.markdown(f"**{person.name}:** " + "; ".join(f"{b.date} {b.slot}: {b.note}" for b in bookings))

with tab_tpl:
    templates = {t.name: t for t in state.snapshot.templates}
    name = st.text_input("Nome del nuovo template", "")
    if st.button("Salva come Template", disabled=state.readonly or not name):
        days = [monday + timedelta(days=i) for i in range(5)]
        template = capture_template(state.snapshot.bookings, days, name)
        state.update(lambda s: upsert_template(s, template))
        st.success(f'Template "{name}" salvato!')
    chosen = st.selectbox("Template da applicare", [""] + list(templates))
    confirm = st.checkbox("Confermo: tutte le prenotazioni della settimana verranno sostituite.")
    if st.button("Applica", disabled=state.readonly or not chosen or not confirm):
        template = templates[chosen]
        state.update(lambda s: replace(s, bookings=apply_template(s, template, monday)))
        st.success("Template applicato.")

with tab_import:
    kind = st.radio("Tipo di import", ["Assenze", "Campagne"], horizontal=True)
    ics_file = st.file_uploader("File ICS", type=["ics"])
    if ics_file is not None and st.button("Importa", disabled=state.readonly):
        events = parse_calendar_text(ics_file.read().decode("utf-8", errors="replace"))
        if not events:
            st.warning("Nessun evento valido trovato nel file ICS.")
        elif kind == "Assenze":
            try:
                result = import_absences(
                    state.snapshot,
                    events,
                    type_id=cfg["import"]["default_absence_type"],
                    failure_reason=cfg["import"]["failure_reason"],
                )
            except LookupError as e:
                st.error(str(e))
            else:
                state.update(lambda s: apply_absence_import(s, result))
                st.success(f"{len(result.committed)} assenze importate con successo.")
                if result.unprocessed:
                    st.warning(f"{len(result.unprocessed)} assenze non importate.")
        else:
            campaigns = import_campaigns(
                state.snapshot,
                events,
                delivery_offset_working_days=cfg["campaigns"]["delivery_offset_working_days"],
            )
            state.update(lambda s: add_campaigns(s, campaigns))
            st.success(f"{len(campaigns)} campagne importate con successo.")

    queue = state.snapshot.unprocessed_absences
    st.subheader(f"Importazioni fallite ({len(queue)})")
    if queue:
        _show(pd.DataFrame([asdict(u) for u in queue]))
        if st.button("Rielabora", disabled=state.readonly):
            result = reprocess_unprocessed(
                state.snapshot,
                type_id=cfg["import"]["default_absence_type"],
                failure_reason=cfg["import"]["reprocess_failure_reason"],
            )
            if result.newly_committed:
                state.update(lambda s: apply_reprocess(s, result))
                st.success(f"{len(result.newly_committed)} assenze sono state importate con successo.")
            else:
                st.info("Nessuna nuova corrispondenza trovata. Controlla le sigle del personale.")

with tab_stats:
    col1, col2 = st.columns(2)
    start = col1.date_input("Dal", monday.replace(day=1))
    end = col2.date_input("Al", week_end)
    if start <= end:
        report = team_report(
            state.snapshot,
            start,
            end,
            hours_per_day=cfg["workload"]["hours_per_day"],
            bands=cfg["workload"]["bands"],
        )
        _show(report)
        st.download_button(
            "Scarica analisi (CSV)",
            data=report.to_csv(index=False).encode("utf-8"),
            file_name="analisi.csv",
            mime="text/csv",
        )
    else:
        st.error("La data iniziale deve precedere quella finale.")

# ===== Export / condivisione =====
with st.sidebar:
    st.download_button(
        "Esporta dati (JSON)",
        data=state.export().encode("utf-8"),
        file_name="lab_planner_export.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Importa dati (sostituisce tutto)", type=["json"])
    if uploaded is not None and st.checkbox("Confermo la sostituzione dei dati") and not state.readonly:
        if state.replace_from_document(uploaded.read().decode("utf-8", errors="replace")):
            st.success("Dati importati.")
        else:
            st.error("File non valido: mancano strumenti, personale o prenotazioni.")
    if st.button("Genera link di sola lettura"):
        st.code(encode_share_link(state.snapshot, cfg["share"]["base_url"]), language="")
