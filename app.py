# app.py
# -----------------------------------------------
# ⏱️ OT Calculator (Streamlit)
# -----------------------------------------------
# Requires: streamlit, sqlmodel, pandas, reportlab, psycopg2-binary (if using Postgres)
# Payslip period runs from the 29th of the previous month to the 28th of the selected month.

import os
import logging
from datetime import date, datetime

import streamlit as st

from domain import PublicHolidayOption, TimeEntry, parse_hhmm
from repository import TimeEntryRepository
from services import OvertimeCalculator, PayslipAggregator, shift_countdown
from settings import APP_TITLE, database_url, load_policy, pick_data_dir
from utils import (
    ImportFormatError,
    csv_filename,
    entries_to_csv,
    entries_to_dataframe,
    format_hours,
    import_attendance,
    money,
    period_report_pdf,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

st.set_page_config(page_title=APP_TITLE, page_icon="⏱️", layout="centered")

# =========================
# Configuration and storage
# =========================
DATA_DIR = pick_data_dir()
DB_URL = database_url(DATA_DIR)
POLICY = load_policy()

# Require Postgres on hosted deployments (Render / HF Spaces / Streamlit Cloud)
if ("RENDER" in os.environ or "SPACE_ID" in os.environ or os.getenv("STREAMLIT_RUNTIME") == "cloud"):
    if DB_URL.startswith("sqlite"):
        st.error("DATABASE_URL (Postgres) is missing. Set it in the hosting environment.")


@st.cache_resource
def get_repo(url: str):
    return TimeEntryRepository(url, echo=False)


repo = get_repo(DB_URL)
calculator = OvertimeCalculator(POLICY)
aggregator = PayslipAggregator(POLICY)
CUR = POLICY.currency

st.title(f"⏱️ {APP_TITLE}")
st.caption(
    f"Weekday OT after {POLICY.standard_work_minutes / 60:g} h + {POLICY.break_minutes} min break, "
    f"minimum {POLICY.minimum_ot_minutes} min. Weekends and public holidays: whole shift."
)


def _flash_if_any():
    msg = st.session_state.pop("_flash", None)
    if msg:
        st.success(msg)


def _entry_from_form(d: date, clock_in: str, clock_out: str, is_ph: bool, ph_option: str) -> TimeEntry | None:
    try:
        return TimeEntry(
            date=d,
            clock_in=parse_hhmm(clock_in),
            clock_out=parse_hhmm(clock_out),
            is_public_holiday=is_ph,
            public_holiday_option=PublicHolidayOption(ph_option),
        )
    except ValueError as e:
        st.warning(str(e))
        return None


# =========================
# ⏳ Countdown to end of standard day
# =========================
st.subheader("⏳ Shift countdown")
timer_in = st.text_input("Clocked in today at (HH:MM)", key="timer_clock_in", placeholder="08:00")
try:
    cd = shift_countdown(timer_in, datetime.now(), POLICY)
except ValueError:
    cd = None
    st.warning("Enter the clock-in time as HH:MM.")
if cd:
    label = "Overtime so far" if cd.is_overtime else "Time left"
    st.metric(label, f"{cd.hours:02d}:{cd.minutes:02d}:{cd.seconds:02d}",
              help=f"Standard day ends at {cd.finish_time.strftime('%H:%M')}")

# =========================
# ➕ Add entry
# =========================
st.subheader("➕ Add entry")
_flash_if_any()

entry_date = st.date_input("Date", value=date.today())
c1, c2 = st.columns(2)
clock_in_str = c1.text_input("Clock in (HH:MM)", key="clock_in")
clock_out_str = c2.text_input("Clock out (HH:MM)", key="clock_out")
is_ph = st.checkbox("Public holiday", key="is_ph")
ph_option = PublicHolidayOption.PAY.value
if is_ph:
    ph_option = st.radio("Public holiday compensation", [o.value for o in PublicHolidayOption], horizontal=True)

draft = _entry_from_form(entry_date, clock_in_str, clock_out_str, is_ph, ph_option)
if draft and draft.clock_in and not (draft.is_weekend or is_ph):
    st.caption(
        f"Minimum clock-out: **{calculator.minimum_clock_out_time(draft.clock_in)}** · "
        f"OT starts at: **{calculator.overtime_start_time(draft.clock_in)}**"
    )
preview = calculator.classify(draft) if draft else None
if preview:
    st.info(f"**{preview.type.value}** · {preview.hours:.2f} h · {money(preview.total_pay, CUR)} · {preview.breakdown}")

if st.button("Add entry", use_container_width=True, disabled=preview is None):
    if repo.exists_on(entry_date):
        st.warning("That day is already recorded.")
    else:
        entry = draft.with_result(preview)
        repo.add(entry)
        st.session_state["_flash"] = f"Saved {entry.date_str}: {preview.type.value} · {money(preview.total_pay, CUR)}"
        st.rerun()

# =========================
# 📥 Import attendance (JSON)
# =========================
with st.expander("📥 Import attendance data"):
    raw = st.text_area("Paste the JSON copied from the attendance site", key="import_data")
    if st.button("Import", disabled=not raw.strip()):
        try:
            res = import_attendance(raw, existing_dates=repo.dates(), calculator=calculator)
        except ImportFormatError as e:
            st.error(str(e))
        else:
            if res.entries:
                repo.add_many(res.entries)
                st.session_state["_flash"] = res.message()
                st.rerun()
            st.warning(res.message())

# =========================
# 📅 Payslip period
# =========================
st.subheader("📅 Payslip period")
today = date.today()
selected_month = st.text_input("Month (YYYY-MM)", value=f"{today.year:04d}-{today.month:02d}")
try:
    all_entries = repo.list_all()
    period = aggregator.summarize(all_entries, selected_month)
except ValueError as e:
    st.error(str(e))
    st.stop()

in_period = aggregator.entries_in_period(all_entries, selected_month)
st.caption(f"{period.start_date_str} → {period.end_date_str} · {period.count} entries")
m1, m2, m3 = st.columns(3)
m1.metric("OT hours", format_hours(period.total_hours))
m2.metric("Total pay", money(period.total_pay, CUR))
m3.metric("Payable (capped)", money(period.capped_pay, CUR))
if period.total_pay > period.capped_pay:
    st.warning(f"Total exceeds the {money(POLICY.period_pay_cap, CUR)} cap for the period.")

# =========================
# 🗓️ History
# =========================
if not in_period:
    st.info("No entries in this period.")
else:
    for e in sorted(in_period, key=lambda x: x.date, reverse=True):
        r = e.result
        cols = st.columns([4, 1])
        leave = f" · {r.leave_hours:.2f} h leave" if r.leave_hours is not None else ""
        cols[0].markdown(
            f"**{e.date_str}** {e.clock_in:%H:%M}–{e.clock_out:%H:%M} · {r.type.value} · "
            f"{r.hours:.2f} h{leave} · {money(r.total_pay, CUR)}"
        )
        if cols[1].button("🗑️", key=f"del_{e.id}"):
            repo.delete(e.id)
            st.rerun()

# =========================
# ⬇️ Export
# =========================
df = entries_to_dataframe(in_period)
d1, d2 = st.columns(2)
d1.download_button(
    "Download CSV",
    data=entries_to_csv(in_period),
    file_name=csv_filename(selected_month),
    mime="text/csv",
    disabled=df.empty,
    use_container_width=True,
)
pdf_bytes = period_report_pdf(
    df,
    title=f"{APP_TITLE} — {period.start_date_str} to {period.end_date_str}",
    summary_lines=[
        f"OT hours: {format_hours(period.total_hours)} · Entries: {period.count}",
        f"Total: {money(period.total_pay, CUR)} · Payable (capped): {money(period.capped_pay, CUR)}",
    ],
)
d2.download_button(
    "Download PDF",
    data=pdf_bytes,
    file_name=f"Payslip-Period-{selected_month}.pdf",
    mime="application/pdf",
    disabled=df.empty,
    use_container_width=True,
)

# =========================
# 🧹 Clear all
# =========================
with st.expander("🧹 Clear all entries"):
    confirm = st.checkbox("I understand this cannot be undone", key="confirm_clear")
    if st.button("Clear all", disabled=not confirm):
        n = repo.clear()
        st.session_state["_flash"] = f"Cleared {n} entries."
        st.rerun()
