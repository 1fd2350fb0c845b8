# utils.py
from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Set

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from domain import PublicHolidayOption, TimeEntry, format_hhmm
from services import OvertimeCalculator

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Date", "Day", "Clock In", "Clock Out", "Type", "Hours", "Pay"]
WEEKDAYS_SHORT = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class ImportFormatError(ValueError):
    """Attendance payload could not be read."""


@dataclass
class ImportResult:
    entries: List[TimeEntry] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)

    def message(self) -> str:
        if self.entries:
            msg = f"Imported {len(self.entries)} entries!"
            if self.duplicates:
                msg += f" Skipped {len(self.duplicates)} duplicates."
            return msg
        if self.duplicates:
            return f"All {len(self.duplicates)} entries already exist."
        return "No valid entries found."


def import_attendance(raw: str, existing_dates: Iterable[date] = (), calculator: OvertimeCalculator | None = None) -> ImportResult:
    """
    Reads the JSON list produced by the attendance-site scraper:
    [{"date": "YYYY-MM-DD", "clockIn": "HH:MM", "clockOut": "HH:MM", "isPublicHoliday": false}, ...]
    Days already stored (or repeated in the payload) are reported as duplicates.
    """
    calculator = calculator or OvertimeCalculator()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Invalid data format: {e}") from e
    if not isinstance(data, list):
        raise ImportFormatError("Invalid data format: expected a JSON list")

    seen: Set[date] = set(existing_dates)
    out = ImportResult()
    for item in data:
        if not isinstance(item, dict) or not (item.get("date") and item.get("clockIn") and item.get("clockOut")):
            logger.debug("Skipping incomplete attendance item %r", item)
            continue
        try:
            entry = TimeEntry.from_dict({
                "date": item["date"],
                "clockIn": item["clockIn"],
                "clockOut": item["clockOut"],
                "isPublicHoliday": item.get("isPublicHoliday", False),
                "publicHolidayOption": PublicHolidayOption.PAY.value,
            })
        except ValueError as e:
            raise ImportFormatError(f"Invalid data format: {e}") from e
        if entry.date in seen:
            out.duplicates.append(entry.date_str)
            continue
        seen.add(entry.date)
        entry = calculator.classify_entry(entry)
        if entry.result is not None:
            out.entries.append(entry)
    logger.info("Attendance import: %d new, %d duplicates", len(out.entries), len(out.duplicates))
    return out


def entries_to_dataframe(entries: Iterable[TimeEntry]) -> pd.DataFrame:
    rows = []
    for e in entries:
        r = e.result
        rows.append({
            "Date": e.date_str,
            "Day": WEEKDAYS_SHORT[e.date.weekday()],
            "Clock In": format_hhmm(e.clock_in),
            "Clock Out": format_hhmm(e.clock_out),
            "Type": r.type.value if r else "",
            "Hours": r.hours if r else 0.0,
            "Pay": r.total_pay if r else 0.0,
        })
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    if not df.empty:
        df = df.sort_values(["Date"]).reset_index(drop=True)
    return df


def entries_to_csv(entries: Iterable[TimeEntry]) -> str:
    df = entries_to_dataframe(entries)
    df["Hours"] = df["Hours"].map(lambda h: f"{h:.2f}")
    return df.to_csv(index=False, lineterminator="\n")


def csv_filename(selected_month: str) -> str:
    return f"Payslip-Period-{selected_month}.csv"


def money(x: float, currency: str = "RM") -> str:
    return f"{currency}{x:,.2f}"


def format_hours(hours: float) -> str:
    minutes = int(round(float(hours) * 60))
    h, m = divmod(max(0, minutes), 60)
    if h == 0:
        return f"{m} min"
    if m == 0:
        return f"{h} h"
    return f"{h} h {m} min"


def period_report_pdf(df: pd.DataFrame, title: str, summary_lines: List[str] | None = None) -> bytes:
    """Landscape A4 report: bordered table of the period's entries and a boxed summary."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=landscape(A4), topMargin=24, bottomMargin=24, leftMargin=24, rightMargin=24)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(name="TitleCentered", parent=styles["Title"], alignment=TA_CENTER)
    summary_style = ParagraphStyle(
        name="Summary", parent=styles["Normal"], alignment=TA_CENTER,
        textColor=colors.black, fontSize=11, leading=13, spaceBefore=2, spaceAfter=2
    )
    story = [Paragraph(title, title_style), Spacer(1, 8)]
    if df.empty:
        story.append(Paragraph("No entries in this period.", styles["Normal"]))
    else:
        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1, hAlign="CENTER")
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#F5F5F7")),
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#E0E0E0")),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.white]),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)
    if summary_lines:
        story.append(Spacer(1, 12))
        box = Table([[Paragraph(line, summary_style)] for line in summary_lines],
                    colWidths=[min(520, 0.65 * doc.width)], hAlign="CENTER")
        box.setStyle(TableStyle([
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#C7CCD6")),
        ]))
        story.append(box)

    def draw_page_border(canvas, doc_obj):
        canvas.saveState()
        w, h = doc_obj.pagesize
        canvas.setStrokeColor(colors.HexColor("#C7CCD6"))
        canvas.setLineWidth(0.8)
        margin = 12
        canvas.rect(margin, margin, w - 2*margin, h - 2*margin)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_page_border, onLaterPages=draw_page_border)
    return buf.getvalue()
