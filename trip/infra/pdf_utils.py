import io
from datetime import date
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet

from trip.domain.SessionState import ReportEntry
from trip.logic.reporting.report import report_rows, report_title
from trip.utilities.constants import MSG_NO_REPORT


def _para(text: str, style):
    # Paragraph parses markup: escape user text and keep line breaks
    return Paragraph(escape(text or "").replace("\n", "<br/>"), style)


def generate_pdf_for_report(entries: List[ReportEntry], start: date, end: date) -> bytes:
    """Generate the printable itinerary: Date / Plan / Last updated by, one row per day."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=20
    )

    styles = getSampleStyleSheet()
    body = styles["BodyText"]
    elements = [
        Paragraph(escape(report_title(start, end)), styles["Title"]),
        Spacer(1, 16),
    ]

    rows = report_rows(entries)
    if not rows:
        elements.append(Paragraph(MSG_NO_REPORT, body))
        doc.build(elements)
        return buf.getvalue()

    data = [["Date", "Plan", "Last updated by"]]
    for row in rows:
        plan_cell = [Paragraph(f"<b>{escape(row['title'])}</b>", body), _para(row['description'], body)]
        data.append([row['date'], plan_cell, _para(row['last_updated_by'], body)])

    table = Table(data, repeatRows=1, colWidths=[110, 330, 110])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0,0), (-1,0), colors.HexColor("#1D4ED8")),
        ("TEXTCOLOR", (0,0), (-1,0), colors.whitesmoke),
        ("VALIGN", (0,0), (-1,-1), "TOP"),
        ("FONTNAME", (0,0), (-1,0), "Helvetica-Bold"),
        ("FONTSIZE", (0,0), (-1,0), 12),
        ("BOTTOMPADDING", (0,0), (-1,0), 10),
        ("GRID", (0,0), (-1,-1), 0.5, colors.grey),
    ]))

    elements.append(table)
    doc.build(elements)
    return buf.getvalue()
