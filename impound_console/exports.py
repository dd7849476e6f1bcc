import csv
import io
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import Report
from .novelty import report_kind, truncate

CSV_COLUMNS = [
    "report_id", "status", "original_type", "report_time", "location_name", "contact_number",
    "description", "user_id", "impound_read", "resolved_at", "resolved_by", "declined_at",
    "declined_by", "decline_reason",
]


def reports_csv(reports: List[Report]) -> bytes:
    """Every report, one row each, in the order given."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for r in reports:
        writer.writerow([
            r.report_id,
            r.status or "",
            r.original_type or "",
            r.report_time or "",
            r.location_name or "",
            r.contact_number or "",
            r.description or "",
            r.user_id or "",
            str(r.impound_read),
            r.resolved_at or "",
            r.resolved_by or "",
            r.declined_at or "",
            r.declined_by or "",
            r.decline_reason or "",
        ])
    return output.getvalue().encode('utf-8')


def reports_pdf(reports: List[Report], title: str = "Animal Impound - Reports Export") -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(letter))
    styles = getSampleStyleSheet()
    flowables = [Paragraph(title, styles['Title']), Spacer(1, 12)]

    data = [["ID", "Kind", "Status", "Reported", "Location", "Description"]]
    for r in reports:
        data.append([
            r.report_id[:8],
            report_kind(r.original_type or r.status),
            r.status or "",
            (r.report_time or "")[:10],
            r.location_name or "",
            truncate(r.description),
        ])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#b22222')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ]))
    flowables.append(table)
    doc.build(flowables)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
