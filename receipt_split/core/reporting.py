"""
PDF generation for settlement summaries.
"""

import datetime as dt
from pathlib import Path

from .models import SettlementResult
from .settlement import SECTION_TITLES
from .utils import DEFAULT_CURRENCY, money_fmt


def build_settlement_pdf(result: SettlementResult, out_pdf: Path,
                         currency: str = DEFAULT_CURRENCY,
                         title: str = "Receipt Split Summary") -> int:
    """
    Build a one-receipt settlement PDF: owed amounts first, then items per category.

    Returns:
        Number of pages written
    """
    from reportlab.lib.pagesizes import A4
    from reportlab.pdfgen import canvas
    from reportlab.lib.units import inch

    c = canvas.Canvas(out_pdf.as_posix(), pagesize=A4)
    width, height = A4
    pages = 1

    # Title
    y = height - 1 * inch
    c.setFont("Helvetica-Bold", 16)
    c.drawString(1 * inch, y, title)
    y -= 0.3 * inch
    c.setFont("Helvetica", 10)
    timestamp = dt.datetime.now().isoformat(timespec='seconds')
    c.drawString(1 * inch, y, f"Generated: {timestamp}")
    y -= 0.4 * inch

    # Owed totals
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Settlement")
    y -= 0.25 * inch
    c.setFont("Helvetica", 10)
    for label, amount in (("Me owes", result.me_owes),
                          ("You owe", result.you_owes),
                          ("Shared total", result.common_total)):
        c.drawString(1.1 * inch, y, label)
        c.drawRightString(width - 1 * inch, y, money_fmt(amount, currency))
        y -= 0.2 * inch

    # Items per category
    for attr, section_title in SECTION_TITLES + (("ignored_items", "Ignored:"),):
        entries = getattr(result, attr)
        if not entries:
            continue

        y -= 0.2 * inch
        c.setFont("Helvetica-Bold", 12)
        c.drawString(1 * inch, y, section_title)
        y -= 0.25 * inch
        c.setFont("Helvetica", 9)

        for entry in entries:
            if y < 0.8 * inch:
                c.showPage()
                pages += 1
                y = height - 1 * inch
                c.setFont("Helvetica-Bold", 12)
                c.drawString(1 * inch, y, f"{section_title} (cont.)")
                y -= 0.3 * inch
                c.setFont("Helvetica", 9)

            c.drawString(1.1 * inch, y, entry.item.name[:60])
            c.drawRightString(width - 1 * inch, y, money_fmt(entry.item.price, currency))
            y -= 0.18 * inch

    c.showPage()
    c.save()
    return pages
