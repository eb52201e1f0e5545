"""
PDF Service
Printable purchase receipts and TTB form previews, returned base64-encoded
"""

from typing import Any, Dict, List
import base64
import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

logger = logging.getLogger(__name__)

HEADER_COLOR = colors.HexColor("#7C2D12")
ROW_ALT_COLOR = colors.HexColor("#FFF7ED")


def _table(data: List[List[Any]], col_widths=None) -> Table:
    table = Table([[("" if v is None else str(v)) for v in row] for row in data], colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_ALT_COLOR]),
    ]))
    return table


def _styles():
    styles = getSampleStyleSheet()
    title = ParagraphStyle("DocTitle", parent=styles["Title"], fontSize=16, spaceAfter=10)
    heading = ParagraphStyle("DocHeading", parent=styles["Heading2"], fontSize=12, spaceAfter=6)
    return title, heading, styles["Normal"]


def _render(story: List[Any]) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=0.6 * inch,
        rightMargin=0.6 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
    )
    doc.build(story)
    return buf.getvalue()


def _document(filename: str, pdf: bytes) -> Dict[str, str]:
    return {
        "filename": filename,
        "content_type": "application/pdf",
        "data_base64": base64.b64encode(pdf).decode("ascii"),
    }


def purchase_receipt_pdf(purchase) -> Dict[str, str]:
    """Receipt for one purchase with its line items"""
    title, heading, normal = _styles()
    vendor = purchase.vendor

    story = [
        Paragraph("<b>Purchase Receipt</b>", title),
        Paragraph(f"<b>Vendor:</b> {escape(vendor.name) if vendor else ''}", normal),
    ]
    if vendor and vendor.address:
        story.append(Paragraph(escape(vendor.address), normal))
    story.extend([
        Paragraph(f"<b>Date:</b> {purchase.purchase_date.isoformat()}", normal),
        Paragraph(f"<b>Invoice:</b> {escape(purchase.invoice_number or '-')}", normal),
        Spacer(1, 0.2 * inch),
        Paragraph("Line Items", heading),
    ])

    rows = [["Variety", "Quantity", "Unit", "Price/Unit", "Total", "Harvest"]]
    for line in purchase.lines:
        rows.append([
            line.variety_name or "",
            f"{line.quantity:,.2f}",
            line.unit.value,
            f"${line.price_per_unit:,.2f}" if line.price_per_unit is not None else "",
            f"${line.total_cost:,.2f}" if line.total_cost is not None else "",
            line.harvest_date.isoformat() if line.harvest_date else "",
        ])
    rows.append(["", "", "", "Total", f"${purchase.total_cost:,.2f}", ""])
    story.append(_table(rows))

    if purchase.notes:
        story.extend([Spacer(1, 0.2 * inch), Paragraph(f"<b>Notes:</b> {escape(purchase.notes)}", normal)])

    pdf = _render(story)
    logger.info(f"Rendered receipt for purchase {purchase.id} ({len(pdf)} bytes)")
    return _document(f"purchase-receipt-{purchase.purchase_date.isoformat()}.pdf", pdf)


def ttb_form_pdf(form: Dict[str, Any]) -> Dict[str, str]:
    """TTB Form 5120.17 Part I preview"""
    title, heading, normal = _styles()
    tax = form["tax"]

    story = [
        Paragraph("<b>TTB Form 5120.17 - Report of Wine Premises Operations</b>", title),
        Paragraph(f"<b>Period:</b> {form['period_label']} ({form['period_start']} to {form['period_end']})", normal),
        Spacer(1, 0.2 * inch),
        Paragraph("Part I - Bulk Wines (wine gallons)", heading),
        _table([
            ["Line", "Description", "Gallons"],
            ["1", "On hand beginning of period", f"{form['opening']:,.3f}"],
            ["2", "Produced by fermentation", f"{form['produced']:,.3f}"],
            ["7", "Received in bond", f"{form['received']:,.3f}"],
            ["12", "Total", f"{form['total_available']:,.3f}"],
            ["14", "Removed taxpaid", f"{form['removed_taxpaid']:,.3f}"],
            ["20", "Used for distilling material", f"{form['used_for_distilling']:,.3f}"],
            ["29", "Losses", f"{form['losses']:,.3f}"],
            ["31", "On hand end of period", f"{form['ending']:,.3f}"],
            ["32", "Total", f"{form['total_accounted']:,.3f}"],
        ]),
        Spacer(1, 0.1 * inch),
        Paragraph(
            f"Variance: {form['variance']:,.3f} gal ({'balanced' if form['is_balanced'] else 'NOT balanced'})",
            normal
        ),
        Spacer(1, 0.2 * inch),
        Paragraph("Tax Summary (hard cider)", heading),
        _table([
            ["Taxable gallons", "Rate", "Gross tax", "Small producer credit", "Net tax due"],
            [
                f"{tax['taxable_gallons']:,.3f}",
                f"${tax['tax_rate']:.3f}",
                f"${tax['gross_tax']:,.2f}",
                f"${tax['small_producer_credit']:,.2f}",
                f"${tax['net_tax_due']:,.2f}",
            ],
        ]),
    ]

    pdf = _render(story)
    label = form["period_label"].replace(" ", "-").lower()
    return _document(f"ttb-5120-17-{label}.pdf", pdf)
