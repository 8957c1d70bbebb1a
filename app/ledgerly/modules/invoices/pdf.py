from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from flask import Response
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.ledgerly.modules.invoices.service import payment_method_label
from app.ledgerly.utils import format_currency

if TYPE_CHECKING:
    from app.ledgerly.modules.invoices.models import Invoice


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "Title": ParagraphStyle(
            "InvoiceTitle",
            parent=base["Heading1"],
            fontSize=20,
            spaceAfter=6,
            textColor=colors.HexColor("#111827"),
        ),
        "Label": ParagraphStyle(
            "InvoiceLabel",
            parent=base["Normal"],
            fontSize=8,
            textColor=colors.HexColor("#6b7280"),
            fontName="Helvetica-Bold",
        ),
        "Body": ParagraphStyle("InvoiceBody", parent=base["Normal"], fontSize=10, leading=13),
        "Notes": ParagraphStyle(
            "InvoiceNotes",
            parent=base["Normal"],
            fontSize=9,
            textColor=colors.HexColor("#374151"),
        ),
    }


def _block(lines: list[str | None]) -> str:
    return "<br/>".join(escape(line) for line in lines if line)


def render_invoice_pdf(invoice: "Invoice") -> bytes:
    """Render an invoice to PDF bytes."""
    st = _styles()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=54,
        leftMargin=54,
        topMargin=54,
        bottomMargin=54,
        title=f"Invoice {invoice.invoice_number}",
    )

    story = []
    story.append(Paragraph(escape(invoice.invoice_name or "Invoice"), st["Title"]))

    meta = [
        ["Invoice #", invoice.invoice_number],
        ["Date", invoice.date.isoformat()],
        ["Terms", invoice.terms or ""],
    ]
    if invoice.status == "paid":
        meta.append(["Paid", payment_method_label(invoice.payment_method)])
        if invoice.payment_date:
            meta.append(["Payment date", invoice.payment_date.isoformat()])
    meta_table = Table(meta, colWidths=[1.3 * inch, 2.5 * inch], hAlign="LEFT")
    meta_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
            ]
        )
    )
    story.append(meta_table)
    story.append(Spacer(1, 16))

    parties = Table(
        [
            [Paragraph("FROM", st["Label"]), Paragraph("BILL TO", st["Label"])],
            [
                Paragraph(
                    _block(
                        [
                            invoice.from_name,
                            invoice.from_owner,
                            invoice.from_address,
                            invoice.from_email,
                            invoice.from_phone,
                            invoice.from_website,
                            f"Business #: {invoice.from_business_number}" if invoice.from_business_number else None,
                        ]
                    ),
                    st["Body"],
                ),
                Paragraph(
                    _block(
                        [
                            invoice.bill_to_name,
                            invoice.bill_to_address,
                            invoice.bill_to_email,
                            invoice.bill_to_phone,
                            f"Mobile: {invoice.bill_to_mobile}" if invoice.bill_to_mobile else None,
                            f"Fax: {invoice.bill_to_fax}" if invoice.bill_to_fax else None,
                        ]
                    ),
                    st["Body"],
                ),
            ],
        ],
        colWidths=[3.5 * inch, 3.5 * inch],
    )
    parties.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    story.append(parties)
    story.append(Spacer(1, 20))

    rows = [["Description", "Qty", "Rate", "Amount"]]
    for item in invoice.line_items or []:
        rows.append(
            [
                Paragraph(escape(str(item.get("description") or "")), st["Body"]),
                format(float(item.get("quantity") or 0), "g"),
                f"${format_currency(item.get('rate'))}",
                f"${format_currency(item.get('amount'))}",
            ]
        )
    rows.append(["", "", "Subtotal", f"${format_currency(invoice.subtotal)}"])
    rows.append(["", "", "Total", f"${format_currency(invoice.total)}"])
    rows.append(["", "", "Balance Due", f"${format_currency(invoice.balance_due)}"])

    n_items = len(invoice.line_items or [])
    items_table = Table(rows, colWidths=[3.7 * inch, 0.8 * inch, 1.2 * inch, 1.3 * inch], repeatRows=1)
    items_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LINEBELOW", (0, 0), (-1, n_items), 0.5, colors.HexColor("#e5e7eb")),
                ("FONTNAME", (2, n_items + 1), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    story.append(items_table)

    if invoice.notes:
        story.append(Spacer(1, 20))
        story.append(Paragraph("NOTES", st["Label"]))
        story.append(Paragraph(escape(invoice.notes).replace("\n", "<br/>"), st["Notes"]))

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


def invoice_pdf_response(invoice: "Invoice") -> Response:
    return Response(
        render_invoice_pdf(invoice),
        mimetype="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
    )
