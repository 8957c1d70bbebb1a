from __future__ import annotations

from datetime import date
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.ledgerly.modules.expenses.service import tax_category_label
from app.ledgerly.modules.tax_report.service import TaxReport
from app.ledgerly.utils import format_currency

DISCLAIMER = (
    "DISCLAIMER: This is a simplified tax estimate for informational purposes only. "
    "Actual tax liability depends on your specific situation, deductions, credits and tax bracket. "
    "Please consult a qualified tax professional for accurate tax calculations and filing."
)


class TaxReportPDF:
    """Lay out a TaxReport as a one-page PDF."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.custom_styles = self._create_custom_styles()

    def _create_custom_styles(self):
        return {
            "Title": ParagraphStyle("ReportTitle", parent=self.styles["Heading1"], fontSize=22, spaceAfter=4),
            "Subtitle": ParagraphStyle(
                "ReportSubtitle", parent=self.styles["Normal"], fontSize=10, textColor=colors.HexColor("#666666")
            ),
            "Section": ParagraphStyle(
                "ReportSection", parent=self.styles["Heading2"], fontSize=13, spaceBefore=14, spaceAfter=6
            ),
            "Disclaimer": ParagraphStyle(
                "ReportDisclaimer",
                parent=self.styles["Normal"],
                fontSize=8,
                textColor=colors.HexColor("#666666"),
                backColor=colors.HexColor("#f5f5f5"),
                borderPadding=6,
            ),
        }

    def _rows_table(self, rows, bold_last: bool = False) -> Table:
        table = Table(rows, colWidths=[4.6 * inch, 1.8 * inch])
        style = [
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("FONTNAME", (1, 0), (1, -1), "Helvetica-Bold"),
        ]
        if bold_last:
            style += [
                ("LINEABOVE", (0, -1), (-1, -1), 0.75, colors.HexColor("#cccccc")),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, -1), (-1, -1), 11),
            ]
        table.setStyle(TableStyle(style))
        return table

    def render(self, report: TaxReport, generated_on: date | None = None) -> bytes:
        generated_on = generated_on or date.today()
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=40,
            leftMargin=40,
            topMargin=40,
            bottomMargin=40,
            title="Tax Report",
        )
        st = self.custom_styles
        story = [
            Paragraph("Tax Report", st["Title"]),
            Paragraph(f"Period: {report.start_date.isoformat()} - {report.end_date.isoformat()}", st["Subtitle"]),
            Paragraph(f"Generated: {generated_on.isoformat()}", st["Subtitle"]),
            Spacer(1, 10),
        ]

        story.append(Paragraph("Income Summary", st["Section"]))
        story.append(
            self._rows_table([["Total Gross Income (Paid Invoices)", f"${format_currency(report.total_income)}"]])
        )

        story.append(Paragraph("Deductions Summary", st["Section"]))
        rows = [
            [
                f"Mileage Deduction ({report.total_mileage:.1f} miles, {report.mileage_record_count} record(s))",
                f"${format_currency(report.total_mileage_deduction)}",
            ],
            ["Business Expenses", f"${format_currency(report.total_expenses)}"],
        ]
        for category, totals in report.categories_by_total():
            rows.append([f"    {tax_category_label(category)} ({totals.count})", f"${format_currency(totals.total)}"])
        rows.append(["Total Deductions", f"${format_currency(report.total_deductions)}"])
        story.append(self._rows_table(rows, bold_last=True))

        story.append(Paragraph("Net Profit/Loss", st["Section"]))
        story.append(
            self._rows_table(
                [
                    ["Gross Income", f"${format_currency(report.total_income)}"],
                    ["Total Deductions", f"-${format_currency(report.total_deductions)}"],
                    ["Net Profit", f"${format_currency(report.net_profit)}"],
                ],
                bold_last=True,
            )
        )

        story.append(Paragraph("Estimated Tax Liability", st["Section"]))
        story.append(
            self._rows_table(
                [
                    ["Self-Employment Tax (15.3%)", f"${format_currency(report.self_employment_tax)}"],
                    ["Estimated Income Tax", f"${format_currency(report.estimated_income_tax)}"],
                    ["Total Estimated Tax", f"${format_currency(report.total_estimated_tax)}"],
                ],
                bold_last=True,
            )
        )

        story.append(Spacer(1, 18))
        story.append(Paragraph(DISCLAIMER, st["Disclaimer"]))

        doc.build(story)
        buffer.seek(0)
        return buffer.getvalue()
