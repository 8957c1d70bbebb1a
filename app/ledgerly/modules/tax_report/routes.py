from __future__ import annotations

from flask import Blueprint, Response, current_app, g, render_template, request

from app.ledgerly.db import db_session
from app.ledgerly.modules.expenses.service import tax_category_label
from app.ledgerly.modules.tax_report.pdf import TaxReportPDF
from app.ledgerly.modules.tax_report.service import load_tax_report, parse_period
from app.ledgerly.tenancy import current_user, login_required

bp = Blueprint("tax_report", __name__)


@bp.get("/tax-report")
@login_required
def tax_report_page():
    start, end = parse_period(request.args)
    report = load_tax_report(db_session(), current_user(), start, end)
    return render_template("tax_report/report.html", report=report, category_label=tax_category_label)


@bp.get("/tax-report/pdf")
@login_required
def tax_report_pdf():
    start, end = parse_period(request.args)
    try:
        report = load_tax_report(db_session(), current_user(), start, end)
        pdf_bytes = TaxReportPDF().render(report)
    except Exception as e:
        current_app.logger.exception("Tax report PDF failed (request_id=%s)", getattr(g, "request_id", None))
        return {"error": str(e) or "Failed to generate PDF"}, 500

    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="tax-report-{start.isoformat()}-to-{end.isoformat()}.pdf"'
        },
    )
