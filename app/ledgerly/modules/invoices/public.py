"""
Unauthenticated invoice access by share token.

A request without a token is refused (403). A token that does not match the
invoice id answers 404, the same as a missing invoice, so ids cannot be enumerated.
"""
from __future__ import annotations

from flask import Blueprint, abort, current_app, render_template, request

from app.ledgerly.db import db_session
from app.ledgerly.modules.invoices.models import Invoice
from app.ledgerly.modules.invoices.pdf import invoice_pdf_response
from app.ledgerly.security import share_token_matches

bp = Blueprint("public_invoices", __name__)


def _shared_invoice_or_abort(invoice_id: str) -> Invoice:
    token = (request.args.get("token") or "").strip()
    if not token:
        abort(403)

    s = db_session()
    invoice = (
        s.query(Invoice)
        .filter(Invoice.id == invoice_id)
        .filter(Invoice.share_token.isnot(None))
        .one_or_none()
    )
    if invoice is None or not share_token_matches(invoice.share_token, token):
        current_app.logger.info("Shared invoice lookup failed (invoice_id=%s)", invoice_id)
        abort(404)
    return invoice


@bp.get("/invoice/<invoice_id>")
def invoice_public(invoice_id: str):
    invoice = _shared_invoice_or_abort(invoice_id)
    return render_template("invoices/public.html", invoice=invoice, token=request.args.get("token"))


@bp.get("/invoice/<invoice_id>/pdf")
def invoice_public_pdf(invoice_id: str):
    invoice = _shared_invoice_or_abort(invoice_id)
    return invoice_pdf_response(invoice)
