from __future__ import annotations

import mimetypes

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, send_file, url_for

from app.ledgerly.audit import record_event
from app.ledgerly.db import db_session
from app.ledgerly.listing.pagination import flat_args
from app.ledgerly.listing.sorting import EXPENSE_COLUMN_MAP
from app.ledgerly.listing.table import TableConfig, build_list
from app.ledgerly.modules.expenses.models import Expense
from app.ledgerly.modules.expenses.service import (
    EXPENSE_CATEGORIES,
    RECEIPT_CONTENT_TYPES,
    TAX_CATEGORIES,
    create_expense,
    delete_expense,
    update_expense,
    upload_receipt,
    validate_expense_payload,
)
from app.ledgerly.modules.saved_views.intents import handle_view_intent, saved_views_context
from app.ledgerly.storage import StorageError, storage_from_config
from app.ledgerly.tenancy import current_user, get_owned, get_owned_or_404, login_required, owned_query

bp = Blueprint("expenses", __name__)

EXPENSES_TABLE = TableConfig(
    table_name="expenses",
    search_fields=("merchant", "description", "notes"),
    column_map=EXPENSE_COLUMN_MAP,
    default_sort="date",
    default_order="desc",
    status_column=None,
    category_column="category",
    date_column="date",
)

SORTABLE_COLUMNS = [
    ("date", "Date"),
    ("merchant", "Merchant"),
    ("category", "Category"),
    ("amount", "Amount"),
]


def _expense_payload() -> dict:
    return {
        "merchant": request.form.get("merchant"),
        "category": request.form.get("category"),
        "date": request.form.get("date"),
        "total": request.form.get("total"),
        "tax": request.form.get("tax"),
        "description": request.form.get("description"),
        "notes": request.form.get("notes"),
        "is_tax_deductible": request.form.get("is_tax_deductible"),
        "business_use_percentage": request.form.get("business_use_percentage"),
        "tax_category": request.form.get("tax_category"),
        "is_return": request.form.get("is_return"),
        "original_expense_id": request.form.get("original_expense_id"),
    }


def _form_context(expense: Expense | None = None) -> dict:
    s = db_session()
    q = owned_query(s, Expense).filter(Expense.is_return.is_(False))
    if expense is not None:
        q = q.filter(Expense.id != expense.id)
    return {
        "categories": list(EXPENSE_CATEGORIES.items()),
        "tax_categories": list(TAX_CATEGORIES.items()),
        "original_expenses": q.order_by(Expense.date.desc(), Expense.id.asc()).limit(200).all(),
    }


def _validate(payload: dict, expense: Expense | None = None) -> list[str]:
    errors = validate_expense_payload(payload)
    original_id = (payload.get("original_expense_id") or "").strip()
    if original_id and payload.get("is_return"):
        if expense is not None and original_id == expense.id:
            errors.append("An expense cannot be a return of itself.")
        elif get_owned(db_session(), Expense, original_id) is None:
            errors.append("Original expense not found.")
    return errors


def _store_uploaded_receipt(expense: Expense) -> bool:
    """Store the `receipt` file from the current form, if any. Returns False on a rejected upload."""
    f = request.files.get("receipt")
    if not f or not f.filename:
        return True
    content_type = (f.mimetype or "application/octet-stream").strip()
    if content_type not in RECEIPT_CONTENT_TYPES:
        flash("Receipts must be an image or a PDF.", "danger")
        return False
    upload_receipt(
        db_session(),
        expense,
        f.read(),
        f.filename,
        content_type,
        current_user(),
        storage_from_config(current_app.config),
        current_app.config["RECEIPTS_BUCKET"],
    )
    return True


# ---------- List ----------
@bp.get("/expenses")
@login_required
def expenses_list():
    s = db_session()
    result = build_list(
        owned_query(s, Expense),
        Expense,
        EXPENSES_TABLE,
        flat_args(request.args),
        tz=current_app.config.get("APP_TIMEZONE"),
    )
    return render_template(
        "expenses/list.html",
        result=result,
        saved_views=saved_views_context(EXPENSES_TABLE.table_name),
        table_name=EXPENSES_TABLE.table_name,
        category_options=list(EXPENSE_CATEGORIES.items()),
        sortable_columns=SORTABLE_COLUMNS,
    )


@bp.post("/expenses")
@login_required
def expenses_list_post():
    resp = handle_view_intent(EXPENSES_TABLE.table_name, url_for("expenses.expenses_list"))
    if resp is None:
        return {"error": "Invalid intent"}, 400
    return resp


# ---------- New ----------
@bp.get("/expenses/new")
@login_required
def expenses_new_get():
    form = {"is_tax_deductible": "on", "business_use_percentage": "100"}
    return render_template("expenses/form.html", expense=None, form=form, **_form_context())


@bp.post("/expenses/new")
@login_required
def expenses_new_post():
    s = db_session()
    u = current_user()
    payload = _expense_payload()

    errors = _validate(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("expenses/form.html", expense=None, form=payload, **_form_context()), 400

    expense = create_expense(s, payload, u)
    if not _store_uploaded_receipt(expense):
        s.rollback()
        return render_template("expenses/form.html", expense=None, form=payload, **_form_context()), 400
    s.commit()

    flash("Expense created.", "success")
    return redirect(url_for("expenses.expenses_list"))


# ---------- Edit ----------
@bp.get("/expenses/<expense_id>/edit")
@login_required
def expense_edit_get(expense_id: str):
    s = db_session()
    expense = get_owned_or_404(s, Expense, expense_id)
    return render_template("expenses/form.html", expense=expense, form=None, **_form_context(expense))


@bp.post("/expenses/<expense_id>/edit")
@login_required
def expense_edit_post(expense_id: str):
    s = db_session()
    u = current_user()
    expense = get_owned_or_404(s, Expense, expense_id)
    payload = _expense_payload()

    errors = _validate(payload, expense)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("expenses/form.html", expense=expense, form=payload, **_form_context(expense)), 400

    update_expense(s, expense, payload, u)
    if not _store_uploaded_receipt(expense):
        s.rollback()
        return redirect(url_for("expenses.expense_edit_get", expense_id=expense_id))
    s.commit()

    flash("Expense updated.", "success")
    return redirect(url_for("expenses.expenses_list"))


# ---------- Delete ----------
@bp.post("/expenses/<expense_id>/delete")
@login_required
def expense_delete(expense_id: str):
    s = db_session()
    u = current_user()
    expense = get_owned_or_404(s, Expense, expense_id)
    delete_expense(s, expense, u, storage_from_config(current_app.config), current_app.config["RECEIPTS_BUCKET"])
    s.commit()

    flash("Expense deleted.", "success")
    return redirect(url_for("expenses.expenses_list"))


# ---------- Receipt ----------
@bp.post("/expenses/<expense_id>/receipt")
@login_required
def expense_receipt_upload(expense_id: str):
    s = db_session()
    expense = get_owned_or_404(s, Expense, expense_id)

    f = request.files.get("receipt")
    if not f or not f.filename:
        flash("Please select a file to upload.", "danger")
        return redirect(url_for("expenses.expense_edit_get", expense_id=expense_id))
    if not _store_uploaded_receipt(expense):
        return redirect(url_for("expenses.expense_edit_get", expense_id=expense_id))
    s.commit()

    flash("Receipt uploaded.", "success")
    return redirect(url_for("expenses.expense_edit_get", expense_id=expense_id))


@bp.get("/expenses/<expense_id>/receipt")
@login_required
def expense_receipt_download(expense_id: str):
    s = db_session()
    u = current_user()
    expense = get_owned_or_404(s, Expense, expense_id)
    if not expense.receipt_url:
        abort(404)

    storage = storage_from_config(current_app.config)
    try:
        fobj = storage.open_for_user(current_app.config["RECEIPTS_BUCKET"], u.id, expense.receipt_url)
    except StorageError as e:
        current_app.logger.warning("Receipt unavailable for expense %s: %s", expense.id, e)
        abort(404)

    record_event(
        s,
        actor=u,
        action="expense.receipt_download",
        entity_type="Expense",
        entity_id=expense.id,
        metadata={"key": expense.receipt_url},
    )
    s.commit()

    download_name = expense.receipt_url.rsplit("/", 1)[-1]
    return send_file(
        fobj,
        mimetype=mimetypes.guess_type(download_name)[0] or "application/octet-stream",
        as_attachment=True,
        download_name=download_name,
        max_age=0,
    )
